"""
Qualifications Background Jobs

Retries deletion of retired documents whose post-rejection blob delete
failed. The job clears pending_cleanup_ref only after storage confirms the
delete and otherwise just stamps cleanup_attempted_at. It never changes a
qualification's status and never writes audit records, so running it
repeatedly is safe.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.config import settings
from lms.core.database import async_session_maker
from lms.core.exceptions import LifecycleError, StorageCleanupFailed
from lms.core.scheduler import register_job
from lms.core.storage import BlobStore, get_blob_store
from lms.modules.lifecycle import unit_of_work

from . import repository
from .service import retire_document

logger = logging.getLogger(__name__)

JOB_ID_RETRY_DOCUMENT_CLEANUP = "qualifications_retry_document_cleanup"

CLEANUP_BATCH_SIZE = 100


async def retry_document_cleanup(blob_store: BlobStore | None = None) -> dict[str, Any]:
    """
    Retry outstanding document deletions for rejected qualifications.

    Individual failures are logged, stamped with the attempt time and left
    for the next run, behind references that have not been tried yet.

    Returns:
        Counts of attempted, deleted and failed cleanups
    """
    blob_store = blob_store or get_blob_store()

    async with async_session_maker() as db:
        pending = await repository.list_pending_cleanup(db, limit=CLEANUP_BATCH_SIZE)
        targets = [(q.id, q.pending_cleanup_ref) for q in pending]

        deleted = 0
        failed = 0
        for qualification_id, reference in targets:
            try:
                await retire_document(db, qualification_id, reference, blob_store)
                deleted += 1
            except StorageCleanupFailed as e:
                failed += 1
                logger.warning(
                    f"Cleanup still failing for qualification {qualification_id}: {e.message}"
                )
                await _record_attempt(db, qualification_id)

    summary = {"attempted": len(targets), "deleted": deleted, "failed": failed}
    if targets:
        logger.info(f"Document cleanup run: {summary}")
    return summary


async def _record_attempt(db: AsyncSession, qualification_id: UUID) -> None:
    try:
        async with unit_of_work(db):
            await repository.mark_cleanup_attempted(db, qualification_id, datetime.now(UTC))
    except LifecycleError as e:
        logger.error(f"Could not record cleanup attempt for {qualification_id}: {e.message}")


def register_qualification_jobs() -> None:
    register_job(
        job_id=JOB_ID_RETRY_DOCUMENT_CLEANUP,
        func=retry_document_cleanup,
        trigger=IntervalTrigger(minutes=settings.document_cleanup_interval_minutes),
    )
