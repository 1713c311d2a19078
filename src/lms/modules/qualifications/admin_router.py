"""
Admin Qualifications Router

Review queue and the verify/reject decision.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.auth import get_current_admin
from lms.core.database import get_db
from lms.core.exceptions import LifecycleError, internal_http_exception, to_http_exception
from lms.core.rate_limit import enforce_actor_rate_limit
from lms.core.storage import BlobStore, get_blob_store
from lms.modules.accounts.models import Admin
from lms.modules.audit.service import Actor
from lms.modules.qualifications import service
from lms.modules.qualifications.schemas import (
    DecisionRequest,
    DecisionResponse,
    QualificationDetailResponse,
    QualificationListResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/qualifications", tags=["Admin - Qualifications"])


@router.get("", response_model=QualificationListResponse, summary="List Qualifications")
async def list_qualifications(
    status: str | None = Query(None, description="PENDING, VERIFIED or REJECTED"),
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
    blob_store: BlobStore = Depends(get_blob_store),
) -> QualificationListResponse:
    try:
        items = await service.list_for_admin(db, blob_store, status)
        return QualificationListResponse(items=items, total=len(items))
    except LifecycleError as e:
        raise to_http_exception(e) from e


@router.get(
    "/{qualification_id}",
    response_model=QualificationDetailResponse,
    summary="Get Qualification",
    description="Qualification with the submitting instructor and a signed link to their signature.",
)
async def get_qualification(
    qualification_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
    blob_store: BlobStore = Depends(get_blob_store),
) -> QualificationDetailResponse:
    try:
        return await service.get_detail(db, qualification_id, blob_store)
    except LifecycleError as e:
        raise to_http_exception(e) from e


@router.post(
    "/{qualification_id}/decision",
    response_model=DecisionResponse,
    summary="Verify or Reject Qualification",
    description="""
Decide a pending qualification.

**VERIFIED:** if this is the instructor's first verified qualification and
the instructor is not yet ACTIVE, the instructor is activated as well.

**REJECTED:** the reason is stored and the document is retired from
storage. If storage is unavailable the rejection still succeeds and the
document is deleted later.

Decisions are final: a verified or rejected qualification cannot be decided again.
""",
    responses={
        400: {"description": "Invalid target status or reason"},
        404: {"description": "Qualification not found"},
        409: {"description": "Qualification already decided"},
        429: {"description": "Too many decisions"},
    },
)
async def decide_qualification(
    qualification_id: UUID,
    data: DecisionRequest,
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
    blob_store: BlobStore = Depends(get_blob_store),
) -> DecisionResponse:
    await enforce_actor_rate_limit(admin.id, "qualification_decision")

    try:
        result = await service.decide_qualification(
            db,
            qualification_id,
            data.status,
            Actor.admin(admin.id),
            blob_store,
            reason=data.reason,
        )
        qualification = result.qualification
        message = f"Qualification {qualification.status.value.lower()}"
        if result.instructor_activated:
            message += "; instructor activated"

        return DecisionResponse(
            id=qualification.id,
            status=qualification.status,
            decided_by_admin_id=qualification.decided_by_admin_id,
            decided_at=qualification.decided_at,
            rejection_reason=qualification.rejection_reason,
            instructor_status=result.instructor_status,
            message=message,
        )
    except LifecycleError as e:
        logger.warning(f"Decision on qualification {qualification_id} refused: {e.message}")
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error deciding qualification {qualification_id}: {e}")
        raise internal_http_exception() from e
