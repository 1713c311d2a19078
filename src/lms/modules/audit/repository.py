"""
Audit Trail Repository

Append and query operations for status change records. There are
intentionally no update or delete functions.
"""

from collections.abc import Collection
from uuid import UUID

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from .models import StatusChangeRecord, SubjectType

# Key for pg_advisory_xact_lock serializing appends to the hash chain
AUDIT_CHAIN_LOCK_KEY = 734_112_001


async def lock_chain(db: AsyncSession) -> None:
    """Take the transaction-scoped lock guarding the chain head."""
    await db.execute(
        text("SELECT pg_advisory_xact_lock(:key)"),
        {"key": AUDIT_CHAIN_LOCK_KEY},
    )


async def get_latest_hash(db: AsyncSession) -> str | None:
    """Return the hash of the most recently appended record."""
    result = await db.execute(
        select(StatusChangeRecord.record_hash)
        .order_by(StatusChangeRecord.sequence.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def add(db: AsyncSession, record: StatusChangeRecord) -> StatusChangeRecord:
    """Add a record to the current transaction."""
    db.add(record)
    await db.flush()
    return record


async def find(
    db: AsyncSession,
    *,
    subject_type: SubjectType | None = None,
    subject_id: UUID | None = None,
    allowed_types: Collection[SubjectType] | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[StatusChangeRecord]:
    """Query records, newest first."""
    query = select(StatusChangeRecord)

    if subject_type is not None:
        query = query.where(StatusChangeRecord.subject_type == subject_type)
    if subject_id is not None:
        query = query.where(StatusChangeRecord.subject_id == subject_id)
    if allowed_types is not None:
        query = query.where(StatusChangeRecord.subject_type.in_(list(allowed_types)))

    query = (
        query.order_by(StatusChangeRecord.changed_at.desc(), StatusChangeRecord.sequence.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def find_by_subject(
    db: AsyncSession,
    subject_id: UUID,
    allowed_types: Collection[SubjectType] | None = None,
) -> list[StatusChangeRecord]:
    """Full history of one subject, newest first."""
    query = select(StatusChangeRecord).where(StatusChangeRecord.subject_id == subject_id)
    if allowed_types is not None:
        query = query.where(StatusChangeRecord.subject_type.in_(list(allowed_types)))
    result = await db.execute(
        query.order_by(StatusChangeRecord.changed_at.desc(), StatusChangeRecord.sequence.desc())
    )
    return list(result.scalars().all())


async def list_in_chain_order(db: AsyncSession) -> list[StatusChangeRecord]:
    """Every record in insertion order, for chain verification."""
    result = await db.execute(select(StatusChangeRecord).order_by(StatusChangeRecord.sequence))
    return list(result.scalars().all())
