"""
Qualifications Repository

Database operations for instructor qualifications. Nothing here commits.
"""

from uuid import UUID

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Qualification, QualificationStatus


async def get_by_id(
    db: AsyncSession, id: UUID, *, for_update: bool = False
) -> Qualification | None:
    """Get a qualification by ID, optionally locking the row."""
    if not for_update:
        return await db.get(Qualification, id)

    result = await db.execute(
        select(Qualification).where(Qualification.id == id).with_for_update()
    )
    return result.scalar_one_or_none()


async def create(
    db: AsyncSession,
    *,
    instructor_id: UUID,
    document_ref: str,
    level: str,
    field_of_study: str | None,
) -> Qualification:
    qualification = Qualification(
        instructor_id=instructor_id,
        document_ref=document_ref,
        level=level,
        field_of_study=field_of_study,
        status=QualificationStatus.PENDING,
    )
    db.add(qualification)
    await db.flush()
    await db.refresh(qualification)
    return qualification


async def list_by_instructor(
    db: AsyncSession,
    instructor_id: UUID,
    status: QualificationStatus | None = None,
) -> list[Qualification]:
    """An instructor's qualifications in submission order."""
    query = select(Qualification).where(Qualification.instructor_id == instructor_id)
    if status is not None:
        query = query.where(Qualification.status == status)
    result = await db.execute(query.order_by(Qualification.submitted_at))
    return list(result.scalars().all())


async def list_all(
    db: AsyncSession, status: QualificationStatus | None = None
) -> list[Qualification]:
    """All qualifications for the admin review queue, oldest first."""
    query = select(Qualification)
    if status is not None:
        query = query.where(Qualification.status == status)
    result = await db.execute(query.order_by(Qualification.submitted_at))
    return list(result.scalars().all())


async def count_by_status(db: AsyncSession, instructor_id: UUID) -> dict[QualificationStatus, int]:
    result = await db.execute(
        select(Qualification.status, func.count())
        .where(Qualification.instructor_id == instructor_id)
        .group_by(Qualification.status)
    )
    counts = {status: 0 for status in QualificationStatus}
    for status, count in result.all():
        counts[status] = count
    return counts


async def has_verified(
    db: AsyncSession, instructor_id: UUID, exclude_id: UUID | None = None
) -> bool:
    """Whether the instructor has a VERIFIED qualification, optionally ignoring ``exclude_id``."""
    query = (
        select(func.count())
        .select_from(Qualification)
        .where(
            Qualification.instructor_id == instructor_id,
            Qualification.status == QualificationStatus.VERIFIED,
        )
    )
    if exclude_id is not None:
        query = query.where(Qualification.id != exclude_id)
    result = await db.execute(query)
    return (result.scalar() or 0) > 0


async def list_pending_cleanup(db: AsyncSession, limit: int = 100) -> list[Qualification]:
    """
    Retired qualifications whose stored document still awaits deletion.

    Never-attempted cleanups come first, then the least recently attempted,
    so references that keep failing cannot starve newer ones.
    """
    result = await db.execute(
        select(Qualification)
        .where(Qualification.pending_cleanup_ref.is_not(None))
        .order_by(
            Qualification.cleanup_attempted_at.asc().nulls_first(),
            Qualification.decided_at,
        )
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_cleanup_attempted(db: AsyncSession, id: UUID, attempted_at: datetime) -> None:
    await db.execute(
        update(Qualification)
        .where(Qualification.id == id)
        .values(cleanup_attempted_at=attempted_at)
    )
