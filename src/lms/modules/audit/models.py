"""
Audit Trail Models

Status change records are append-only. Subject and actor are weak references
(no foreign keys) so records outlive the rows they describe. Each record
carries the hash of its predecessor, forming a tamper-evident chain.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Enum, Identity, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from lms.core.database import Base


class SubjectType(str, enum.Enum):
    """Kind of entity whose status changed."""

    ADMIN = "ADMIN"
    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"
    QUALIFICATION = "QUALIFICATION"


class ActorType(str, enum.Enum):
    """Kind of principal that performed a change."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"


# Records about these subjects are visible to admins; ADMIN subjects
# are visible to super-admins only.
USER_SUBJECT_TYPES = frozenset(
    {SubjectType.STUDENT, SubjectType.INSTRUCTOR, SubjectType.QUALIFICATION}
)


class StatusChangeRecord(Base):
    """One committed status transition."""

    __tablename__ = "status_change_records"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Insertion order of the hash chain
    sequence: Mapped[int] = mapped_column(BigInteger, Identity(), unique=True, nullable=False)

    subject_type: Mapped[SubjectType] = mapped_column(
        Enum(SubjectType, name="audit_subject_type"), nullable=False
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    old_status: Mapped[str] = mapped_column(String(20), nullable=False)
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)

    actor_type: Mapped[ActorType] = mapped_column(
        Enum(ActorType, name="audit_actor_type"), nullable=False
    )
    actor_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    previous_hash: Mapped[str] = mapped_column(String(71), nullable=False)
    record_hash: Mapped[str] = mapped_column(String(71), unique=True, nullable=False)

    __table_args__ = (
        Index("ix_status_change_records_subject", "subject_type", "subject_id", "changed_at"),
        Index("ix_status_change_records_changed_at", "changed_at"),
        Index("ix_status_change_records_actor_id", "actor_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<StatusChangeRecord {self.subject_type.value}:{self.subject_id} "
            f"{self.old_status}->{self.new_status} by {self.actor_id}>"
        )
