"""
Qualification Models

A qualification is one credential document submitted by an instructor.
Rows are created by the submission flow, changed only by an admin decision
and never deleted; rejected qualifications stay as history.
"""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.modules.shared import BaseModel

if TYPE_CHECKING:
    from lms.modules.accounts.models import Instructor

DEFAULT_LEVEL = "CERTIFICATE"

# Stored in place of the document reference once a rejected document has
# been retired from blob storage.
RETIRED_DOCUMENT_REF = "RETIRED"


class QualificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class Qualification(BaseModel):
    __tablename__ = "qualifications"

    instructor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("instructors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    document_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # Original reference of a retired document whose blob delete has not
    # succeeded yet; cleared once storage confirms the delete.
    pending_cleanup_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    # Last failed cleanup run; orders the retry queue
    cleanup_attempted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    level: Mapped[str] = mapped_column(String(100), nullable=False, default=DEFAULT_LEVEL)
    field_of_study: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[QualificationStatus] = mapped_column(
        Enum(QualificationStatus, name="qualification_status"),
        nullable=False,
        default=QualificationStatus.PENDING,
        server_default=QualificationStatus.PENDING.value,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Last decision; weak reference to the admin (no FK)
    decided_by_admin_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    instructor: Mapped["Instructor"] = relationship("Instructor", back_populates="qualifications")

    __table_args__ = (
        Index("ix_qualifications_status_submitted_at", "status", "submitted_at"),
        Index(
            "ix_qualifications_pending_cleanup",
            "pending_cleanup_ref",
            postgresql_where=text("pending_cleanup_ref IS NOT NULL"),
        ),
    )

    @property
    def is_retired(self) -> bool:
        return self.document_ref == RETIRED_DOCUMENT_REF

    def __repr__(self) -> str:
        return f"<Qualification {self.id} {self.level} ({self.status.value})>"
