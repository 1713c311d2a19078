"""
Qualifications Schemas

Document URLs in responses are short-lived signed URLs; stored references
are never returned.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from lms.modules.accounts.models import AccountStatus
from lms.modules.accounts.schemas import InstructorResponse
from lms.modules.qualifications.models import QualificationStatus


class DecisionRequest(BaseModel):
    status: str = Field(..., description="VERIFIED or REJECTED")
    reason: str | None = Field(None, description="Rejection reason, recorded in the audit trail")


class QualificationResponse(BaseModel):
    """A qualification as seen by its owner or an admin."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    instructor_id: UUID
    level: str
    field_of_study: str | None = None
    status: QualificationStatus
    rejection_reason: str | None = None
    decided_by_admin_id: UUID | None = None
    decided_at: datetime | None = None
    submitted_at: datetime
    document_url: str | None = Field(None, description="Signed URL, absent once retired")
    document_retired: bool = False


class QualificationDetailResponse(QualificationResponse):
    """Admin review view: the qualification plus who submitted it."""

    instructor_name: str | None = None
    instructor_email: str | None = None
    signature_url: str | None = Field(None, description="Signed URL of the instructor's signature")


class QualificationListResponse(BaseModel):
    items: list[QualificationResponse]
    total: int


class CertificateResponse(BaseModel):
    """Public view of a VERIFIED qualification."""

    id: UUID
    level: str
    field_of_study: str | None = None
    verified_at: datetime | None = None
    document_url: str | None = None


class CertificateListResponse(BaseModel):
    instructor_id: UUID
    items: list[CertificateResponse]


class InstructorDetailResponse(InstructorResponse):
    """Admin view of an instructor with verified certificates."""

    certificates: list[CertificateResponse] = Field(default_factory=list)


class SubmissionResponse(BaseModel):
    items: list[QualificationResponse]
    signature_stored: bool
    message: str


class RequirementStatusResponse(BaseModel):
    """What an onboarding instructor has submitted so far."""

    instructor_status: AccountStatus
    has_signature: bool
    pending: int
    verified: int
    rejected: int


class DecisionResponse(BaseModel):
    id: UUID
    status: QualificationStatus
    decided_by_admin_id: UUID | None
    decided_at: datetime | None
    rejection_reason: str | None = None
    instructor_status: AccountStatus | None = None
    message: str
