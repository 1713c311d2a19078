from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from lms.modules.audit.models import ActorType, SubjectType


class StatusChangeRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    subject_type: SubjectType
    subject_id: UUID
    old_status: str
    new_status: str
    actor_type: ActorType
    actor_id: UUID
    changed_at: datetime
    reason: str | None = None
    record_hash: str


class StatusChangeRecordListResponse(BaseModel):
    items: list[StatusChangeRecordResponse]
    limit: int
    offset: int


class ChainVerificationResponse(BaseModel):
    valid: bool
    records_checked: int
    broken_record_id: UUID | None = None
