"""
Accounts Schemas

Pydantic schemas for account requests and responses. Lifecycle rules
(allowed statuses, reason length, email domain) are checked by the service
layer, not here.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from lms.modules.accounts.models import AccountKind, AccountStatus

# ============================================
# Requests
# ============================================


class StudentRegisterRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=20)
    date_of_birth: date | None = None


class InstructorRegisterRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=20)
    date_of_birth: date | None = None


class AdminCreateRequest(BaseModel):
    """Admin account created by a super-admin. The identity is bound at first sign-in."""

    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=20)


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=20)


class StatusUpdateRequest(BaseModel):
    """Administrative status change."""

    status: str = Field(..., description="Target status: ACTIVE or INACTIVE")
    reason: str | None = Field(None, description="Optional reason recorded in the audit trail")


# ============================================
# Responses
# ============================================


class AccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    phone: str | None = None
    status: AccountStatus
    registered_at: datetime
    end_date: datetime | None = None


class StudentResponse(AccountResponse):
    date_of_birth: date | None = None


class InstructorResponse(AccountResponse):
    date_of_birth: date | None = None
    has_signature: bool = Field(False, description="Whether a digital signature is on file")


class AdminResponse(AccountResponse):
    identity_bound: bool = Field(..., description="Whether the admin has signed in at least once")


class StudentListResponse(BaseModel):
    items: list[StudentResponse]
    total: int


class InstructorListResponse(BaseModel):
    items: list[InstructorResponse]
    total: int


class AdminListResponse(BaseModel):
    items: list[AdminResponse]
    total: int


class StatusUpdateResponse(BaseModel):
    id: UUID
    status: AccountStatus
    end_date: datetime | None = None
    message: str


class LoginResponse(BaseModel):
    account_id: UUID
    kind: AccountKind
    email: str
    name: str
    status: AccountStatus
