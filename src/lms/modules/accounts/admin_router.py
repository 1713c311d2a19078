"""
Admin Account Management Router

Endpoints for admins to view students and instructors and change their
status. Every status change is audited with the acting admin.
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
from lms.modules.accounts import service
from lms.modules.accounts.models import AccountKind, AccountStatus, Admin
from lms.modules.accounts.schemas import (
    InstructorListResponse,
    InstructorResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
    StudentListResponse,
    StudentResponse,
)
from lms.modules.audit.service import Actor
from lms.modules.qualifications import service as qualifications_service
from lms.modules.qualifications.schemas import InstructorDetailResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin - Accounts"])

STATUS_CHANGE_RESPONSES = {
    400: {"description": "Invalid target status or reason"},
    401: {"description": "Unauthorized - invalid or missing token"},
    403: {"description": "Forbidden - not an active admin"},
    404: {"description": "Account not found"},
    409: {"description": "Transition not allowed, or status already set"},
    429: {"description": "Too many status changes"},
}


async def _change_status(
    db: AsyncSession,
    kind: AccountKind,
    account_id: UUID,
    data: StatusUpdateRequest,
    admin: Admin,
) -> StatusUpdateResponse:
    await enforce_actor_rate_limit(admin.id, "account_status")

    try:
        account = await service.set_account_status(
            db, kind, account_id, data.status, Actor.admin(admin.id), data.reason
        )
        return StatusUpdateResponse(
            id=account.id,
            status=account.status,
            end_date=account.end_date,
            message=f"{kind.value.title()} status updated to {account.status.value}",
        )
    except LifecycleError as e:
        logger.warning(
            f"Admin {admin.id} status change on {kind.value} {account_id} refused: {e.message}"
        )
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error changing {kind.value} {account_id} status: {e}")
        raise internal_http_exception() from e


# ============================================
# Students
# ============================================


@router.get("/students", response_model=StudentListResponse, summary="List Students")
async def list_students(
    status: AccountStatus | None = Query(None, description="Filter by account status"),
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
) -> StudentListResponse:
    students = await service.list_accounts(db, AccountKind.STUDENT, status)
    return StudentListResponse(
        items=[StudentResponse.model_validate(s) for s in students],
        total=len(students),
    )


@router.get("/students/{student_id}", response_model=StudentResponse, summary="Get Student")
async def get_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
) -> StudentResponse:
    try:
        student = await service.get_account(db, AccountKind.STUDENT, student_id)
        return StudentResponse.model_validate(student)
    except LifecycleError as e:
        raise to_http_exception(e) from e


@router.patch(
    "/students/{student_id}/status",
    response_model=StatusUpdateResponse,
    summary="Change Student Status",
    description="""
Activate or deactivate a student.

**Allowed targets:** `ACTIVE`, `INACTIVE`

**Effects:**
- `INACTIVE` sets `end_date` to now
- `ACTIVE` clears `end_date`
- One audit record is written with the optional reason

Requesting the status the student already has returns 409 `STATUS_ALREADY_SET`.
""",
    responses=STATUS_CHANGE_RESPONSES,
)
async def update_student_status(
    student_id: UUID,
    data: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
) -> StatusUpdateResponse:
    return await _change_status(db, AccountKind.STUDENT, student_id, data, admin)


# ============================================
# Instructors
# ============================================


@router.get("/instructors", response_model=InstructorListResponse, summary="List Instructors")
async def list_instructors(
    status: AccountStatus | None = Query(None, description="Filter by account status"),
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
) -> InstructorListResponse:
    instructors = await service.list_accounts(db, AccountKind.INSTRUCTOR, status)
    return InstructorListResponse(
        items=[InstructorResponse.model_validate(i) for i in instructors],
        total=len(instructors),
    )


@router.get(
    "/instructors/{instructor_id}",
    response_model=InstructorDetailResponse,
    summary="Get Instructor",
    description="Instructor details with verified certificates (signed document URLs).",
)
async def get_instructor(
    instructor_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
    blob_store: BlobStore = Depends(get_blob_store),
) -> InstructorDetailResponse:
    try:
        return await qualifications_service.get_instructor_detail(db, instructor_id, blob_store)
    except LifecycleError as e:
        raise to_http_exception(e) from e


@router.patch(
    "/instructors/{instructor_id}/status",
    response_model=StatusUpdateResponse,
    summary="Change Instructor Status",
    description="""
Deactivate or reactivate an instructor.

Pending instructors can be deactivated but not activated here; they become
ACTIVE when their first qualification is verified.
""",
    responses=STATUS_CHANGE_RESPONSES,
)
async def update_instructor_status(
    instructor_id: UUID,
    data: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
) -> StatusUpdateResponse:
    return await _change_status(db, AccountKind.INSTRUCTOR, instructor_id, data, admin)
