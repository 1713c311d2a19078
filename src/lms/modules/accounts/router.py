"""
Self-Service Account Router

Endpoints for students and instructors to read and edit their own profile.
Profile updates are addressed by account ID and only the owner may edit.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.auth import Principal, get_current_instructor, get_current_student, get_principal
from lms.core.database import get_db
from lms.core.exceptions import LifecycleError, internal_http_exception, to_http_exception
from lms.modules.accounts import service
from lms.modules.accounts.models import AccountKind, Instructor, Student
from lms.modules.accounts.schemas import InstructorResponse, ProfileUpdateRequest, StudentResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Accounts"])


@router.get("/students/me", response_model=StudentResponse, summary="Current Student")
async def get_my_student_account(
    student: Student = Depends(get_current_student),
) -> StudentResponse:
    return StudentResponse.model_validate(student)


@router.patch(
    "/students/{student_id}/profile",
    response_model=StudentResponse,
    summary="Update Student Profile",
    responses={403: {"description": "Not the owner of this account"}},
)
async def update_student_profile(
    student_id: UUID,
    data: ProfileUpdateRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        student = await service.update_profile(db, AccountKind.STUDENT, student_id, principal, data)
        return StudentResponse.model_validate(student)
    except LifecycleError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error updating student {student_id} profile: {e}")
        raise internal_http_exception() from e


@router.get("/instructors/me", response_model=InstructorResponse, summary="Current Instructor")
async def get_my_instructor_account(
    instructor: Instructor = Depends(get_current_instructor),
) -> InstructorResponse:
    return InstructorResponse.model_validate(instructor)


@router.patch(
    "/instructors/{instructor_id}/profile",
    response_model=InstructorResponse,
    summary="Update Instructor Profile",
    responses={403: {"description": "Not the owner of this account"}},
)
async def update_instructor_profile(
    instructor_id: UUID,
    data: ProfileUpdateRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> InstructorResponse:
    try:
        instructor = await service.update_profile(
            db, AccountKind.INSTRUCTOR, instructor_id, principal, data
        )
        return InstructorResponse.model_validate(instructor)
    except LifecycleError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error updating instructor {instructor_id} profile: {e}")
        raise internal_http_exception() from e
