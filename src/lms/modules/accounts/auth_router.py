"""
Auth Router

Registration and sign-in endpoints. Credentials are verified by the external
identity provider; these endpoints map the verified principal to an account.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.auth import Principal, get_principal
from lms.core.database import get_db
from lms.core.exceptions import LifecycleError, internal_http_exception, to_http_exception
from lms.modules.accounts import service
from lms.modules.accounts.models import Account, AccountKind
from lms.modules.accounts.schemas import (
    InstructorRegisterRequest,
    InstructorResponse,
    LoginResponse,
    StudentRegisterRequest,
    StudentResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _login_response(account: Account, kind: AccountKind) -> LoginResponse:
    return LoginResponse(
        account_id=account.id,
        kind=kind,
        email=account.email,
        name=account.name,
        status=account.status,
    )


async def _login(db: AsyncSession, kind: AccountKind, principal: Principal) -> LoginResponse:
    try:
        account = await service.login(db, kind, principal)
        logger.info(f"{kind.value} {account.id} signed in")
        return _login_response(account, kind)
    except LifecycleError as e:
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error during {kind.value} sign-in: {e}")
        raise internal_http_exception() from e


@router.post(
    "/students/register",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register Student",
    description="""
Create the student account for the authenticated identity.

The email must match the token's email claim and, when configured, the
institution's student email domain. Students start ACTIVE.
""",
)
async def register_student(
    data: StudentRegisterRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    try:
        student = await service.register_student(db, principal, data)
        return StudentResponse.model_validate(student)
    except LifecycleError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error registering student: {e}")
        raise internal_http_exception() from e


@router.post(
    "/instructors/register",
    response_model=InstructorResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register Instructor",
    description="""
Create the instructor account for the authenticated identity.

Instructors start PENDING and become ACTIVE once an admin verifies their
first qualification.
""",
)
async def register_instructor(
    data: InstructorRegisterRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> InstructorResponse:
    try:
        instructor = await service.register_instructor(db, principal, data)
        return InstructorResponse.model_validate(instructor)
    except LifecycleError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error registering instructor: {e}")
        raise internal_http_exception() from e


@router.post("/students/login", response_model=LoginResponse, summary="Student Sign-in")
async def login_student(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    return await _login(db, AccountKind.STUDENT, principal)


@router.post("/instructors/login", response_model=LoginResponse, summary="Instructor Sign-in")
async def login_instructor(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    return await _login(db, AccountKind.INSTRUCTOR, principal)


@router.post(
    "/admins/login",
    response_model=LoginResponse,
    summary="Admin Sign-in",
    description="""
Sign in as an admin. On the first sign-in of an admin created by a
super-admin, the identity provider's subject is bound to the account.
Inactive admins are refused with `ACCOUNT_INACTIVE`.
""",
)
async def login_admin(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    return await _login(db, AccountKind.ADMIN, principal)


@router.post("/super-admins/login", response_model=LoginResponse, summary="Super Admin Sign-in")
async def login_super_admin(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    return await _login(db, AccountKind.SUPER_ADMIN, principal)
