"""
Super Admin Router

Admin provisioning and admin status management. Only active super-admins
may use these endpoints.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.auth import get_current_super_admin
from lms.core.database import get_db
from lms.core.exceptions import LifecycleError, internal_http_exception, to_http_exception
from lms.core.rate_limit import enforce_actor_rate_limit
from lms.modules.accounts import service
from lms.modules.accounts.models import AccountKind, AccountStatus, SuperAdmin
from lms.modules.accounts.schemas import (
    AdminCreateRequest,
    AdminListResponse,
    AdminResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from lms.modules.audit.service import Actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/super-admin", tags=["Super Admin"])


@router.post(
    "/admins",
    response_model=AdminResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Admin",
    description="""
Create an admin account. The admin is ACTIVE immediately and its identity
is bound on first sign-in.

The email must not belong to an existing admin, instructor or super-admin.
""",
    responses={409: {"description": "Email already in use"}},
)
async def create_admin(
    data: AdminCreateRequest,
    db: AsyncSession = Depends(get_db),
    super_admin: SuperAdmin = Depends(get_current_super_admin),
) -> AdminResponse:
    try:
        admin = await service.create_admin(db, data, Actor.super_admin(super_admin.id))
        return AdminResponse.model_validate(admin)
    except LifecycleError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error creating admin: {e}")
        raise internal_http_exception() from e


@router.get("/admins", response_model=AdminListResponse, summary="List Admins")
async def list_admins(
    status: AccountStatus | None = Query(None, description="Filter by account status"),
    db: AsyncSession = Depends(get_db),
    super_admin: SuperAdmin = Depends(get_current_super_admin),
) -> AdminListResponse:
    admins = await service.list_accounts(db, AccountKind.ADMIN, status)
    return AdminListResponse(
        items=[AdminResponse.model_validate(a) for a in admins],
        total=len(admins),
    )


@router.get("/admins/{admin_id}", response_model=AdminResponse, summary="Get Admin")
async def get_admin(
    admin_id: UUID,
    db: AsyncSession = Depends(get_db),
    super_admin: SuperAdmin = Depends(get_current_super_admin),
) -> AdminResponse:
    try:
        admin = await service.get_account(db, AccountKind.ADMIN, admin_id)
        return AdminResponse.model_validate(admin)
    except LifecycleError as e:
        raise to_http_exception(e) from e


@router.patch(
    "/admins/{admin_id}/status",
    response_model=StatusUpdateResponse,
    summary="Change Admin Status",
    description="""
Activate or deactivate an admin. Deactivated admins are refused at sign-in
and by every admin endpoint.

Requesting the status the admin already has returns 409 `STATUS_ALREADY_SET`.
""",
)
async def update_admin_status(
    admin_id: UUID,
    data: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    super_admin: SuperAdmin = Depends(get_current_super_admin),
) -> StatusUpdateResponse:
    await enforce_actor_rate_limit(super_admin.id, "admin_status")

    try:
        admin = await service.set_account_status(
            db,
            AccountKind.ADMIN,
            admin_id,
            data.status,
            Actor.super_admin(super_admin.id),
            data.reason,
        )
        return StatusUpdateResponse(
            id=admin.id,
            status=admin.status,
            end_date=admin.end_date,
            message=f"Admin status updated to {admin.status.value}",
        )
    except LifecycleError as e:
        logger.warning(
            f"Super admin {super_admin.id} status change on admin {admin_id} refused: {e.message}"
        )
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error changing admin {admin_id} status: {e}")
        raise internal_http_exception() from e
