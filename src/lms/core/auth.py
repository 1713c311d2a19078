"""
Authorization Gate

Resolves a bearer credential to the acting principal and checks the
principal's account before any lifecycle mutation is allowed.

The checks themselves (``resolve_principal``, ``require_active``,
``require_active_or_pending``, ``require_identity_match``) are plain
functions without side effects. The ``get_current_*`` FastAPI dependencies
combine them with an account lookup and convert failures to HTTP errors.

Privileged operations need an ACTIVE account. Instructors who are still
onboarding use the active-or-pending variant, which allows PENDING but
never INACTIVE.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.database import get_db
from lms.core.exceptions import Forbidden, LifecycleError, Unauthenticated, to_http_exception
from lms.core.security import decode_token
from lms.modules.accounts import repository as accounts_repository
from lms.modules.accounts.models import (
    Account,
    AccountKind,
    AccountStatus,
    Admin,
    Instructor,
    Student,
    SuperAdmin,
)

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

security = HTTPBearer(
    auto_error=False,
    description="Bearer token issued by the identity provider",
)


@dataclass
class Principal:
    """
    An authenticated caller, as asserted by a verified token.

    Attributes:
        email: Lower-cased email claim
        subject: The identity provider's subject claim ("sub"), if present
        claims: All verified claims
    """

    email: str
    subject: str | None = None
    claims: dict[str, Any] = field(default_factory=dict, repr=False)


def resolve_principal(authorization: str | None) -> Principal:
    """
    Resolve an Authorization header value to a principal.

    Raises:
        Unauthenticated: If the credential is missing or malformed, fails
            verification, or has no email claim
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthenticated("Missing or malformed bearer credential.", "MALFORMED_CREDENTIAL")

    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token:
        raise Unauthenticated("Missing or malformed bearer credential.", "MALFORMED_CREDENTIAL")

    claims = decode_token(token)
    if claims is None:
        raise Unauthenticated()

    email = claims.get("email")
    if not isinstance(email, str) or not email.strip():
        logger.warning(f"Token for subject {claims.get('sub')} has no email claim")
        raise Unauthenticated("Token has no email claim.", "MISSING_EMAIL_CLAIM")

    return Principal(email=email.strip().lower(), subject=claims.get("sub"), claims=claims)


def require_active(entity: Account | None, role: str) -> Account:
    """
    Require an ACTIVE account of the expected role.

    Raises:
        Forbidden: If no account exists, or it is PENDING or INACTIVE
    """
    if entity is None:
        raise Forbidden(f"{role} access is required.", "ROLE_REQUIRED")
    if entity.status != AccountStatus.ACTIVE:
        logger.warning(f"Refused {role} {entity.id}: status is {entity.status.value}")
        raise Forbidden(f"{role} account is {entity.status.value.lower()}.", "ACCOUNT_NOT_ACTIVE")
    return entity


def require_active_or_pending(entity: Account | None, role: str) -> Account:
    """
    Like ``require_active`` but lets PENDING accounts through (onboarding).

    Raises:
        Forbidden: If no account exists or it is INACTIVE
    """
    if entity is None:
        raise Forbidden(f"{role} access is required.", "ROLE_REQUIRED")
    if entity.status == AccountStatus.INACTIVE:
        logger.warning(f"Refused {role} {entity.id}: account is inactive")
        raise Forbidden(f"{role} account is inactive.", "ACCOUNT_NOT_ACTIVE")
    return entity


def require_identity_match(claims_email: str, resource_email: str) -> None:
    """
    Require that a principal acts on its own resource.

    Raises:
        Forbidden: If the emails differ (compared case-insensitively)
    """
    if claims_email.strip().lower() != resource_email.strip().lower():
        logger.warning(f"Identity mismatch: {claims_email} tried to act on {resource_email}")
        raise Forbidden("You can only act on your own account.", "IDENTITY_MISMATCH")


# ============================================
# FastAPI dependencies
# ============================================


async def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Principal:
    """Resolve the request's bearer credential to a principal."""
    authorization = f"{BEARER_PREFIX}{credentials.credentials}" if credentials else None
    try:
        return resolve_principal(authorization)
    except LifecycleError as e:
        raise to_http_exception(e) from e


async def _load_account(
    db: AsyncSession, kind: AccountKind, principal: Principal
) -> Account | None:
    return await accounts_repository.get_by_email(db, kind, principal.email)


async def get_current_super_admin(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> SuperAdmin:
    account = await _load_account(db, AccountKind.SUPER_ADMIN, principal)
    try:
        return require_active(account, "Super admin")
    except LifecycleError as e:
        raise to_http_exception(e) from e


async def get_current_admin(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> Admin:
    account = await _load_account(db, AccountKind.ADMIN, principal)
    try:
        return require_active(account, "Admin")
    except LifecycleError as e:
        raise to_http_exception(e) from e


async def get_current_instructor(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> Instructor:
    """Instructor dependency; PENDING instructors are allowed so they can onboard."""
    account = await _load_account(db, AccountKind.INSTRUCTOR, principal)
    try:
        return require_active_or_pending(account, "Instructor")
    except LifecycleError as e:
        raise to_http_exception(e) from e


async def get_current_student(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> Student:
    account = await _load_account(db, AccountKind.STUDENT, principal)
    try:
        return require_active(account, "Student")
    except LifecycleError as e:
        raise to_http_exception(e) from e


__all__ = [
    "Principal",
    "get_current_admin",
    "get_current_instructor",
    "get_current_student",
    "get_current_super_admin",
    "get_principal",
    "require_active",
    "require_active_or_pending",
    "require_identity_match",
    "resolve_principal",
]
