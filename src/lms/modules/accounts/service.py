"""
Accounts Service

Account lifecycle: registration, sign-in and administrative status changes
for the four account kinds.

Status rules:
- Administrators may only move accounts between ACTIVE and INACTIVE, and
  may deactivate a PENDING account. PENDING -> ACTIVE happens only through
  the qualification verification cascade, and an instructor without a
  VERIFIED qualification cannot be (re)activated by hand either.
- Asking for the status an account already has is refused with
  NoOpTransition and writes nothing.
- end_date is set when an account becomes INACTIVE and cleared when it
  becomes ACTIVE again.
- Every executed change writes exactly one audit record in the same
  transaction.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.auth import Principal, require_identity_match
from lms.core.config import settings
from lms.core.exceptions import (
    AccountInactive,
    DuplicateAccount,
    Forbidden,
    IllegalTransition,
    InvalidEmailDomain,
    InvalidStatus,
    NoOpTransition,
    NotFound,
)
from lms.modules.accounts import repository
from lms.modules.accounts.models import Account, AccountKind, AccountStatus, Admin
from lms.modules.accounts.schemas import (
    AdminCreateRequest,
    InstructorRegisterRequest,
    ProfileUpdateRequest,
    StudentRegisterRequest,
)
from lms.modules.audit import service as audit_service
from lms.modules.audit.models import SubjectType
from lms.modules.audit.service import Actor
from lms.modules.lifecycle import unit_of_work
from lms.modules.qualifications import repository as qualifications_repository

logger = logging.getLogger(__name__)

# Transitions reachable through the administrative "set status" operation
ACCOUNT_STATUS_TRANSITIONS: dict[AccountStatus, set[AccountStatus]] = {
    AccountStatus.ACTIVE: {AccountStatus.INACTIVE},
    AccountStatus.INACTIVE: {AccountStatus.ACTIVE},
    AccountStatus.PENDING: {AccountStatus.INACTIVE},
}

SETTABLE_STATUSES = (AccountStatus.ACTIVE, AccountStatus.INACTIVE)

SUBJECT_TYPES: dict[AccountKind, SubjectType] = {
    AccountKind.STUDENT: SubjectType.STUDENT,
    AccountKind.INSTRUCTOR: SubjectType.INSTRUCTOR,
    AccountKind.ADMIN: SubjectType.ADMIN,
}

PRIVILEGED_KINDS = (AccountKind.ADMIN, AccountKind.SUPER_ADMIN)

# Kinds whose email must not already be taken when a super-admin creates an admin
ADMIN_EMAIL_SCOPE = (AccountKind.ADMIN, AccountKind.INSTRUCTOR, AccountKind.SUPER_ADMIN)


def parse_settable_status(value: str | AccountStatus) -> AccountStatus:
    """
    Parse the target of a set-status request.

    Raises:
        InvalidStatus: For anything other than ACTIVE or INACTIVE
    """
    allowed = [s.value for s in SETTABLE_STATUSES]
    raw = value.value if isinstance(value, AccountStatus) else str(value).strip().upper()
    if raw not in allowed:
        raise InvalidStatus(str(value), allowed)
    return AccountStatus(raw)


def check_transition(current: AccountStatus, target: AccountStatus) -> None:
    """
    Validate a status change against the account state machine.

    Raises:
        NoOpTransition: If the account already has the target status
        IllegalTransition: If the state machine doesn't allow the change
    """
    if current == target:
        raise NoOpTransition(current.value)
    if target not in ACCOUNT_STATUS_TRANSITIONS.get(current, set()):
        raise IllegalTransition(current.value, target.value)


def apply_status(account: Account, target: AccountStatus, now: datetime | None = None) -> None:
    """Set the status and keep end_date in step with it."""
    account.status = target
    if target == AccountStatus.INACTIVE:
        account.end_date = now or datetime.now(UTC)
    elif target == AccountStatus.ACTIVE:
        account.end_date = None


async def set_account_status(
    db: AsyncSession,
    kind: AccountKind,
    account_id: UUID,
    target: str | AccountStatus,
    actor: Actor | None,
    reason: str | None = None,
) -> Account:
    """
    Administrative status change of a student, instructor or admin.

    Args:
        db: Database session
        kind: Kind of the subject account
        account_id: Subject account ID
        target: Requested status (ACTIVE or INACTIVE)
        actor: Acting principal: an admin for students and instructors,
            a super-admin for admins
        reason: Optional free-text reason for the audit trail

    Returns:
        The updated account

    Raises:
        InvalidStatus: Target is not ACTIVE or INACTIVE
        InvalidActor: Actor missing or of the wrong kind
        InvalidReason: Reason too long
        NotFound: Account does not exist
        NoOpTransition: Account already has the target status
        IllegalTransition: PENDING -> ACTIVE, or activating an instructor
            that has no VERIFIED qualification
    """
    if kind not in SUBJECT_TYPES:
        raise ValueError(f"Status of {kind.value} accounts cannot be changed administratively")

    subject_type = SUBJECT_TYPES[kind]
    target_status = parse_settable_status(target)
    audit_service.check_actor(subject_type, actor)
    reason = audit_service.normalize_reason(reason)

    async with unit_of_work(db):
        account = await repository.get_by_id(db, kind, account_id, for_update=True)
        if account is None:
            raise NotFound(kind.value.replace("_", " ").title(), account_id)

        old_status = account.status
        check_transition(old_status, target_status)
        if kind == AccountKind.INSTRUCTOR and target_status == AccountStatus.ACTIVE:
            if not await qualifications_repository.has_verified(db, account.id):
                raise IllegalTransition(old_status.value, target_status.value)

        now = datetime.now(UTC)
        apply_status(account, target_status, now)

        await audit_service.append(
            db,
            subject_type=subject_type,
            subject_id=account.id,
            old_status=old_status.value,
            new_status=target_status.value,
            actor=actor,
            reason=reason,
            changed_at=now,
        )

    logger.info(
        f"{kind.value} {account_id} status {old_status.value} -> {target_status.value} "
        f"by {actor.actor_type.value} {actor.actor_id}"
    )
    return account


# ============================================
# Sign-in
# ============================================


async def handle_privileged_login(
    db: AsyncSession, kind: AccountKind, principal: Principal
) -> Account:
    """
    Sign-in for admins and super-admins.

    Accounts created by a super-admin have no external identity until the
    first sign-in; it is bound here, once, from the token's subject claim.
    The bind is committed even if the sign-in is then refused.

    Raises:
        Forbidden: No account matches the principal
        AccountInactive: The account is INACTIVE
    """
    if kind not in PRIVILEGED_KINDS:
        raise ValueError(f"{kind.value} is not a privileged account kind")

    async with unit_of_work(db):
        account = await repository.get_by_email(db, kind, principal.email)

        if account is not None and account.external_id is None and principal.subject:
            account.external_id = principal.subject
            logger.info(f"Bound external identity to {kind.value} {account.id}")
        elif principal.subject:
            account = await repository.get_by_external_id(db, kind, principal.subject)

    if account is None:
        logger.warning(f"{kind.value} sign-in refused for {principal.email}: no account")
        raise Forbidden(f"No {kind.value.replace('_', ' ').lower()} account for this identity.")
    if account.status == AccountStatus.INACTIVE:
        logger.warning(f"{kind.value} sign-in refused for {principal.email}: inactive")
        raise AccountInactive(account.email)

    return account


async def login(db: AsyncSession, kind: AccountKind, principal: Principal) -> Account:
    """
    Sign-in for any account kind.

    Raises:
        Forbidden: No account matches the principal
        AccountInactive: The account is INACTIVE
    """
    if kind in PRIVILEGED_KINDS:
        return await handle_privileged_login(db, kind, principal)

    account = await repository.get_by_email(db, kind, principal.email)
    if account is None:
        raise Forbidden(f"No {kind.value.lower()} account for this identity.")
    if account.status == AccountStatus.INACTIVE:
        raise AccountInactive(account.email)
    return account


# ============================================
# Registration and provisioning
# ============================================


def _check_student_email_domain(email: str) -> None:
    domain = settings.student_email_domain
    if domain and not email.lower().endswith(domain.lower()):
        raise InvalidEmailDomain(domain)


async def _ensure_email_free(db: AsyncSession, email: str, kinds: tuple[AccountKind, ...]) -> None:
    for kind in kinds:
        if await repository.exists_by_email(db, kind, email):
            logger.warning(f"Duplicate {kind.value} email: {email}")
            raise DuplicateAccount(email)


async def register_student(
    db: AsyncSession, principal: Principal, data: StudentRegisterRequest
) -> Account:
    """Self-registration of a student. The account starts ACTIVE."""
    require_identity_match(principal.email, data.email)
    _check_student_email_domain(data.email)

    async with unit_of_work(db):
        await _ensure_email_free(db, data.email, (AccountKind.STUDENT,))
        student = await repository.create(
            db,
            AccountKind.STUDENT,
            email=data.email.lower(),
            external_id=principal.subject,
            name=data.name,
            phone=data.phone,
            date_of_birth=data.date_of_birth,
            status=AccountStatus.ACTIVE,
        )
    return student


async def register_instructor(
    db: AsyncSession, principal: Principal, data: InstructorRegisterRequest
) -> Account:
    """Self-registration of an instructor. The account starts PENDING."""
    require_identity_match(principal.email, data.email)

    async with unit_of_work(db):
        await _ensure_email_free(db, data.email, (AccountKind.INSTRUCTOR,))
        instructor = await repository.create(
            db,
            AccountKind.INSTRUCTOR,
            email=data.email.lower(),
            external_id=principal.subject,
            name=data.name,
            phone=data.phone,
            date_of_birth=data.date_of_birth,
            status=AccountStatus.PENDING,
        )
    return instructor


async def create_admin(db: AsyncSession, data: AdminCreateRequest, actor: Actor) -> Admin:
    """
    Create an admin account on behalf of a super-admin.

    The admin starts ACTIVE without an external identity; it is bound at the
    admin's first sign-in.

    Raises:
        DuplicateAccount: Email already used by an admin, instructor or super-admin
    """
    async with unit_of_work(db):
        await _ensure_email_free(db, data.email, ADMIN_EMAIL_SCOPE)
        admin = await repository.create(
            db,
            AccountKind.ADMIN,
            email=data.email.lower(),
            external_id=None,
            name=data.name,
            phone=data.phone,
            status=AccountStatus.ACTIVE,
        )

    logger.info(f"Super admin {actor.actor_id} created admin {admin.id}")
    return admin


async def update_profile(
    db: AsyncSession,
    kind: AccountKind,
    account_id: UUID,
    principal: Principal,
    data: ProfileUpdateRequest,
) -> Account:
    """
    Self-service profile update. Only the account's owner may change it.

    Raises:
        NotFound: Account does not exist
        Forbidden: Principal is not the account owner
    """
    async with unit_of_work(db):
        account = await repository.get_by_id(db, kind, account_id, for_update=True)
        if account is None:
            raise NotFound(kind.value.replace("_", " ").title(), account_id)
        require_identity_match(principal.email, account.email)

        updates = data.model_dump(exclude_unset=True)
        if updates.get("name") is None:
            updates.pop("name", None)
        for key, value in updates.items():
            setattr(account, key, value)

    return account


# ============================================
# Queries
# ============================================


async def list_accounts(
    db: AsyncSession, kind: AccountKind, status: AccountStatus | None = None
) -> list[Account]:
    return await repository.list_accounts(db, kind, status)


async def get_account(db: AsyncSession, kind: AccountKind, account_id: UUID) -> Account:
    """
    Raises:
        NotFound: If the account does not exist
    """
    account = await repository.get_by_id(db, kind, account_id)
    if account is None:
        raise NotFound(kind.value.replace("_", " ").title(), account_id)
    return account
