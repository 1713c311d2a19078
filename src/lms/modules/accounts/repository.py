"""
Accounts Repository

Database operations shared by the four account tables. Every function takes
the account kind and resolves the concrete model from it. Nothing here
commits; transactions belong to the caller.
"""

import logging
from uuid import UUID

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ACCOUNT_MODELS, Account, AccountKind, AccountStatus

logger = logging.getLogger(__name__)


async def get_by_id(
    db: AsyncSession,
    kind: AccountKind,
    account_id: UUID,
    *,
    for_update: bool = False,
) -> Account | None:
    """
    Get an account by ID.

    With ``for_update`` the row is locked until the transaction ends, so a
    read-modify-write of its status cannot race another request.
    """
    model = ACCOUNT_MODELS[kind]
    if not for_update:
        return await db.get(model, account_id)

    result = await db.execute(select(model).where(model.id == account_id).with_for_update())
    return result.scalar_one_or_none()


async def get_by_email(db: AsyncSession, kind: AccountKind, email: str) -> Account | None:
    """Get an account by email (case-insensitive)."""
    model = ACCOUNT_MODELS[kind]
    result = await db.execute(select(model).where(func.lower(model.email) == email.lower()))
    return result.scalar_one_or_none()


async def get_by_external_id(
    db: AsyncSession, kind: AccountKind, external_id: str
) -> Account | None:
    model = ACCOUNT_MODELS[kind]
    result = await db.execute(select(model).where(model.external_id == external_id))
    return result.scalar_one_or_none()


async def list_accounts(
    db: AsyncSession,
    kind: AccountKind,
    status: AccountStatus | None = None,
) -> list[Account]:
    """List accounts of a kind, optionally filtered by status, newest first."""
    model = ACCOUNT_MODELS[kind]
    query = select(model)
    if status is not None:
        query = query.where(model.status == status)
    result = await db.execute(query.order_by(model.registered_at.desc()))
    return list(result.scalars().all())


async def exists_by_email(db: AsyncSession, kind: AccountKind, email: str) -> bool:
    model = ACCOUNT_MODELS[kind]
    result = await db.execute(select(exists().where(func.lower(model.email) == email.lower())))
    return bool(result.scalar())


async def create(db: AsyncSession, kind: AccountKind, **fields) -> Account:
    """Create an account of the given kind and flush it to obtain its ID."""
    account = ACCOUNT_MODELS[kind](**fields)
    db.add(account)
    await db.flush()
    await db.refresh(account)

    logger.info(f"Created {kind.value} account {account.id} ({account.email})")
    return account
