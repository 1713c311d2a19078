"""
Lifecycle Coordinator

Runs a status transition as one durable unit: the subject mutation, any
cascade and the audit records commit together or not at all.

Usage:
    async with unit_of_work(db) as uow:
        subject = await repository.get_by_id(db, subject_id, for_update=True)
        ...mutate subject, append audit record...
        uow.after_commit(retire_document, db, subject.id, reference, blob_store)

Post-commit hooks are best-effort side effects (blob deletion). They run only
after a successful commit and their failures are logged, never raised.

Rollback hooks undo side effects outside the database, such as blobs
uploaded before the transaction failed. They run after the rollback,
whether the body or the commit failed, and are best-effort too.
"""

import logging
from collections.abc import Awaitable, Callable
from functools import partial
from types import TracebackType
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.exceptions import InternalError, LifecycleError, StorageCleanupFailed

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Async context manager owning one transaction on a session."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._hooks: list[Callable[[], Awaitable[Any]]] = []
        self._rollback_hooks: list[Callable[[], Awaitable[Any]]] = []

    def after_commit(self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> None:
        """Schedule a coroutine function to run once the transaction commits."""
        self._hooks.append(partial(func, *args, **kwargs))

    def on_rollback(self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> None:
        """Schedule a coroutine function to run if the transaction rolls back."""
        self._rollback_hooks.append(partial(func, *args, **kwargs))

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc is None:
            try:
                await self.db.commit()
            except Exception as e:
                await self.db.rollback()
                logger.exception(f"Commit failed, transaction rolled back: {e}")
                await self._run_rollback_hooks()
                raise InternalError() from e
            self._rollback_hooks.clear()
            await self._run_hooks()
            return False

        await self.db.rollback()
        self._hooks.clear()
        await self._run_rollback_hooks()

        if isinstance(exc, LifecycleError):
            logger.info(f"Transaction rolled back: {exc.error_code}: {exc.message}")
            return False
        if not isinstance(exc, Exception):
            return False

        logger.exception(f"Unexpected error, transaction rolled back: {exc}", exc_info=exc)
        raise InternalError() from exc

    async def _run_hooks(self) -> None:
        hooks, self._hooks = self._hooks, []
        for hook in hooks:
            try:
                await hook()
            except StorageCleanupFailed as e:
                logger.warning(f"Post-commit storage cleanup deferred: {e.message}")
            except Exception as e:
                logger.error(f"Post-commit hook failed: {e}", exc_info=True)

    async def _run_rollback_hooks(self) -> None:
        hooks, self._rollback_hooks = self._rollback_hooks, []
        for hook in hooks:
            try:
                await hook()
            except Exception as e:
                logger.warning(f"Rollback hook failed: {e}", exc_info=True)


def unit_of_work(db: AsyncSession) -> UnitOfWork:
    return UnitOfWork(db)
