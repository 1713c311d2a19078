"""
Audit Trail Service

Writes exactly one status change record per committed transition. The write
happens inside the caller's transaction: if it fails, the status change it
describes is rolled back with it.

Records form a hash chain. Each record hash covers the record's canonical
JSON form and the previous record's hash, so editing or removing a stored
record breaks every later link. ``verify_chain`` recomputes the chain.
"""

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.config import settings
from lms.core.exceptions import InvalidActor, InvalidReason

from . import repository
from .models import ActorType, StatusChangeRecord, SubjectType

logger = logging.getLogger(__name__)

GENESIS_HASH = "sha256:" + "0" * 64

# The acting principal must be one privilege level above the subject.
REQUIRED_ACTOR_TYPES: dict[SubjectType, ActorType] = {
    SubjectType.ADMIN: ActorType.SUPER_ADMIN,
    SubjectType.STUDENT: ActorType.ADMIN,
    SubjectType.INSTRUCTOR: ActorType.ADMIN,
    SubjectType.QUALIFICATION: ActorType.ADMIN,
}


@dataclass(frozen=True)
class Actor:
    """The principal performing a status change."""

    actor_type: ActorType
    actor_id: UUID

    @classmethod
    def admin(cls, admin_id: UUID) -> "Actor":
        return cls(ActorType.ADMIN, admin_id)

    @classmethod
    def super_admin(cls, super_admin_id: UUID) -> "Actor":
        return cls(ActorType.SUPER_ADMIN, super_admin_id)


@dataclass
class ChainVerification:
    valid: bool
    records_checked: int
    broken_record_id: UUID | None = None


def normalize_reason(reason: str | None) -> str | None:
    """
    Trim a free-text reason; blank becomes None.

    Raises:
        InvalidReason: If the trimmed reason is too long
    """
    if reason is None:
        return None
    reason = reason.strip()
    if not reason:
        return None
    if len(reason) > settings.audit_reason_max_length:
        raise InvalidReason(settings.audit_reason_max_length)
    return reason


def check_actor(subject_type: SubjectType, actor: Actor | None) -> Actor:
    """
    Ensure the actor may change a subject of this type.

    Raises:
        InvalidActor: If no actor is given or it has the wrong privilege level
    """
    required = REQUIRED_ACTOR_TYPES[subject_type]
    if actor is None:
        raise InvalidActor(f"An acting {required.value.lower().replace('_', ' ')} is required.")
    if actor.actor_type != required:
        raise InvalidActor(
            f"{subject_type.value} status changes must be made by a {required.value}, "
            f"not a {actor.actor_type.value}."
        )
    return actor


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def compute_record_hash(record: StatusChangeRecord, previous_hash: str) -> str:
    """Hash a record's canonical form chained to its predecessor."""
    canonical = json.dumps(
        {
            "id": str(record.id),
            "subject_type": SubjectType(record.subject_type).value,
            "subject_id": str(record.subject_id),
            "old_status": record.old_status,
            "new_status": record.new_status,
            "actor_type": ActorType(record.actor_type).value,
            "actor_id": str(record.actor_id),
            "changed_at": _format_timestamp(record.changed_at),
            "reason": record.reason,
            "previous_hash": previous_hash,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


async def append(
    db: AsyncSession,
    *,
    subject_type: SubjectType,
    subject_id: UUID,
    old_status: str,
    new_status: str,
    actor: Actor | None,
    reason: str | None = None,
    changed_at: datetime | None = None,
) -> StatusChangeRecord:
    """
    Append a record for a transition in the current transaction.

    Does not commit. Errors propagate so the enclosing unit of work rolls
    back the transition together with the failed write.
    """
    actor = check_actor(subject_type, actor)
    reason = normalize_reason(reason)

    await repository.lock_chain(db)
    previous_hash = await repository.get_latest_hash(db) or GENESIS_HASH

    record = StatusChangeRecord(
        id=uuid.uuid4(),
        subject_type=subject_type,
        subject_id=subject_id,
        old_status=old_status,
        new_status=new_status,
        actor_type=actor.actor_type,
        actor_id=actor.actor_id,
        changed_at=changed_at or datetime.now(UTC),
        reason=reason,
        previous_hash=previous_hash,
    )
    record.record_hash = compute_record_hash(record, previous_hash)

    await repository.add(db, record)

    logger.info(
        f"Audit: {subject_type.value} {subject_id} {old_status} -> {new_status} "
        f"by {actor.actor_type.value} {actor.actor_id}"
    )
    return record


async def list_records(
    db: AsyncSession,
    *,
    subject_type: SubjectType | None = None,
    subject_id: UUID | None = None,
    allowed_types: frozenset[SubjectType] | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[StatusChangeRecord]:
    """List records newest first, optionally restricted to a set of subject types."""
    return await repository.find(
        db,
        subject_type=subject_type,
        subject_id=subject_id,
        allowed_types=allowed_types,
        limit=limit,
        offset=offset,
    )


async def subject_history(
    db: AsyncSession,
    subject_id: UUID,
    allowed_types: frozenset[SubjectType] | None = None,
) -> list[StatusChangeRecord]:
    return await repository.find_by_subject(db, subject_id, allowed_types=allowed_types)


async def verify_chain(db: AsyncSession) -> ChainVerification:
    """Recompute the hash chain and report the first broken link, if any."""
    records = await repository.list_in_chain_order(db)
    previous_hash = GENESIS_HASH

    for checked, record in enumerate(records, start=1):
        expected = compute_record_hash(record, previous_hash)
        if record.previous_hash != previous_hash or record.record_hash != expected:
            logger.error(f"Audit chain broken at record {record.id} (position {checked})")
            return ChainVerification(
                valid=False, records_checked=checked, broken_record_id=record.id
            )
        previous_hash = record.record_hash

    return ChainVerification(valid=True, records_checked=len(records))
