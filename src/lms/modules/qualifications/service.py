"""
Qualifications Service

Instructor credential submission and the admin verification decision.

Lifecycle: PENDING -> VERIFIED or PENDING -> REJECTED. Both outcomes are
final; a decided qualification is never decided again.

Rejection retires the stored document. Inside the transaction the document
reference is replaced by the RETIRED sentinel and the original reference is
parked in pending_cleanup_ref. The blob delete runs after commit and is
best-effort: if it fails, the rejection still stands and the cleanup job
retries the delete later.

Verification of an instructor's first qualification activates the
instructor account in the same transaction, with its own audit record.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.config import settings
from lms.core.exceptions import (
    ArityMismatch,
    IllegalTransition,
    InvalidDocument,
    InvalidStatus,
    MissingDocument,
    MissingSignature,
    NoOpTransition,
    NotFound,
    StorageCleanupFailed,
)
from lms.core.storage import BlobStore, BlobStoreError
from lms.modules.accounts import repository as accounts_repository
from lms.modules.accounts import service as accounts_service
from lms.modules.accounts.models import AccountKind, AccountStatus, Instructor
from lms.modules.audit import service as audit_service
from lms.modules.audit.models import SubjectType
from lms.modules.audit.service import Actor
from lms.modules.lifecycle import unit_of_work

from . import repository
from .models import DEFAULT_LEVEL, RETIRED_DOCUMENT_REF, Qualification, QualificationStatus
from .schemas import (
    CertificateResponse,
    InstructorDetailResponse,
    QualificationDetailResponse,
    QualificationResponse,
    RequirementStatusResponse,
)

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"

QUALIFICATION_STATUS_TRANSITIONS: dict[QualificationStatus, set[QualificationStatus]] = {
    QualificationStatus.PENDING: {QualificationStatus.VERIFIED, QualificationStatus.REJECTED},
    # Terminal states
    QualificationStatus.VERIFIED: set(),
    QualificationStatus.REJECTED: set(),
}

DECISION_STATUSES = (QualificationStatus.VERIFIED, QualificationStatus.REJECTED)


@dataclass
class DocumentUpload:
    """An uploaded file, already read into memory."""

    filename: str
    content_type: str | None
    content: bytes


@dataclass
class DecisionResult:
    qualification: Qualification
    instructor_status: AccountStatus | None = None
    instructor_activated: bool = False


# ============================================
# Submission
# ============================================


def _validate_document(document: DocumentUpload) -> None:
    if document.content_type != PDF_CONTENT_TYPE:
        raise InvalidDocument(f"{document.filename}: only PDF documents are accepted.")
    if not document.content:
        raise InvalidDocument(f"{document.filename}: file is empty.")
    if len(document.content) > settings.max_document_bytes:
        limit_mb = settings.max_document_bytes // (1024 * 1024)
        raise InvalidDocument(f"{document.filename}: file exceeds the {limit_mb} MB limit.")


def validate_submission(
    *,
    first_submission: bool,
    signature: DocumentUpload | None,
    documents: list[DocumentUpload],
    levels: list[str] | None,
    fields_of_study: list[str] | None,
) -> None:
    """
    Check a submission before anything is uploaded or written.

    Raises:
        MissingSignature: First submission without a signature
        MissingDocument: First submission without documents
        ArityMismatch: levels / fields_of_study don't match the documents
        InvalidDocument: A document is empty, too large or not a PDF
    """
    if first_submission and (signature is None or not signature.content):
        raise MissingSignature()
    if first_submission and not documents:
        raise MissingDocument()
    if levels is not None and len(levels) != len(documents):
        raise ArityMismatch("levels", len(documents), len(levels))
    if fields_of_study is not None and len(fields_of_study) != len(documents):
        raise ArityMismatch("fields_of_study", len(documents), len(fields_of_study))
    for document in documents:
        _validate_document(document)


def _signature_path(instructor_id: UUID, signature: DocumentUpload) -> str:
    _, dot, extension = signature.filename.rpartition(".")
    extension = extension.lower() if dot else "bin"
    return f"instructors/{instructor_id}/signature/{uuid.uuid4()}.{extension}"


def _document_path(instructor_id: UUID) -> str:
    return f"instructors/{instructor_id}/qualifications/{uuid.uuid4()}.pdf"


async def submit_qualifications(
    db: AsyncSession,
    instructor_id: UUID,
    *,
    documents: list[DocumentUpload],
    blob_store: BlobStore,
    signature: DocumentUpload | None = None,
    levels: list[str] | None = None,
    fields_of_study: list[str] | None = None,
) -> tuple[list[Qualification], bool]:
    """
    Submit qualification documents for review.

    The first submission must include the instructor's digital signature,
    which is stored once and never replaced; signatures sent with later
    submissions are ignored. Each document becomes one PENDING
    qualification. Blobs uploaded by a submission that then fails are
    deleted again once the transaction has rolled back.

    Returns:
        The created qualifications and whether a signature was stored

    Raises:
        NotFound: Instructor does not exist
        MissingSignature, MissingDocument, ArityMismatch, InvalidDocument:
            Submission is incomplete or malformed (nothing is written)
    """
    async with unit_of_work(db) as uow:
        instructor = await accounts_repository.get_by_id(
            db, AccountKind.INSTRUCTOR, instructor_id, for_update=True
        )
        if instructor is None:
            raise NotFound("Instructor", instructor_id)

        first_submission = instructor.digital_signature_ref is None
        validate_submission(
            first_submission=first_submission,
            signature=signature,
            documents=documents,
            levels=levels,
            fields_of_study=fields_of_study,
        )

        signature_stored = False
        if first_submission:
            instructor.digital_signature_ref = await blob_store.upload(
                signature.content,
                _signature_path(instructor.id, signature),
                signature.content_type or "application/octet-stream",
            )
            uow.on_rollback(blob_store.delete, instructor.digital_signature_ref)
            signature_stored = True
        elif signature is not None:
            logger.info(f"Ignoring re-supplied signature for instructor {instructor.id}")

        created = []
        for index, document in enumerate(documents):
            reference = await blob_store.upload(
                document.content, _document_path(instructor.id), PDF_CONTENT_TYPE
            )
            uow.on_rollback(blob_store.delete, reference)
            level = (levels[index].strip() if levels else "") or DEFAULT_LEVEL
            field = (fields_of_study[index].strip() if fields_of_study else "") or None
            created.append(
                await repository.create(
                    db,
                    instructor_id=instructor.id,
                    document_ref=reference,
                    level=level,
                    field_of_study=field,
                )
            )

    logger.info(
        f"Instructor {instructor_id} submitted {len(created)} qualification(s)"
        f"{' with signature' if signature_stored else ''}"
    )
    return created, signature_stored


# ============================================
# Decision
# ============================================


def parse_decision_status(value: str | QualificationStatus) -> QualificationStatus:
    """
    Raises:
        InvalidStatus: For anything other than VERIFIED or REJECTED
    """
    allowed = [s.value for s in DECISION_STATUSES]
    raw = value.value if isinstance(value, QualificationStatus) else str(value).strip().upper()
    if raw not in allowed:
        raise InvalidStatus(str(value), allowed)
    return QualificationStatus(raw)


def check_transition(current: QualificationStatus, target: QualificationStatus) -> None:
    """
    Raises:
        NoOpTransition: Qualification already has the target status
        IllegalTransition: Qualification was already decided the other way
    """
    if current == target:
        raise NoOpTransition(current.value)
    if target not in QUALIFICATION_STATUS_TRANSITIONS[current]:
        raise IllegalTransition(current.value, target.value)


async def retire_document(
    db: AsyncSession,
    qualification_id: UUID,
    reference: str,
    blob_store: BlobStore,
) -> None:
    """
    Delete a rejected qualification's document from storage and clear the
    pending cleanup marker. Safe to repeat.

    Raises:
        StorageCleanupFailed: If storage did not confirm the delete
    """
    try:
        await blob_store.delete(reference)
    except BlobStoreError as e:
        raise StorageCleanupFailed(reference, str(e)) from e

    async with unit_of_work(db):
        qualification = await repository.get_by_id(db, qualification_id, for_update=True)
        if qualification is not None and qualification.pending_cleanup_ref == reference:
            qualification.pending_cleanup_ref = None

    logger.info(f"Retired document of qualification {qualification_id}")


async def _activate_instructor_if_first_verified(
    db: AsyncSession,
    qualification: Qualification,
    instructor: Instructor,
    actor: Actor,
    now: datetime,
) -> tuple[AccountStatus | None, bool]:
    """Cascade: activate the owning instructor on its first VERIFIED qualification."""
    if instructor.status == AccountStatus.ACTIVE:
        return instructor.status, False
    if await repository.has_verified(db, instructor.id, exclude_id=qualification.id):
        return instructor.status, False

    old_status = instructor.status
    accounts_service.apply_status(instructor, AccountStatus.ACTIVE, now)
    await audit_service.append(
        db,
        subject_type=SubjectType.INSTRUCTOR,
        subject_id=instructor.id,
        old_status=old_status.value,
        new_status=AccountStatus.ACTIVE.value,
        actor=actor,
        reason="First qualification verified",
        changed_at=now,
    )
    logger.info(f"Instructor {instructor.id} activated ({old_status.value} -> ACTIVE)")
    return instructor.status, True


async def decide_qualification(
    db: AsyncSession,
    qualification_id: UUID,
    target: str | QualificationStatus,
    actor: Actor | None,
    blob_store: BlobStore,
    reason: str | None = None,
) -> DecisionResult:
    """
    Verify or reject a PENDING qualification.

    Every decision stamps decided_by_admin_id / decided_at and writes one
    audit record. Rejection retires the document (see module docstring);
    the first verification for an instructor activates the instructor.

    Raises:
        InvalidStatus: Target is not VERIFIED or REJECTED
        NotFound: Qualification does not exist
        InvalidActor: No acting admin
        NoOpTransition: Qualification already has the target status
        IllegalTransition: Qualification was already decided
    """
    target_status = parse_decision_status(target)
    result: DecisionResult

    async with unit_of_work(db) as uow:
        qualification = await repository.get_by_id(db, qualification_id, for_update=True)
        if qualification is None:
            raise NotFound("Qualification", qualification_id)

        actor = audit_service.check_actor(SubjectType.QUALIFICATION, actor)
        reason = audit_service.normalize_reason(reason)

        old_status = qualification.status
        check_transition(old_status, target_status)

        # Row locks before the audit chain lock, in the same order as set-status
        instructor = None
        if target_status == QualificationStatus.VERIFIED:
            instructor = await accounts_repository.get_by_id(
                db, AccountKind.INSTRUCTOR, qualification.instructor_id, for_update=True
            )
            if instructor is None:
                raise NotFound("Instructor", qualification.instructor_id)

        now = datetime.now(UTC)
        qualification.status = target_status
        qualification.decided_by_admin_id = actor.actor_id
        qualification.decided_at = now

        if target_status == QualificationStatus.REJECTED:
            qualification.rejection_reason = reason
            original_ref = qualification.document_ref
            qualification.document_ref = RETIRED_DOCUMENT_REF
            if original_ref and original_ref != RETIRED_DOCUMENT_REF:
                qualification.pending_cleanup_ref = original_ref
                uow.after_commit(retire_document, db, qualification.id, original_ref, blob_store)

        await audit_service.append(
            db,
            subject_type=SubjectType.QUALIFICATION,
            subject_id=qualification.id,
            old_status=old_status.value,
            new_status=target_status.value,
            actor=actor,
            reason=reason,
            changed_at=now,
        )

        result = DecisionResult(qualification=qualification)
        if instructor is not None:
            status, activated = await _activate_instructor_if_first_verified(
                db, qualification, instructor, actor, now
            )
            result.instructor_status = status
            result.instructor_activated = activated

    logger.info(
        f"Qualification {qualification_id} {old_status.value} -> {target_status.value} "
        f"by admin {actor.actor_id}"
    )
    return result


# ============================================
# Read views
# ============================================


async def _signed_url(blob_store: BlobStore, reference: str | None) -> str | None:
    if not reference or reference == RETIRED_DOCUMENT_REF:
        return None
    try:
        return await blob_store.signed_url(reference, settings.signed_url_ttl_seconds)
    except BlobStoreError as e:
        logger.warning(f"Could not sign document URL: {e}")
        return None


async def to_response(qualification: Qualification, blob_store: BlobStore) -> QualificationResponse:
    return QualificationResponse(
        id=qualification.id,
        instructor_id=qualification.instructor_id,
        level=qualification.level,
        field_of_study=qualification.field_of_study,
        status=qualification.status,
        rejection_reason=qualification.rejection_reason,
        decided_by_admin_id=qualification.decided_by_admin_id,
        decided_at=qualification.decided_at,
        submitted_at=qualification.submitted_at,
        document_url=await _signed_url(blob_store, qualification.document_ref),
        document_retired=qualification.document_ref == RETIRED_DOCUMENT_REF,
    )


async def to_certificate(
    qualification: Qualification, blob_store: BlobStore
) -> CertificateResponse:
    return CertificateResponse(
        id=qualification.id,
        level=qualification.level,
        field_of_study=qualification.field_of_study,
        verified_at=qualification.decided_at,
        document_url=await _signed_url(blob_store, qualification.document_ref),
    )


async def get_history(
    db: AsyncSession, instructor: Instructor, blob_store: BlobStore
) -> list[QualificationResponse]:
    """Every qualification the instructor has submitted, including rejected ones."""
    qualifications = await repository.list_by_instructor(db, instructor.id)
    return [await to_response(q, blob_store) for q in qualifications]


async def get_requirement_status(
    db: AsyncSession, instructor: Instructor
) -> RequirementStatusResponse:
    counts = await repository.count_by_status(db, instructor.id)
    return RequirementStatusResponse(
        instructor_status=instructor.status,
        has_signature=instructor.digital_signature_ref is not None,
        pending=counts[QualificationStatus.PENDING],
        verified=counts[QualificationStatus.VERIFIED],
        rejected=counts[QualificationStatus.REJECTED],
    )


def parse_status_filter(value: str | None) -> QualificationStatus | None:
    if value is None or not value.strip():
        return None
    try:
        return QualificationStatus(value.strip().upper())
    except ValueError as e:
        raise InvalidStatus(value, [s.value for s in QualificationStatus]) from e


async def list_for_admin(
    db: AsyncSession, blob_store: BlobStore, status: str | None = None
) -> list[QualificationResponse]:
    qualifications = await repository.list_all(db, parse_status_filter(status))
    return [await to_response(q, blob_store) for q in qualifications]


async def get_detail(
    db: AsyncSession, qualification_id: UUID, blob_store: BlobStore
) -> QualificationDetailResponse:
    """
    Admin review view of one qualification, with the submitting instructor
    and a signed URL to the instructor's digital signature.

    Raises:
        NotFound: Qualification does not exist
    """
    qualification = await repository.get_by_id(db, qualification_id)
    if qualification is None:
        raise NotFound("Qualification", qualification_id)

    instructor = await accounts_repository.get_by_id(
        db, AccountKind.INSTRUCTOR, qualification.instructor_id
    )
    response = await to_response(qualification, blob_store)
    return QualificationDetailResponse(
        **response.model_dump(),
        instructor_name=instructor.name if instructor else None,
        instructor_email=instructor.email if instructor else None,
        signature_url=await _signed_url(
            blob_store, instructor.digital_signature_ref if instructor else None
        ),
    )


async def get_verified_certificates(
    db: AsyncSession, instructor_id: UUID, blob_store: BlobStore
) -> list[CertificateResponse]:
    """
    Externally visible certificates. Only VERIFIED qualifications are listed.

    Raises:
        NotFound: Instructor does not exist
    """
    instructor = await accounts_repository.get_by_id(db, AccountKind.INSTRUCTOR, instructor_id)
    if instructor is None:
        raise NotFound("Instructor", instructor_id)

    verified = await repository.list_by_instructor(
        db, instructor_id, status=QualificationStatus.VERIFIED
    )
    return [await to_certificate(q, blob_store) for q in verified]


async def get_instructor_detail(
    db: AsyncSession, instructor_id: UUID, blob_store: BlobStore
) -> InstructorDetailResponse:
    """Admin view of an instructor with its verified certificates."""
    instructor = await accounts_service.get_account(db, AccountKind.INSTRUCTOR, instructor_id)
    certificates = await get_verified_certificates(db, instructor_id, blob_store)
    return InstructorDetailResponse(
        id=instructor.id,
        email=instructor.email,
        name=instructor.name,
        phone=instructor.phone,
        status=instructor.status,
        registered_at=instructor.registered_at,
        end_date=instructor.end_date,
        date_of_birth=instructor.date_of_birth,
        has_signature=instructor.digital_signature_ref is not None,
        certificates=certificates,
    )
