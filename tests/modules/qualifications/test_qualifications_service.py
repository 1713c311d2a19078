"""
Tests for the qualifications service.

These tests verify:
- Submission validation (signature, documents, metadata arity)
- The PENDING -> VERIFIED / REJECTED decision and its terminal states
- The instructor activation cascade on the first verification
- Document retirement on rejection, including failed blob deletes
"""

from unittest.mock import AsyncMock, MagicMock, call, patch
from uuid import uuid4

import pytest

from lms.core.config import settings
from lms.core.exceptions import (
    ArityMismatch,
    IllegalTransition,
    InternalError,
    InvalidActor,
    InvalidDocument,
    InvalidStatus,
    MissingDocument,
    MissingSignature,
    NoOpTransition,
    NotFound,
    StorageCleanupFailed,
)
from lms.core.storage import BlobStoreError
from lms.modules.accounts.models import AccountKind, AccountStatus
from lms.modules.audit.models import SubjectType
from lms.modules.qualifications.models import (
    DEFAULT_LEVEL,
    RETIRED_DOCUMENT_REF,
    Qualification,
    QualificationStatus,
)
from lms.modules.qualifications.service import (
    QUALIFICATION_STATUS_TRANSITIONS,
    DocumentUpload,
    decide_qualification,
    get_detail,
    get_requirement_status,
    get_verified_certificates,
    parse_decision_status,
    retire_document,
    submit_qualifications,
    to_response,
)

SERVICE = "lms.modules.qualifications.service"


@pytest.fixture
def mock_append():
    with patch(f"{SERVICE}.audit_service.append", new_callable=AsyncMock) as append:
        yield append


# ============================================
# Test state machine
# ============================================


class TestDecisionTransitions:
    def test_pending_can_be_decided_either_way(self):
        valid = QUALIFICATION_STATUS_TRANSITIONS[QualificationStatus.PENDING]
        assert valid == {QualificationStatus.VERIFIED, QualificationStatus.REJECTED}

    @pytest.mark.parametrize("status", [QualificationStatus.VERIFIED, QualificationStatus.REJECTED])
    def test_decided_states_are_terminal(self, status):
        assert QUALIFICATION_STATUS_TRANSITIONS[status] == set()

    def test_parse_decision_status(self):
        assert parse_decision_status(" verified ") == QualificationStatus.VERIFIED
        with pytest.raises(InvalidStatus):
            parse_decision_status("PENDING")


# ============================================
# Test submit_qualifications
# ============================================


@pytest.mark.asyncio
async def test_first_submission_without_signature(
    mock_db, pending_instructor, pdf_document, mock_blob_store
):
    """Nothing is uploaded or created when the signature is missing."""
    with (
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
        patch(f"{SERVICE}.repository") as mock_repo,
    ):
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)
        mock_repo.create = AsyncMock()

        with pytest.raises(MissingSignature):
            await submit_qualifications(
                mock_db,
                pending_instructor.id,
                documents=[pdf_document],
                blob_store=mock_blob_store,
            )

    mock_repo.create.assert_not_called()
    mock_blob_store.upload.assert_not_called()
    assert pending_instructor.digital_signature_ref is None
    mock_db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_first_submission_without_documents(
    mock_db, pending_instructor, signature_image, mock_blob_store
):
    with patch(f"{SERVICE}.accounts_repository") as mock_accounts:
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)

        with pytest.raises(MissingDocument):
            await submit_qualifications(
                mock_db,
                pending_instructor.id,
                documents=[],
                signature=signature_image,
                blob_store=mock_blob_store,
            )

    mock_blob_store.upload.assert_not_called()


@pytest.mark.asyncio
async def test_first_submission(
    mock_db, pending_instructor, pdf_document, signature_image, mock_blob_store
):
    second = DocumentUpload("masters.pdf", "application/pdf", b"%PDF-1.7 masters")

    with (
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
        patch(f"{SERVICE}.repository") as mock_repo,
    ):
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)
        mock_repo.create = AsyncMock(side_effect=lambda db, **fields: MagicMock(**fields))

        created, signature_stored = await submit_qualifications(
            mock_db,
            pending_instructor.id,
            documents=[pdf_document, second],
            signature=signature_image,
            levels=["DEGREE", " "],
            fields_of_study=["Computer Science", ""],
            blob_store=mock_blob_store,
        )

    assert signature_stored
    assert len(created) == 2
    assert mock_blob_store.upload.await_count == 3
    assert pending_instructor.digital_signature_ref.startswith("https://storage.test/")
    assert "/signature/" in pending_instructor.digital_signature_ref

    first_fields = mock_repo.create.call_args_list[0].kwargs
    second_fields = mock_repo.create.call_args_list[1].kwargs
    assert first_fields["level"] == "DEGREE"
    assert first_fields["field_of_study"] == "Computer Science"
    assert second_fields["level"] == DEFAULT_LEVEL
    assert second_fields["field_of_study"] is None
    assert first_fields["instructor_id"] == pending_instructor.id
    assert first_fields["document_ref"] != second_fields["document_ref"]
    mock_db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_later_submission_keeps_existing_signature(
    mock_db, pending_instructor, pdf_document, signature_image, mock_blob_store
):
    pending_instructor.digital_signature_ref = "https://storage.test/original-signature.png"

    with (
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
        patch(f"{SERVICE}.repository") as mock_repo,
    ):
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)
        mock_repo.create = AsyncMock(side_effect=lambda db, **fields: MagicMock(**fields))

        created, signature_stored = await submit_qualifications(
            mock_db,
            pending_instructor.id,
            documents=[pdf_document],
            signature=signature_image,
            blob_store=mock_blob_store,
        )

    assert not signature_stored
    assert len(created) == 1
    assert mock_blob_store.upload.await_count == 1
    assert pending_instructor.digital_signature_ref == "https://storage.test/original-signature.png"


@pytest.mark.asyncio
async def test_submission_arity_mismatch(
    mock_db, pending_instructor, pdf_document, signature_image, mock_blob_store
):
    with (
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
        patch(f"{SERVICE}.repository") as mock_repo,
    ):
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)
        mock_repo.create = AsyncMock()

        with pytest.raises(ArityMismatch):
            await submit_qualifications(
                mock_db,
                pending_instructor.id,
                documents=[pdf_document],
                signature=signature_image,
                levels=["DEGREE", "MASTER"],
                blob_store=mock_blob_store,
            )

    mock_repo.create.assert_not_called()
    mock_blob_store.upload.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "document",
    [
        DocumentUpload("scan.jpg", "image/jpeg", b"\xff\xd8"),
        DocumentUpload("empty.pdf", "application/pdf", b""),
    ],
)
async def test_submission_rejects_bad_documents(
    mock_db, pending_instructor, signature_image, mock_blob_store, document
):
    with patch(f"{SERVICE}.accounts_repository") as mock_accounts:
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)

        with pytest.raises(InvalidDocument):
            await submit_qualifications(
                mock_db,
                pending_instructor.id,
                documents=[document],
                signature=signature_image,
                blob_store=mock_blob_store,
            )

    mock_blob_store.upload.assert_not_called()


@pytest.mark.asyncio
async def test_empty_levels_list_is_an_arity_mismatch(
    mock_db, pending_instructor, pdf_document, signature_image, mock_blob_store
):
    with patch(f"{SERVICE}.accounts_repository") as mock_accounts:
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)

        with pytest.raises(ArityMismatch):
            await submit_qualifications(
                mock_db,
                pending_instructor.id,
                documents=[pdf_document],
                signature=signature_image,
                levels=[],
                blob_store=mock_blob_store,
            )

    mock_blob_store.upload.assert_not_called()


@pytest.mark.asyncio
async def test_failed_upload_removes_earlier_blobs(
    mock_db, pending_instructor, pdf_document, signature_image, mock_blob_store
):
    """A storage failure mid-submission leaves no uploaded objects behind."""
    uploaded = []

    async def upload(content, path, content_type):
        if len(uploaded) == 2:
            raise BlobStoreError("503 from storage")
        uploaded.append(f"https://storage.test/{path}")
        return uploaded[-1]

    mock_blob_store.upload = AsyncMock(side_effect=upload)
    second = DocumentUpload("phd.pdf", "application/pdf", b"%PDF-1.7 phd")

    with (
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
        patch(f"{SERVICE}.repository") as mock_repo,
    ):
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)
        mock_repo.create = AsyncMock(side_effect=lambda db, **fields: MagicMock(**fields))

        with pytest.raises(InternalError):
            await submit_qualifications(
                mock_db,
                pending_instructor.id,
                documents=[pdf_document, second],
                signature=signature_image,
                blob_store=mock_blob_store,
            )

    assert "/signature/" in uploaded[0]
    assert "/qualifications/" in uploaded[1]
    mock_db.rollback.assert_awaited_once()
    mock_db.commit.assert_not_called()
    assert mock_blob_store.delete.await_args_list == [call(ref) for ref in uploaded]


@pytest.mark.asyncio
async def test_failed_commit_removes_uploaded_blobs(
    mock_db, pending_instructor, pdf_document, signature_image, mock_blob_store
):
    mock_db.commit = AsyncMock(side_effect=RuntimeError("connection reset"))

    with (
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
        patch(f"{SERVICE}.repository") as mock_repo,
    ):
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)
        mock_repo.create = AsyncMock(side_effect=lambda db, **fields: MagicMock(**fields))

        with pytest.raises(InternalError):
            await submit_qualifications(
                mock_db,
                pending_instructor.id,
                documents=[pdf_document],
                signature=signature_image,
                blob_store=mock_blob_store,
            )

    uploaded = [c.args[1] for c in mock_blob_store.upload.await_args_list]
    deleted = [c.args[0] for c in mock_blob_store.delete.await_args_list]
    assert deleted == [f"https://storage.test/{path}" for path in uploaded]
    assert len(deleted) == 2


@pytest.mark.asyncio
async def test_submission_unknown_instructor(mock_db, pdf_document, mock_blob_store):
    with patch(f"{SERVICE}.accounts_repository") as mock_accounts:
        mock_accounts.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(NotFound):
            await submit_qualifications(
                mock_db, uuid4(), documents=[pdf_document], blob_store=mock_blob_store
            )


# ============================================
# Test decide_qualification: verification
# ============================================


@pytest.mark.asyncio
async def test_first_verification_activates_instructor(
    mock_db, pending_qualification, pending_instructor, admin_actor, mock_blob_store, mock_append
):
    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
    ):
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)
        mock_repo.has_verified = AsyncMock(return_value=False)
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)

        result = await decide_qualification(
            mock_db, pending_qualification.id, "VERIFIED", admin_actor, mock_blob_store
        )

    assert result.qualification.status == QualificationStatus.VERIFIED
    assert result.qualification.decided_by_admin_id == admin_actor.actor_id
    assert result.qualification.decided_at is not None
    assert result.instructor_activated
    assert result.instructor_status == AccountStatus.ACTIVE
    assert pending_instructor.status == AccountStatus.ACTIVE
    assert pending_instructor.end_date is None

    assert mock_append.await_count == 2
    qualification_record, instructor_record = (c.kwargs for c in mock_append.call_args_list)
    assert qualification_record["subject_type"] == SubjectType.QUALIFICATION
    assert qualification_record["old_status"] == "PENDING"
    assert qualification_record["new_status"] == "VERIFIED"
    assert instructor_record["subject_type"] == SubjectType.INSTRUCTOR
    assert instructor_record["subject_id"] == pending_instructor.id
    assert instructor_record["old_status"] == "PENDING"
    assert instructor_record["new_status"] == "ACTIVE"
    assert instructor_record["actor"] == admin_actor

    mock_accounts.get_by_id.assert_called_once_with(
        mock_db, AccountKind.INSTRUCTOR, pending_instructor.id, for_update=True
    )
    mock_db.commit.assert_awaited_once()
    mock_blob_store.delete.assert_not_called()


@pytest.mark.asyncio
async def test_verification_locks_instructor_before_audit_chain(
    mock_db, pending_qualification, pending_instructor, admin_actor, mock_blob_store
):
    """The instructor row is locked before the audit chain, as in set-status."""
    order = []

    async def lock_instructor(*args, **kwargs):
        order.append("instructor")
        return pending_instructor

    async def append(db, **fields):
        order.append(("audit", fields["subject_type"]))

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
        patch(f"{SERVICE}.audit_service.append", new_callable=AsyncMock, side_effect=append),
    ):
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)
        mock_repo.has_verified = AsyncMock(return_value=False)
        mock_accounts.get_by_id = AsyncMock(side_effect=lock_instructor)

        await decide_qualification(
            mock_db, pending_qualification.id, "VERIFIED", admin_actor, mock_blob_store
        )

    assert order == [
        "instructor",
        ("audit", SubjectType.QUALIFICATION),
        ("audit", SubjectType.INSTRUCTOR),
    ]


@pytest.mark.asyncio
async def test_second_verification_does_not_cascade(
    mock_db, pending_qualification, pending_instructor, admin_actor, mock_blob_store, mock_append
):
    pending_instructor.status = AccountStatus.ACTIVE

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
    ):
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)
        mock_repo.has_verified = AsyncMock(return_value=True)
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)

        result = await decide_qualification(
            mock_db, pending_qualification.id, "VERIFIED", admin_actor, mock_blob_store
        )

    assert not result.instructor_activated
    assert result.instructor_status == AccountStatus.ACTIVE
    mock_append.assert_awaited_once()


@pytest.mark.asyncio
async def test_verification_of_inactive_instructor_with_earlier_certificate(
    mock_db, pending_qualification, pending_instructor, admin_actor, mock_blob_store, mock_append
):
    """A deactivated instructor is not reactivated by a later verification."""
    pending_instructor.status = AccountStatus.INACTIVE

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
    ):
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)
        mock_repo.has_verified = AsyncMock(return_value=True)
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)

        result = await decide_qualification(
            mock_db, pending_qualification.id, "VERIFIED", admin_actor, mock_blob_store
        )

    assert pending_instructor.status == AccountStatus.INACTIVE
    assert result.instructor_status == AccountStatus.INACTIVE
    mock_append.assert_awaited_once()


# ============================================
# Test decide_qualification: rejection
# ============================================


@pytest.mark.asyncio
async def test_rejection_retires_document(
    mock_db, pending_qualification, admin_actor, mock_blob_store, mock_append
):
    original_ref = pending_qualification.document_ref

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)

        result = await decide_qualification(
            mock_db,
            pending_qualification.id,
            "REJECTED",
            admin_actor,
            mock_blob_store,
            reason="Document is illegible",
        )

    qualification = result.qualification
    assert qualification.status == QualificationStatus.REJECTED
    assert qualification.rejection_reason == "Document is illegible"
    assert qualification.document_ref == RETIRED_DOCUMENT_REF
    assert qualification.pending_cleanup_ref is None
    mock_blob_store.delete.assert_awaited_once_with(original_ref)
    # Decision commit, then the cleanup marker commit
    assert mock_db.commit.await_count == 2
    mock_append.assert_awaited_once()
    assert mock_append.call_args.kwargs["reason"] == "Document is illegible"


@pytest.mark.asyncio
async def test_rejection_survives_failed_blob_delete(
    mock_db, pending_qualification, admin_actor, mock_blob_store, mock_append
):
    """Storage timing out after commit leaves the rejection in place."""
    original_ref = pending_qualification.document_ref
    mock_blob_store.delete = AsyncMock(side_effect=BlobStoreError("read timeout"))

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)

        result = await decide_qualification(
            mock_db, pending_qualification.id, "REJECTED", admin_actor, mock_blob_store
        )

    qualification = result.qualification
    assert qualification.status == QualificationStatus.REJECTED
    assert qualification.document_ref == RETIRED_DOCUMENT_REF
    assert qualification.pending_cleanup_ref == original_ref
    mock_blob_store.delete.assert_awaited_once_with(original_ref)
    mock_db.commit.assert_awaited_once()
    mock_db.rollback.assert_not_called()
    mock_append.assert_awaited_once()


@pytest.mark.asyncio
async def test_rejected_cannot_be_verified(
    mock_db, pending_qualification, admin_actor, mock_blob_store, mock_append
):
    pending_qualification.status = QualificationStatus.REJECTED
    pending_qualification.document_ref = RETIRED_DOCUMENT_REF

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)

        with pytest.raises(IllegalTransition) as exc_info:
            await decide_qualification(
                mock_db, pending_qualification.id, "VERIFIED", admin_actor, mock_blob_store
            )

    assert exc_info.value.status_code == 409
    assert pending_qualification.status == QualificationStatus.REJECTED
    mock_append.assert_not_called()
    mock_db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_verified_cannot_be_rejected(
    mock_db, pending_qualification, admin_actor, mock_blob_store, mock_append
):
    pending_qualification.status = QualificationStatus.VERIFIED

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)

        with pytest.raises(IllegalTransition):
            await decide_qualification(
                mock_db, pending_qualification.id, "REJECTED", admin_actor, mock_blob_store
            )

    assert pending_qualification.document_ref != RETIRED_DOCUMENT_REF
    mock_blob_store.delete.assert_not_called()


@pytest.mark.asyncio
async def test_repeated_decision_is_noop(
    mock_db, pending_qualification, admin_actor, mock_blob_store, mock_append
):
    pending_qualification.status = QualificationStatus.VERIFIED

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)

        with pytest.raises(NoOpTransition):
            await decide_qualification(
                mock_db, pending_qualification.id, "VERIFIED", admin_actor, mock_blob_store
            )

    mock_append.assert_not_called()


@pytest.mark.asyncio
async def test_decision_requires_admin(
    mock_db, pending_qualification, super_admin_actor, mock_blob_store, mock_append
):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)

        with pytest.raises(InvalidActor):
            await decide_qualification(
                mock_db, pending_qualification.id, "VERIFIED", super_admin_actor, mock_blob_store
            )

    assert pending_qualification.status == QualificationStatus.PENDING


@pytest.mark.asyncio
async def test_decision_unknown_qualification(mock_db, admin_actor, mock_blob_store):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(NotFound) as exc_info:
            await decide_qualification(mock_db, uuid4(), "VERIFIED", admin_actor, mock_blob_store)

    assert exc_info.value.error_code == "QUALIFICATION_NOT_FOUND"


# ============================================
# Test retire_document
# ============================================


@pytest.mark.asyncio
async def test_retire_document_is_repeatable(mock_db, pending_qualification, mock_blob_store):
    reference = pending_qualification.document_ref
    pending_qualification.pending_cleanup_ref = reference

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)

        await retire_document(mock_db, pending_qualification.id, reference, mock_blob_store)
        await retire_document(mock_db, pending_qualification.id, reference, mock_blob_store)

    assert pending_qualification.pending_cleanup_ref is None
    assert mock_blob_store.delete.await_args_list == [call(reference), call(reference)]


@pytest.mark.asyncio
async def test_retire_document_failure(mock_db, pending_qualification, mock_blob_store):
    reference = pending_qualification.document_ref
    pending_qualification.pending_cleanup_ref = reference
    mock_blob_store.delete = AsyncMock(side_effect=BlobStoreError("500 from storage"))

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock()

        with pytest.raises(StorageCleanupFailed) as exc_info:
            await retire_document(mock_db, pending_qualification.id, reference, mock_blob_store)

    assert exc_info.value.reference == reference
    assert pending_qualification.pending_cleanup_ref == reference
    mock_repo.get_by_id.assert_not_called()


# ============================================
# Test read views
# ============================================


@pytest.mark.asyncio
async def test_retired_document_has_no_url(pending_qualification, mock_blob_store):
    pending_qualification.status = QualificationStatus.REJECTED
    pending_qualification.document_ref = RETIRED_DOCUMENT_REF

    response = await to_response(pending_qualification, mock_blob_store)

    assert response.document_url is None
    assert response.document_retired
    mock_blob_store.signed_url.assert_not_called()


@pytest.mark.asyncio
async def test_signing_failure_omits_url(pending_qualification, mock_blob_store):
    mock_blob_store.signed_url = AsyncMock(side_effect=BlobStoreError("timeout"))

    response = await to_response(pending_qualification, mock_blob_store)

    assert response.document_url is None
    assert not response.document_retired


@pytest.mark.asyncio
async def test_admin_detail_shows_instructor_and_signature(
    mock_db, pending_instructor, pending_qualification, mock_blob_store
):
    pending_instructor.digital_signature_ref = "https://storage.test/signature/sig.png"

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
    ):
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)

        detail = await get_detail(mock_db, pending_qualification.id, mock_blob_store)

    assert detail.id == pending_qualification.id
    assert detail.instructor_name == "Lee Tan"
    assert detail.instructor_email == "lee.tan@example.com"
    assert detail.signature_url == "https://storage.test/signed?token=abc"
    assert detail.document_url == "https://storage.test/signed?token=abc"
    mock_blob_store.signed_url.assert_any_await(
        "https://storage.test/signature/sig.png", settings.signed_url_ttl_seconds
    )


@pytest.mark.asyncio
async def test_admin_detail_without_signature(
    mock_db, pending_instructor, pending_qualification, mock_blob_store
):
    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
    ):
        mock_repo.get_by_id = AsyncMock(return_value=pending_qualification)
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)

        detail = await get_detail(mock_db, pending_qualification.id, mock_blob_store)

    assert detail.signature_url is None
    mock_blob_store.signed_url.assert_awaited_once()


@pytest.mark.asyncio
async def test_verified_certificates_only(
    mock_db, pending_instructor, pending_qualification, mock_blob_store
):
    pending_qualification.status = QualificationStatus.VERIFIED

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.accounts_repository") as mock_accounts,
    ):
        mock_accounts.get_by_id = AsyncMock(return_value=pending_instructor)
        mock_repo.list_by_instructor = AsyncMock(return_value=[pending_qualification])

        certificates = await get_verified_certificates(
            mock_db, pending_instructor.id, mock_blob_store
        )

    mock_repo.list_by_instructor.assert_called_once_with(
        mock_db, pending_instructor.id, status=QualificationStatus.VERIFIED
    )
    assert [c.id for c in certificates] == [pending_qualification.id]
    assert certificates[0].document_url == "https://storage.test/signed?token=abc"


@pytest.mark.asyncio
async def test_certificates_of_unknown_instructor(mock_db, mock_blob_store):
    with patch(f"{SERVICE}.accounts_repository") as mock_accounts:
        mock_accounts.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(NotFound):
            await get_verified_certificates(mock_db, uuid4(), mock_blob_store)


@pytest.mark.asyncio
async def test_requirement_status(mock_db, pending_instructor):
    pending_instructor.digital_signature_ref = "https://storage.test/sig.png"
    counts = {
        QualificationStatus.PENDING: 2,
        QualificationStatus.VERIFIED: 0,
        QualificationStatus.REJECTED: 1,
    }

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.count_by_status = AsyncMock(return_value=counts)

        status = await get_requirement_status(mock_db, pending_instructor)

    assert status.instructor_status == AccountStatus.PENDING
    assert status.has_signature
    assert (status.pending, status.verified, status.rejected) == (2, 0, 1)


def test_qualification_model_has_retired_property():
    qualification = Qualification(document_ref=RETIRED_DOCUMENT_REF)
    assert qualification.is_retired
