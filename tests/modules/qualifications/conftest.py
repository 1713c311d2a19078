"""
Fixtures for qualification tests.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from lms.modules.qualifications.models import Qualification, QualificationStatus
from lms.modules.qualifications.service import PDF_CONTENT_TYPE, DocumentUpload

DOCUMENT_REF = "https://storage.test/storage/v1/object/public/lms-documents/instructors/q.pdf"


@pytest.fixture
def pending_qualification(pending_instructor):
    """Create a PENDING qualification owned by the pending instructor."""
    qualification = MagicMock(spec=Qualification)
    qualification.id = uuid4()
    qualification.instructor_id = pending_instructor.id
    qualification.document_ref = DOCUMENT_REF
    qualification.pending_cleanup_ref = None
    qualification.level = "DEGREE"
    qualification.field_of_study = "Computer Science"
    qualification.status = QualificationStatus.PENDING
    qualification.rejection_reason = None
    qualification.decided_by_admin_id = None
    qualification.decided_at = None
    qualification.submitted_at = datetime.now(UTC) - timedelta(days=2)
    return qualification


@pytest.fixture
def pdf_document():
    return DocumentUpload(
        filename="degree.pdf", content_type=PDF_CONTENT_TYPE, content=b"%PDF-1.7 degree"
    )


@pytest.fixture
def signature_image():
    return DocumentUpload(filename="signature.png", content_type="image/png", content=b"\x89PNG")
