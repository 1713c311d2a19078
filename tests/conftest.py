"""
Shared fixtures.

Importing the model registry up front lets SQLAlchemy resolve the
relationships between accounts and qualifications when tests build model
instances.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

import lms.models  # noqa: F401
from lms.core.auth import Principal
from lms.core.storage import BlobStore
from lms.modules.accounts.models import AccountStatus, Admin, Instructor, Student
from lms.modules.audit.service import Actor


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def mock_blob_store():
    """Create a mock blob store whose calls all succeed."""
    store = MagicMock(spec=BlobStore)
    store.upload = AsyncMock(
        side_effect=lambda content, path, content_type: f"https://storage.test/{path}"
    )
    store.delete = AsyncMock(return_value=None)
    store.signed_url = AsyncMock(return_value="https://storage.test/signed?token=abc")
    return store


@pytest.fixture
def admin_id():
    """Return a consistent admin UUID for testing."""
    return UUID("00000000-0000-0000-0000-000000000001")


@pytest.fixture
def super_admin_id():
    """Return a consistent super admin UUID for testing."""
    return UUID("00000000-0000-0000-0000-000000000002")


@pytest.fixture
def admin_actor(admin_id):
    return Actor.admin(admin_id)


@pytest.fixture
def super_admin_actor(super_admin_id):
    return Actor.super_admin(super_admin_id)


@pytest.fixture
def student_principal():
    return Principal(email="jane.doe@student.tarc.edu.my", subject="sub-student-1")


@pytest.fixture
def sample_student():
    """Create an ACTIVE student."""
    student = MagicMock(spec=Student)
    student.id = uuid4()
    student.email = "jane.doe@student.tarc.edu.my"
    student.name = "Jane Doe"
    student.status = AccountStatus.ACTIVE
    student.end_date = None
    student.registered_at = datetime.now(UTC)
    return student


@pytest.fixture
def pending_instructor():
    """Create a PENDING instructor that has not submitted anything yet."""
    instructor = MagicMock(spec=Instructor)
    instructor.id = uuid4()
    instructor.email = "lee.tan@example.com"
    instructor.name = "Lee Tan"
    instructor.status = AccountStatus.PENDING
    instructor.end_date = None
    instructor.digital_signature_ref = None
    instructor.registered_at = datetime.now(UTC)
    return instructor


@pytest.fixture
def sample_admin():
    """Create an ACTIVE admin that has not signed in yet."""
    admin = MagicMock(spec=Admin)
    admin.id = uuid4()
    admin.email = "ops@example.com"
    admin.name = "Ops Admin"
    admin.status = AccountStatus.ACTIVE
    admin.end_date = None
    admin.external_id = None
    return admin
