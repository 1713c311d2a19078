"""
Model registry.

Imports every ORM model so relationships resolve and Alembic sees the full
metadata. Import this module before configuring mappers.
"""

from lms.core.database import Base
from lms.modules.accounts.models import Admin, Instructor, Student, SuperAdmin
from lms.modules.audit.models import StatusChangeRecord
from lms.modules.qualifications.models import Qualification

__all__ = [
    "Admin",
    "Base",
    "Instructor",
    "Qualification",
    "StatusChangeRecord",
    "Student",
    "SuperAdmin",
]
