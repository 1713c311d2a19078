"""
Account Models

The four account kinds share one column layout and one status enum but live
in separate tables. Accounts are never hard-deleted: deactivation sets
status INACTIVE and stamps end_date.
"""

import enum
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.modules.shared import BaseModel

if TYPE_CHECKING:
    from lms.modules.qualifications.models import Qualification


class AccountStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class AccountKind(str, enum.Enum):
    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


def _status_column(default: AccountStatus) -> Mapped[AccountStatus]:
    return mapped_column(
        Enum(AccountStatus, name="account_status"),
        nullable=False,
        default=default,
        server_default=default.value,
        index=True,
    )


class Account(BaseModel):
    """Columns common to every account kind."""

    __abstract__ = True

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)

    # Subject claim of the identity provider; null until first sign-in for
    # accounts created by an administrator.
    external_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Set when the account becomes INACTIVE, cleared on reactivation
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.email} ({self.status.value})>"


class Student(Account):
    __tablename__ = "students"

    status: Mapped[AccountStatus] = _status_column(AccountStatus.ACTIVE)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)


class Instructor(Account):
    """
    Instructor account.

    Instructors start PENDING and are activated when an admin verifies
    their first qualification.
    """

    __tablename__ = "instructors"

    status: Mapped[AccountStatus] = _status_column(AccountStatus.PENDING)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Stored with the first qualification submission and never replaced
    digital_signature_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    qualifications: Mapped[list["Qualification"]] = relationship(
        "Qualification",
        back_populates="instructor",
        order_by="Qualification.submitted_at",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def has_signature(self) -> bool:
        return self.digital_signature_ref is not None


class Admin(Account):
    __tablename__ = "admins"

    status: Mapped[AccountStatus] = _status_column(AccountStatus.ACTIVE)

    @property
    def identity_bound(self) -> bool:
        return self.external_id is not None


class SuperAdmin(Account):
    """Super-admins are provisioned out of band and start PENDING."""

    __tablename__ = "super_admins"

    status: Mapped[AccountStatus] = _status_column(AccountStatus.PENDING)


ACCOUNT_MODELS: dict[AccountKind, type[Account]] = {
    AccountKind.STUDENT: Student,
    AccountKind.INSTRUCTOR: Instructor,
    AccountKind.ADMIN: Admin,
    AccountKind.SUPER_ADMIN: SuperAdmin,
}
