"""create account and qualification tables

Revision ID: a1c4e7f20b31
Revises:
Create Date: 2026-10-19 09:00:00.000000

This migration:
1. Creates the shared account_status enum
2. Creates students, instructors, admins and super_admins
3. Creates the qualification_status enum and qualifications table
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a1c4e7f20b31"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ACCOUNT_TABLES = {
    "students": "ACTIVE",
    "instructors": "PENDING",
    "admins": "ACTIVE",
    "super_admins": "PENDING",
}


def _account_columns(status_enum: postgresql.ENUM, default_status: str) -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("external_id", sa.String(length=255), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("status", status_enum, nullable=False, server_default=default_status),
        sa.Column(
            "registered_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create account tables and qualifications."""
    account_status = postgresql.ENUM(
        "PENDING", "ACTIVE", "INACTIVE", name="account_status", create_type=False
    )
    account_status.create(op.get_bind(), checkfirst=True)

    for table, default_status in ACCOUNT_TABLES.items():
        extra: list[sa.Column] = []
        if table in ("students", "instructors"):
            extra.append(sa.Column("date_of_birth", sa.Date(), nullable=True))
        if table == "instructors":
            extra.append(sa.Column("digital_signature_ref", sa.String(length=1024), nullable=True))

        op.create_table(
            table,
            *_account_columns(account_status, default_status),
            *extra,
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("external_id", name=f"uq_{table}_external_id"),
        )
        op.create_index(op.f(f"ix_{table}_email"), table, ["email"], unique=True)
        op.create_index(op.f(f"ix_{table}_status"), table, ["status"], unique=False)

    qualification_status = postgresql.ENUM(
        "PENDING", "VERIFIED", "REJECTED", name="qualification_status", create_type=False
    )
    qualification_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "qualifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("instructor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("document_ref", sa.String(length=1024), nullable=True),
        sa.Column("pending_cleanup_ref", sa.String(length=1024), nullable=True),
        sa.Column("cleanup_attempted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("level", sa.String(length=100), nullable=False),
        sa.Column("field_of_study", sa.String(length=200), nullable=True),
        sa.Column("status", qualification_status, nullable=False, server_default="PENDING"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("decided_by_admin_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "submitted_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["instructor_id"],
            ["instructors.id"],
            name="fk_qualifications_instructor_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        op.f("ix_qualifications_instructor_id"), "qualifications", ["instructor_id"], unique=False
    )
    op.create_index(
        "ix_qualifications_status_submitted_at",
        "qualifications",
        ["status", "submitted_at"],
        unique=False,
    )
    op.create_index(
        "ix_qualifications_pending_cleanup",
        "qualifications",
        ["pending_cleanup_ref"],
        unique=False,
        postgresql_where=sa.text("pending_cleanup_ref IS NOT NULL"),
    )


def downgrade() -> None:
    """Drop qualifications and account tables."""
    op.drop_index("ix_qualifications_pending_cleanup", table_name="qualifications")
    op.drop_index("ix_qualifications_status_submitted_at", table_name="qualifications")
    op.drop_index(op.f("ix_qualifications_instructor_id"), table_name="qualifications")
    op.drop_table("qualifications")
    sa.Enum(name="qualification_status").drop(op.get_bind(), checkfirst=True)

    for table in reversed(list(ACCOUNT_TABLES)):
        op.drop_index(op.f(f"ix_{table}_status"), table_name=table)
        op.drop_index(op.f(f"ix_{table}_email"), table_name=table)
        op.drop_table(table)
    sa.Enum(name="account_status").drop(op.get_bind(), checkfirst=True)
