"""create status change records

Revision ID: b7d2f94c1e08
Revises: a1c4e7f20b31
Create Date: 2026-10-19 09:30:00.000000

Append-only audit trail. No foreign keys to subjects or actors so records
survive deletion of either. The sequence column orders the hash chain.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "b7d2f94c1e08"
down_revision: str | Sequence[str] | None = "a1c4e7f20b31"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    subject_type = postgresql.ENUM(
        "ADMIN",
        "STUDENT",
        "INSTRUCTOR",
        "QUALIFICATION",
        name="audit_subject_type",
        create_type=False,
    )
    subject_type.create(op.get_bind(), checkfirst=True)

    actor_type = postgresql.ENUM("SUPER_ADMIN", "ADMIN", name="audit_actor_type", create_type=False)
    actor_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "status_change_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("sequence", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("subject_type", subject_type, nullable=False),
        sa.Column("subject_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("old_status", sa.String(length=20), nullable=False),
        sa.Column("new_status", sa.String(length=20), nullable=False),
        sa.Column("actor_type", actor_type, nullable=False),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=True),
        sa.Column("previous_hash", sa.String(length=71), nullable=False),
        sa.Column("record_hash", sa.String(length=71), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sequence", name="uq_status_change_records_sequence"),
        sa.UniqueConstraint("record_hash", name="uq_status_change_records_record_hash"),
    )
    op.create_index(
        "ix_status_change_records_subject",
        "status_change_records",
        ["subject_type", "subject_id", "changed_at"],
        unique=False,
    )
    op.create_index(
        "ix_status_change_records_changed_at", "status_change_records", ["changed_at"], unique=False
    )
    op.create_index(
        "ix_status_change_records_actor_id", "status_change_records", ["actor_id"], unique=False
    )

    # Records are immutable: refuse UPDATE and DELETE at the database level too
    op.execute(
        """
        CREATE OR REPLACE FUNCTION status_change_records_immutable() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'status_change_records is append-only';
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute(
        """
        CREATE TRIGGER status_change_records_no_mutation
        BEFORE UPDATE OR DELETE ON status_change_records
        FOR EACH ROW EXECUTE FUNCTION status_change_records_immutable();
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS status_change_records_no_mutation ON status_change_records")
    op.execute("DROP FUNCTION IF EXISTS status_change_records_immutable()")
    op.drop_index("ix_status_change_records_actor_id", table_name="status_change_records")
    op.drop_index("ix_status_change_records_changed_at", table_name="status_change_records")
    op.drop_index("ix_status_change_records_subject", table_name="status_change_records")
    op.drop_table("status_change_records")
    sa.Enum(name="audit_actor_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="audit_subject_type").drop(op.get_bind(), checkfirst=True)
