"""create timetable tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None

substitution_status = sa.Enum("created", "active", "archived", name="substitution_status")


def upgrade() -> None:
    op.create_table(
        "school_directory",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "combined_blocks",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("section_ids", sa.JSON(), nullable=False),
        sa.Column("allocations", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "schedule_entries",
        sa.Column("id", sa.String(length=160), primary_key=True, nullable=False),
        sa.Column("day", sa.String(length=12), nullable=False),
        sa.Column("slot_id", sa.Integer(), nullable=False),
        sa.Column("section_id", sa.String(length=100), nullable=False),
        sa.Column("teacher_id", sa.String(length=100), nullable=False),
        sa.Column("subject", sa.String(length=100), nullable=False),
        sa.Column("room", sa.String(length=100), nullable=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("is_substitution", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("block_id", sa.String(length=64), nullable=True),
        sa.Column("clashing", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_schedule_entries_day", "schedule_entries", ["day"])
    op.create_index("ix_schedule_entries_section_id", "schedule_entries", ["section_id"])
    op.create_index("ix_schedule_entries_teacher_id", "schedule_entries", ["teacher_id"])
    op.create_index("ix_schedule_entries_date", "schedule_entries", ["date"])
    op.create_table(
        "substitution_records",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("day", sa.String(length=12), nullable=False),
        sa.Column("slot_id", sa.Integer(), nullable=False),
        sa.Column("section_id", sa.String(length=100), nullable=False),
        sa.Column("absent_teacher_id", sa.String(length=100), nullable=False),
        sa.Column("substitute_teacher_id", sa.String(length=100), nullable=False),
        sa.Column("subject", sa.String(length=100), nullable=False),
        sa.Column("room", sa.String(length=100), nullable=True),
        sa.Column("entry_id", sa.String(length=160), nullable=True),
        sa.Column("status", substitution_status, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_substitution_records_date", "substitution_records", ["date"])
    op.create_index("ix_substitution_records_absent_teacher_id", "substitution_records", ["absent_teacher_id"])
    op.create_index(
        "ix_substitution_records_substitute_teacher_id", "substitution_records", ["substitute_teacher_id"]
    )


def downgrade() -> None:
    op.drop_table("substitution_records")
    op.drop_table("schedule_entries")
    op.drop_table("combined_blocks")
    op.drop_table("school_directory")
    substitution_status.drop(op.get_bind(), checkfirst=True)
