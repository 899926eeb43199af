"""date_elimination_schema

Creates the date-elimination tables:
  - plans               — scheduling unit, owner + status
  - plan_dates          — candidate dates with status and reopen_version
  - participants        — people voting on a plan (done / needs_review flags)
  - availability_marks  — one mark per (participant, date)
  - event_log           — append-only ledger; undo_deadline is the undo lease

Tables created conditionally (IF NOT EXISTS semantics) so the migration is
safe against databases that already received them via db.create_all().

Revision ID: 5f2c8e1a9b40
Revises:
Create Date: 2026-10-19 09:12:44.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "5f2c8e1a9b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── Plan ──────────────────────────────────────────────────────────────
    if "plans" not in existing:
        op.create_table(
            "plans",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("owner_id", sa.String(length=64), nullable=False),
            sa.Column("title", sa.String(length=100), nullable=False, server_default=""),
            sa.Column(
                "status", sa.String(length=20), nullable=False,
                server_default="active",
                comment="active | locked | deleted",
            ),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_plan_owner_status", "plans", ["owner_id", "status"])

    # ── PlanDate ──────────────────────────────────────────────────────────
    if "plan_dates" not in existing:
        op.create_table(
            "plan_dates",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("plan_id", sa.String(length=36), nullable=False),
            sa.Column("date", sa.Date(), nullable=False),
            sa.Column(
                "status", sa.String(length=20), nullable=False,
                server_default="viable",
                comment="viable | eliminated | locked | reopened",
            ),
            sa.Column("reopen_version", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["plan_id"], ["plans.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("plan_id", "date", name="uq_plan_date"),
        )
        op.create_index("ix_plan_dates_plan_id", "plan_dates", ["plan_id"])
        op.create_index("idx_plan_date_status", "plan_dates", ["plan_id", "status"])

    # ── Participant ───────────────────────────────────────────────────────
    if "participants" not in existing:
        op.create_table(
            "participants",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("plan_id", sa.String(length=36), nullable=False),
            sa.Column("display_name", sa.String(length=50), nullable=False),
            sa.Column("is_done", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("needs_review", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["plan_id"], ["plans.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("plan_id", "display_name", name="uq_participant_plan_name"),
        )
        op.create_index("ix_participants_plan_id", "participants", ["plan_id"])

    # ── AvailabilityMark ──────────────────────────────────────────────────
    if "availability_marks" not in existing:
        op.create_table(
            "availability_marks",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("participant_id", sa.String(length=36), nullable=False),
            sa.Column("plan_date_id", sa.String(length=36), nullable=False),
            sa.Column(
                "status", sa.String(length=20), nullable=False,
                server_default="unavailable",
                comment="available | unavailable",
            ),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["participant_id"], ["participants.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["plan_date_id"], ["plan_dates.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("participant_id", "plan_date_id", name="uq_mark_participant_date"),
        )
        op.create_index("ix_availability_marks_participant_id", "availability_marks", ["participant_id"])
        op.create_index("idx_mark_date_status", "availability_marks", ["plan_date_id", "status"])

    # ── EventLogEntry ─────────────────────────────────────────────────────
    if "event_log" not in existing:
        op.create_table(
            "event_log",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("plan_id", sa.String(length=36), nullable=False),
            sa.Column("participant_id", sa.String(length=36), nullable=True),
            sa.Column("plan_date_id", sa.String(length=36), nullable=True),
            sa.Column("event_type", sa.String(length=40), nullable=False),
            sa.Column("metadata_json", sa.Text(), nullable=False, server_default="{}"),
            sa.Column(
                "undo_deadline", sa.DateTime(timezone=True), nullable=True,
                comment="Lease on the undo token; NULL once consumed, swept or superseded",
            ),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["plan_id"], ["plans.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["participant_id"], ["participants.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["plan_date_id"], ["plan_dates.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_event_plan_created", "event_log", ["plan_id", "created_at"])
        op.create_index("idx_event_participant_open", "event_log", ["participant_id", "undo_deadline"])
        op.create_index("idx_event_date", "event_log", ["plan_date_id"])


def downgrade():
    op.drop_table("event_log")
    op.drop_table("availability_marks")
    op.drop_table("participants")
    op.drop_table("plan_dates")
    op.drop_table("plans")
