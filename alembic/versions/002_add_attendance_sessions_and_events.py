"""Add attendance_sessions and attendance_events (outbox) tables

Revision ID: 002_attendance_sessions
Revises: 001_locations_and_shifts
Create Date: 2026-10-12

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002_attendance_sessions"
down_revision: Union[str, None] = "001_locations_and_shifts"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

attendance_status = sa.Enum("PRESENT", "LATE", "ABSENT", "OVERTIME", name="attendancestatus")
attendance_event_type = sa.Enum("CHECK_IN", "CHECK_OUT", name="attendanceeventtype")


def upgrade() -> None:
    bind = op.get_bind()
    is_sqlite = bind.dialect.name == "sqlite"
    ts_default = sa.text("CURRENT_TIMESTAMP") if is_sqlite else sa.text("now()")

    op.create_table(
        "attendance_sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=False),
        sa.Column("check_in_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("check_in_latitude", sa.Float(), nullable=False),
        sa.Column("check_in_longitude", sa.Float(), nullable=False),
        sa.Column("check_in_accuracy", sa.Float(), nullable=True),
        sa.Column("check_in_distance_meters", sa.Float(), nullable=True),
        sa.Column("check_out_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_out_latitude", sa.Float(), nullable=True),
        sa.Column("check_out_longitude", sa.Float(), nullable=True),
        sa.Column("check_out_accuracy", sa.Float(), nullable=True),
        sa.Column("status", attendance_status, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_attendance_sessions_id"), "attendance_sessions", ["id"], unique=False)
    op.create_index(op.f("ix_attendance_sessions_user_id"), "attendance_sessions", ["user_id"], unique=False)
    op.create_index(op.f("ix_attendance_sessions_location_id"), "attendance_sessions", ["location_id"], unique=False)
    op.create_index(
        "ix_attendance_sessions_user_check_in", "attendance_sessions", ["user_id", "check_in_at"], unique=False
    )
    # at most one open session per user
    op.create_index(
        "uq_attendance_sessions_open_user",
        "attendance_sessions",
        ["user_id"],
        unique=True,
        sqlite_where=sa.text("check_out_at IS NULL"),
        postgresql_where=sa.text("check_out_at IS NULL"),
    )

    op.create_table(
        "attendance_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("event_type", attendance_event_type, nullable=False),
        sa.Column("event_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("snapshot_json", sa.JSON(), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["attendance_sessions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_attendance_events_id"), "attendance_events", ["id"], unique=False)
    op.create_index(op.f("ix_attendance_events_session_id"), "attendance_events", ["session_id"], unique=False)
    op.create_index(op.f("ix_attendance_events_user_id"), "attendance_events", ["user_id"], unique=False)
    op.create_index(op.f("ix_attendance_events_published_at"), "attendance_events", ["published_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_attendance_events_published_at"), table_name="attendance_events")
    op.drop_index(op.f("ix_attendance_events_user_id"), table_name="attendance_events")
    op.drop_index(op.f("ix_attendance_events_session_id"), table_name="attendance_events")
    op.drop_index(op.f("ix_attendance_events_id"), table_name="attendance_events")
    op.drop_table("attendance_events")
    op.drop_index("uq_attendance_sessions_open_user", table_name="attendance_sessions")
    op.drop_index("ix_attendance_sessions_user_check_in", table_name="attendance_sessions")
    op.drop_index(op.f("ix_attendance_sessions_location_id"), table_name="attendance_sessions")
    op.drop_index(op.f("ix_attendance_sessions_user_id"), table_name="attendance_sessions")
    op.drop_index(op.f("ix_attendance_sessions_id"), table_name="attendance_sessions")
    op.drop_table("attendance_sessions")
    if op.get_bind().dialect.name == "postgresql":
        attendance_event_type.drop(op.get_bind(), checkfirst=True)
        attendance_status.drop(op.get_bind(), checkfirst=True)
