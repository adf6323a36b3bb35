"""Add locations, work_shifts, work_shift_members and roster_assignments tables

Revision ID: 001_locations_and_shifts
Revises:
Create Date: 2026-10-12

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001_locations_and_shifts"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    is_sqlite = bind.dialect.name == "sqlite"
    ts_default = sa.text("CURRENT_TIMESTAMP") if is_sqlite else sa.text("now()")

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("radius_meters", sa.Float(), nullable=False, server_default="50"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("radius_meters > 0", name="ck_locations_radius_positive"),
    )
    op.create_index(op.f("ix_locations_id"), "locations", ["id"], unique=False)
    op.create_index(op.f("ix_locations_name"), "locations", ["name"], unique=False)

    op.create_table(
        "work_shifts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_time", sa.String(), nullable=False),
        sa.Column("end_time", sa.String(), nullable=False),
        sa.Column("days", sa.JSON(), nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_work_shifts_id"), "work_shifts", ["id"], unique=False)

    op.create_table(
        "work_shift_members",
        sa.Column("work_shift_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.ForeignKeyConstraint(["work_shift_id"], ["work_shifts.id"]),
        sa.PrimaryKeyConstraint("work_shift_id", "user_id"),
    )
    op.create_index(op.f("ix_work_shift_members_user_id"), "work_shift_members", ["user_id"], unique=False)

    op.create_table(
        "roster_assignments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("work_shift_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["work_shift_id"], ["work_shifts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_roster_assignments_id"), "roster_assignments", ["id"], unique=False)
    op.create_index(op.f("ix_roster_assignments_user_id"), "roster_assignments", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_roster_assignments_user_id"), table_name="roster_assignments")
    op.drop_index(op.f("ix_roster_assignments_id"), table_name="roster_assignments")
    op.drop_table("roster_assignments")
    op.drop_index(op.f("ix_work_shift_members_user_id"), table_name="work_shift_members")
    op.drop_table("work_shift_members")
    op.drop_index(op.f("ix_work_shifts_id"), table_name="work_shifts")
    op.drop_table("work_shifts")
    op.drop_index(op.f("ix_locations_name"), table_name="locations")
    op.drop_index(op.f("ix_locations_id"), table_name="locations")
    op.drop_table("locations")
