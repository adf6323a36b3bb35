"""
Work shift and roster models (owned by the roster collaborator; read-only here)
"""
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, JSON, Table, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from geoattend.db.base import Base


work_shift_members = Table(
    "work_shift_members",
    Base.metadata,
    Column("work_shift_id", Integer, ForeignKey("work_shifts.id"), primary_key=True),
    Column("user_id", String, primary_key=True, index=True),
)


class WorkShift(Base):
    __tablename__ = "work_shifts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(String, nullable=False)  # "HH:MM", WORK_TIMEZONE wall clock
    end_time = Column(String, nullable=False)  # "HH:MM"; at or before start_time => ends next day
    days = Column(JSON, nullable=False, default=list)  # e.g. ["Monday", "Tuesday"]
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)  # None => any site
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    location = relationship("Location")


class RosterAssignment(Base):
    __tablename__ = "roster_assignments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    work_shift_id = Column(Integer, ForeignKey("work_shifts.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)  # None => open ended
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    work_shift = relationship("WorkShift")
