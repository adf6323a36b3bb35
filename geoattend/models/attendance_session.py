"""
Attendance session and event models (check in/out sessions and immutable event outbox).
"""
from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, String, Text, JSON, Index, Enum as SQLEnum, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from geoattend.db.base import Base


class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    LATE = "LATE"
    ABSENT = "ABSENT"  # produced only by the external end-of-day sweep
    OVERTIME = "OVERTIME"


class AttendanceEventType(str, enum.Enum):
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"


class AttendanceSession(Base):
    __tablename__ = "attendance_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)
    check_in_at = Column(DateTime(timezone=True), nullable=False)  # UTC
    check_in_latitude = Column(Float, nullable=False)
    check_in_longitude = Column(Float, nullable=False)
    check_in_accuracy = Column(Float, nullable=True)
    check_in_distance_meters = Column(Float, nullable=True)
    check_out_at = Column(DateTime(timezone=True), nullable=True)  # NULL => open
    check_out_latitude = Column(Float, nullable=True)
    check_out_longitude = Column(Float, nullable=True)
    check_out_accuracy = Column(Float, nullable=True)
    status = Column(SQLEnum(AttendanceStatus), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    location = relationship("Location")

    __table_args__ = (
        # At most one open session per user, enforced by the database
        Index(
            "uq_attendance_sessions_open_user",
            "user_id",
            unique=True,
            sqlite_where=text("check_out_at IS NULL"),
            postgresql_where=text("check_out_at IS NULL"),
        ),
        Index("ix_attendance_sessions_user_check_in", "user_id", "check_in_at"),
    )

    @property
    def is_open(self) -> bool:
        return self.check_out_at is None

    @property
    def location_name(self):
        return self.location.name if self.location is not None else None


class AttendanceEvent(Base):
    __tablename__ = "attendance_events"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("attendance_sessions.id"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    event_type = Column(SQLEnum(AttendanceEventType), nullable=False)
    event_at = Column(DateTime(timezone=True), nullable=False)
    snapshot_json = Column(JSON, nullable=False)  # session state as committed
    published_at = Column(DateTime(timezone=True), nullable=True, index=True)  # NULL => pending delivery
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
