"""
Database models
"""
from geoattend.models.location import Location
from geoattend.models.work_shift import WorkShift, RosterAssignment, work_shift_members
from geoattend.models.attendance_session import (
    AttendanceSession,
    AttendanceEvent,
    AttendanceStatus,
    AttendanceEventType,
)
from geoattend.models.outbox_lease import OutboxLease

__all__ = [
    "Location",
    "WorkShift",
    "RosterAssignment",
    "work_shift_members",
    "AttendanceSession",
    "AttendanceEvent",
    "AttendanceStatus",
    "AttendanceEventType",
    "OutboxLease",
]
