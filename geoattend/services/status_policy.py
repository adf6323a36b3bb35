"""
Status policy: lateness at check-in and duration/overtime at check-out.
Depends only on its arguments (no clock reads), so results are reproducible.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from geoattend.models.attendance_session import AttendanceStatus
from geoattend.utils.datetime_utils import ensure_utc


@dataclass(frozen=True)
class ShiftWindow:
    """Scheduled start/end of the shift a check-in is judged against (timezone-aware)."""
    start: datetime
    end: datetime
    shift_name: Optional[str] = None

    def __post_init__(self):
        if ensure_utc(self.end) <= ensure_utc(self.start):
            raise ValueError("Shift window must end after it starts")

    @property
    def scheduled_minutes(self) -> int:
        return int((ensure_utc(self.end) - ensure_utc(self.start)).total_seconds() // 60)


@dataclass(frozen=True)
class CheckOutSummary:
    duration_minutes: int
    scheduled_minutes: Optional[int]
    overtime_minutes: int
    is_overtime: bool

    @property
    def duration_text(self) -> str:
        hours, minutes = divmod(self.duration_minutes, 60)
        return f"{hours}h {minutes}m"


def decide_check_in_status(
    check_in_time: datetime,
    shift_window: Optional[ShiftWindow],
    late_tolerance_minutes: int = 0,
) -> AttendanceStatus:
    """
    PRESENT when there is no shift (unscheduled attendance) or the check-in is
    at or before shift start plus the tolerance; LATE otherwise.
    """
    if late_tolerance_minutes < 0:
        raise ValueError("late_tolerance_minutes must not be negative")
    if shift_window is None:
        return AttendanceStatus.PRESENT

    deadline = ensure_utc(shift_window.start) + timedelta(minutes=late_tolerance_minutes)
    if ensure_utc(check_in_time) <= deadline:
        return AttendanceStatus.PRESENT
    return AttendanceStatus.LATE


def summarize_check_out(
    check_in_time: datetime,
    check_out_time: datetime,
    shift_window: Optional[ShiftWindow],
    overtime_tolerance_minutes: int = 0,
) -> CheckOutSummary:
    """Worked duration and whether it ran past the scheduled shift length by more than the tolerance."""
    if overtime_tolerance_minutes < 0:
        raise ValueError("overtime_tolerance_minutes must not be negative")
    worked = ensure_utc(check_out_time) - ensure_utc(check_in_time)
    duration_minutes = max(0, int(worked.total_seconds() // 60))

    if shift_window is None:
        return CheckOutSummary(
            duration_minutes=duration_minutes,
            scheduled_minutes=None,
            overtime_minutes=0,
            is_overtime=False,
        )

    scheduled = shift_window.scheduled_minutes
    extra = duration_minutes - scheduled
    is_overtime = extra > overtime_tolerance_minutes
    return CheckOutSummary(
        duration_minutes=duration_minutes,
        scheduled_minutes=scheduled,
        overtime_minutes=extra if is_overtime else 0,
        is_overtime=is_overtime,
    )
