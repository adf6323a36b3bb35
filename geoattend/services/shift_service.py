"""
Shift resolution: which scheduled window (if any) applies to a user's check-in.

Roster assignments active on the check-in date take precedence over plain work
shift membership. Shift times are wall-clock values in settings.WORK_TIMEZONE.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from geoattend.core.config import settings
from geoattend.models.work_shift import WorkShift, RosterAssignment, work_shift_members
from geoattend.services.status_policy import ShiftWindow
from geoattend.utils.datetime_utils import ensure_utc, to_work_tz

_log = logging.getLogger(__name__)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def parse_shift_time(value: str) -> time:
    """Parse "HH:MM" (seconds ignored). Raises ValueError on malformed input."""
    parts = (value or "").strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid shift time {value!r}; expected HH:MM")
    return time(int(parts[0]), int(parts[1]))


def _runs_on(shift: WorkShift, day: date) -> bool:
    wanted = DAY_NAMES[day.weekday()].lower()
    return any(str(d).strip().lower() == wanted for d in (shift.days or []))


def _applies_at(shift: WorkShift, location_id: Optional[int]) -> bool:
    return shift.location_id is None or location_id is None or shift.location_id == location_id


def _is_overnight(shift: WorkShift) -> bool:
    return parse_shift_time(shift.end_time) <= parse_shift_time(shift.start_time)


def build_shift_window(shift: WorkShift, local_date: date) -> ShiftWindow:
    """Window for shift on local_date; overnight shifts end on the following day."""
    tz = settings.get_work_timezone()
    start = datetime.combine(local_date, parse_shift_time(shift.start_time), tzinfo=tz)
    end = datetime.combine(local_date, parse_shift_time(shift.end_time), tzinfo=tz)
    if end <= start:
        end = datetime.combine(local_date + timedelta(days=1), parse_shift_time(shift.end_time), tzinfo=tz)
    return ShiftWindow(start=ensure_utc(start), end=ensure_utc(end), shift_name=shift.name)


def _always(day: date) -> bool:
    return True


def _roster_covers(roster: RosterAssignment) -> Callable[[date], bool]:
    def covers(day: date) -> bool:
        return roster.start_date <= day and (roster.end_date is None or day <= roster.end_date)
    return covers


def _pick_window(
    candidates: Iterable[Tuple[WorkShift, Callable[[date], bool]]],
    location_id: Optional[int],
    at: datetime,
) -> Optional[ShiftWindow]:
    local_date = to_work_tz(at).date()
    previous = local_date - timedelta(days=1)
    at_utc = ensure_utc(at)
    for shift, covers in candidates:
        if not _applies_at(shift, location_id):
            continue
        # an overnight shift that began yesterday is still the one in force
        if covers(previous) and _is_overnight(shift) and _runs_on(shift, previous):
            window = build_shift_window(shift, previous)
            if at_utc < window.end:
                return window
        if covers(local_date) and _runs_on(shift, local_date):
            return build_shift_window(shift, local_date)
    return None


def resolve_shift_window(
    db: Session,
    user_id: str,
    location_id: Optional[int],
    at: datetime,
) -> Optional[ShiftWindow]:
    """
    Return the shift window in force for user_id at time at, or None for
    unscheduled attendance. Shifts bound to another location are ignored.
    """
    local_date = to_work_tz(at).date()
    lookback = local_date - timedelta(days=1)

    rosters = (
        db.query(RosterAssignment)
        .options(joinedload(RosterAssignment.work_shift))
        .filter(
            RosterAssignment.user_id == user_id,
            RosterAssignment.start_date <= local_date,
            or_(RosterAssignment.end_date.is_(None), RosterAssignment.end_date >= lookback),
        )
        .order_by(RosterAssignment.start_date.desc(), RosterAssignment.id.desc())
        .all()
    )
    window = _pick_window(((r.work_shift, _roster_covers(r)) for r in rosters), location_id, at)
    if window is not None:
        _log.debug("resolve_shift_window: user_id=%s roster shift=%s", user_id, window.shift_name)
        return window

    member_shifts = (
        db.query(WorkShift)
        .join(work_shift_members, work_shift_members.c.work_shift_id == WorkShift.id)
        .filter(work_shift_members.c.user_id == user_id)
        .order_by(WorkShift.id)
        .all()
    )
    window = _pick_window(((s, _always) for s in member_shifts), location_id, at)
    _log.debug(
        "resolve_shift_window: user_id=%s member shift=%s",
        user_id, window.shift_name if window else None,
    )
    return window
