"""
Attendance coordinator: check-in / check-out entry point.

Per user:
    NO_OPEN_SESSION --check-in (inside geofence)--> OPEN_SESSION
    any             --check-in (outside)--> unchanged         GeofenceViolation
    OPEN_SESSION    --check-out (any position)--> NO_OPEN_SESSION
    OPEN_SESSION    --check-in (inside)--> OPEN_SESSION       AlreadyOpenError
    NO_OPEN_SESSION --check-out--> NO_OPEN_SESSION            NoOpenSessionError

Timestamps come from the server clock (now_utc), never from the client. Store
errors propagate unchanged and nothing is retried here. Publishing happens
after the commit and can never undo it.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from geoattend.core.config import settings
from geoattend.core.constants import (
    POSITION_ERROR_PERMISSION_DENIED,
    POSITION_ERROR_TIMEOUT,
    POSITION_ERROR_UNAVAILABLE,
)
from geoattend.core.exceptions import (
    AlreadyOpenError,
    GeofenceViolation,
    NoOpenSessionError,
    PermissionDenied,
    PositionTimeout,
    PositionUnavailable,
)
from geoattend.models.attendance_session import AttendanceSession
from geoattend.services import session_store
from geoattend.services.change_notifier import ChangeNotifier
from geoattend.services.geofence import GeofenceResult, PositionSample, evaluate
from geoattend.services.location_service import get_location
from geoattend.services.shift_service import resolve_shift_window
from geoattend.services.status_policy import (
    CheckOutSummary,
    decide_check_in_status,
    summarize_check_out,
)
from geoattend.utils.datetime_utils import ensure_utc, now_utc

_log = logging.getLogger(__name__)


class AttendanceAction(str, enum.Enum):
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"


@dataclass(frozen=True)
class SubmitResult:
    session: AttendanceSession
    action: AttendanceAction
    geofence: GeofenceResult
    check_out_summary: Optional[CheckOutSummary] = None


class PositionSource(Protocol):
    def acquire(self) -> PositionSample:
        """Return a position fix or raise a SensorError."""
        ...


_SENSOR_ERRORS = {
    POSITION_ERROR_PERMISSION_DENIED: PermissionDenied,
    POSITION_ERROR_UNAVAILABLE: PositionUnavailable,
    POSITION_ERROR_TIMEOUT: PositionTimeout,
}


@dataclass(frozen=True)
class ReportedPosition:
    """Position source backed by what the client reported: a fix or a device error code."""
    sample: Optional[PositionSample] = None
    error_code: Optional[str] = None

    def acquire(self) -> PositionSample:
        if self.error_code is not None:
            error_cls = _SENSOR_ERRORS.get(self.error_code)
            if error_cls is None:
                raise ValueError(f"Unknown position error code: {self.error_code}")
            raise error_cls()
        if self.sample is None:
            raise PositionUnavailable("No position was reported")
        return self.sample


def _publish(notifier: Optional[ChangeNotifier], session: AttendanceSession) -> None:
    if notifier is None:
        return
    try:
        notifier.publish(session)
    except Exception:
        # the change is already committed to the outbox; delivery catches up on the next drain
        _log.warning("publish failed for session_id=%s", session.id, exc_info=True)


def _check_in(
    db: Session,
    user_id: str,
    location,
    position: PositionSample,
    geofence: GeofenceResult,
    open_session: Optional[AttendanceSession],
    now: datetime,
    notes: Optional[str],
    late_tolerance_minutes: int,
) -> AttendanceSession:
    if not geofence.within_radius:
        _log.info(
            "check-in rejected: user_id=%s location_id=%s distance=%.1fm radius=%.1fm",
            user_id, location.id, geofence.distance_meters, location.radius_meters,
        )
        raise GeofenceViolation(geofence.distance_meters, location.radius_meters)
    if open_session is not None:
        raise AlreadyOpenError(user_id, open_session.id)

    window = resolve_shift_window(db, user_id, location.id, now)
    status = decide_check_in_status(now, window, late_tolerance_minutes)
    return session_store.open_session(
        db,
        user_id,
        location.id,
        now,
        position,
        status,
        distance_meters=geofence.distance_meters,
        notes=notes,
    )


def _check_out(
    db: Session,
    user_id: str,
    position: PositionSample,
    open_session: Optional[AttendanceSession],
    now: datetime,
    overtime_tolerance_minutes: int,
):
    if open_session is None:
        raise NoOpenSessionError(user_id)

    session = session_store.close_session(db, open_session.id, now, position)
    window = resolve_shift_window(db, user_id, session.location_id, ensure_utc(session.check_in_at))
    summary = summarize_check_out(session.check_in_at, session.check_out_at, window, overtime_tolerance_minutes)
    if summary.is_overtime:
        _log.info(
            "check-out overtime: session_id=%s duration=%smin scheduled=%smin",
            session.id, summary.duration_minutes, summary.scheduled_minutes,
        )
    return session, summary


def submit(
    db: Session,
    user_id: str,
    location_id: int,
    position: PositionSample,
    action: AttendanceAction,
    *,
    now: Optional[datetime] = None,
    notes: Optional[str] = None,
    notifier: Optional[ChangeNotifier] = None,
    late_tolerance_minutes: Optional[int] = None,
    overtime_tolerance_minutes: Optional[int] = None,
) -> SubmitResult:
    """
    Apply a check-in or check-out request for user_id at location_id.

    Raises LocationNotFound, InvalidCoordinates, GeofenceViolation,
    AlreadyOpenError, NoOpenSessionError and any store error. Check-out is not
    gated by the geofence; the distance is still evaluated and returned.
    """
    action = AttendanceAction(action)
    now = ensure_utc(now) if now is not None else now_utc()
    if late_tolerance_minutes is None:
        late_tolerance_minutes = settings.LATE_TOLERANCE_MINUTES
    if overtime_tolerance_minutes is None:
        overtime_tolerance_minutes = settings.OVERTIME_TOLERANCE_MINUTES

    location = get_location(db, location_id)
    geofence = evaluate(position, location)
    current = session_store.get_open_session(db, user_id)

    summary = None
    if action == AttendanceAction.CHECK_IN:
        session = _check_in(
            db, user_id, location, position, geofence, current, now, notes, late_tolerance_minutes,
        )
    else:
        session, summary = _check_out(db, user_id, position, current, now, overtime_tolerance_minutes)

    _log.info(
        "attendance %s: user_id=%s session_id=%s location_id=%s distance=%.1fm",
        action.value, user_id, session.id, location.id, geofence.distance_meters,
    )
    _publish(notifier, session)
    return SubmitResult(session=session, action=action, geofence=geofence, check_out_summary=summary)


def submit_from_sensor(
    db: Session,
    user_id: str,
    location_id: int,
    sensor: PositionSource,
    action: AttendanceAction,
    **kwargs,
) -> SubmitResult:
    """Acquire a fix from sensor, then submit. Sensor errors propagate as-is and are never retried."""
    position = sensor.acquire()
    return submit(db, user_id, location_id, position, action, **kwargs)
