"""
Attendance endpoints: geofenced check-in/check-out, own open session, own history, change feed.
Every caller acts on their own attendance only (user id from the bearer token).
"""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from geoattend.core.deps import CurrentUser, get_current_user, get_db, get_notifier
from geoattend.schemas.attendance import (
    AttendanceSessionOut,
    AttendanceSubmitRequest,
    AttendanceSubmitResponse,
    ChangeFeedResponse,
    CheckOutSummaryOut,
    GeofenceOut,
    SessionChangeOut,
    SessionListResponse,
)
from geoattend.services import session_store
from geoattend.services.attendance_coordinator import (
    AttendanceAction,
    ReportedPosition,
    SubmitResult,
    submit_from_sensor,
)
from geoattend.services.change_notifier import ChangeNotifier, list_changes
from geoattend.services.geofence import PositionSample

router = APIRouter()
_log = logging.getLogger(__name__)


def _reported_position(body: AttendanceSubmitRequest) -> ReportedPosition:
    if body.position_error is not None:
        return ReportedPosition(error_code=body.position_error)
    return ReportedPosition(
        sample=PositionSample(latitude=body.lat, longitude=body.lng, accuracy_meters=body.accuracy)
    )


def _submit_response(result: SubmitResult) -> AttendanceSubmitResponse:
    summary = None
    if result.check_out_summary is not None:
        summary = CheckOutSummaryOut.model_validate(result.check_out_summary)
    return AttendanceSubmitResponse(
        action=result.action.value,
        session=AttendanceSessionOut.model_validate(result.session),
        geofence=GeofenceOut(
            within_radius=result.geofence.within_radius,
            distance_meters=result.geofence.distance_meters,
            radius_meters=result.geofence.radius_meters,
        ),
        check_out_summary=summary,
    )


def _submit(
    db: Session,
    current_user: CurrentUser,
    body: AttendanceSubmitRequest,
    action: AttendanceAction,
    notifier: ChangeNotifier,
) -> AttendanceSubmitResponse:
    _log.debug(
        "%s: user_id=%s location_id=%s position_error=%s",
        action.value, current_user.id, body.location_id, body.position_error,
    )
    result = submit_from_sensor(
        db,
        current_user.id,
        body.location_id,
        _reported_position(body),
        action,
        notes=body.notes,
        notifier=notifier,
    )
    return _submit_response(result)


@router.post("/check-in", response_model=AttendanceSubmitResponse, status_code=201)
async def check_in_endpoint(
    body: AttendanceSubmitRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    notifier: ChangeNotifier = Depends(get_notifier),
):
    """
    Check in at a location. The reported position must be inside the location's geofence.
    Already checked in => 409 ALREADY_OPEN; outside => 403 GEOFENCE_VIOLATION with distance.
    """
    return _submit(db, current_user, body, AttendanceAction.CHECK_IN, notifier)


@router.post("/check-out", response_model=AttendanceSubmitResponse)
async def check_out_endpoint(
    body: AttendanceSubmitRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    notifier: ChangeNotifier = Depends(get_notifier),
):
    """
    Check out of the open session. Allowed from anywhere; the distance is still reported.
    No open session => 409 NO_OPEN_SESSION.
    """
    return _submit(db, current_user, body, AttendanceAction.CHECK_OUT, notifier)


@router.get("/open", response_model=Optional[AttendanceSessionOut])
async def open_session_endpoint(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Current user's open session, or null when checked out."""
    session = session_store.get_open_session(db, current_user.id)
    return AttendanceSessionOut.model_validate(session) if session else None


@router.get("/my", response_model=SessionListResponse)
async def my_sessions_endpoint(
    from_at: Optional[datetime] = Query(None, alias="from", description="Check-in at or after (ISO-8601)"),
    to_at: Optional[datetime] = Query(None, alias="to", description="Check-in at or before (ISO-8601)"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Own sessions, most recent first."""
    sessions = session_store.list_sessions(db, current_user.id, from_at, to_at, limit=limit, offset=offset)
    total = session_store.count_sessions(db, current_user.id, from_at, to_at)
    return SessionListResponse(
        items=[AttendanceSessionOut.model_validate(s) for s in sessions],
        total=total,
    )


@router.get("/changes", response_model=ChangeFeedResponse)
async def changes_endpoint(
    after_id: int = Query(0, ge=0, description="Return changes with id greater than this cursor"),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Committed session changes after a cursor, oldest first. Admins see every user."""
    user_filter = None if current_user.is_admin else current_user.id
    events = list_changes(db, after_id=after_id, user_id=user_filter, limit=limit)
    items = [SessionChangeOut.model_validate(e) for e in events]
    next_after_id = items[-1].id if items else after_id
    return ChangeFeedResponse(items=items, next_after_id=next_after_id)
