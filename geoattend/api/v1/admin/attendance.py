"""
Admin attendance endpoints: who is checked in right now, and session history across users.
"""
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from geoattend.core.constants import ROLE_ADMIN
from geoattend.core.deps import CurrentUser, get_db, require_roles
from geoattend.models.attendance_session import AttendanceStatus
from geoattend.schemas.attendance import AttendanceSessionOut, SessionListResponse
from geoattend.services import session_store

router = APIRouter()


@router.get("/open", response_model=List[AttendanceSessionOut])
async def admin_open_sessions(
    location_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(ROLE_ADMIN)),
):
    """GET /api/v1/admin/attendance/open?location_id= - everyone currently checked in."""
    sessions = session_store.list_open_sessions(db, location_id=location_id)
    return [AttendanceSessionOut.model_validate(s) for s in sessions]


@router.get("/sessions", response_model=SessionListResponse)
async def admin_list_sessions(
    user_id: Optional[str] = Query(None),
    location_id: Optional[int] = Query(None),
    status: Optional[AttendanceStatus] = Query(None),
    from_at: Optional[datetime] = Query(None, alias="from"),
    to_at: Optional[datetime] = Query(None, alias="to"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(ROLE_ADMIN)),
):
    """GET /api/v1/admin/attendance/sessions?user_id=&location_id=&status=&from=&to=&limit=&offset="""
    sessions = session_store.list_sessions(
        db, user_id, from_at, to_at,
        location_id=location_id, status=status, limit=limit, offset=offset,
    )
    total = session_store.count_sessions(db, user_id, from_at, to_at, location_id=location_id, status=status)
    return SessionListResponse(
        items=[AttendanceSessionOut.model_validate(s) for s in sessions],
        total=total,
    )
