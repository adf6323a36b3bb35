"""
Session store: the only component that mutates attendance sessions.

At most one open session (check_out_at IS NULL) per user. The database enforces
this with a partial unique index, so the guarantee holds across workers and
processes; the read-side pre-check only exists to report the conflicting
session id. Closing is a conditional UPDATE so a session closes exactly once.
Each mutation writes its outbox event (attendance_events) in the same
transaction. All timestamps are stored in UTC.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from geoattend.core.exceptions import (
    AlreadyClosedError,
    AlreadyOpenError,
    InvalidRange,
    OutOfOrderError,
    SessionNotFoundError,
)
from geoattend.models.attendance_session import (
    AttendanceEvent,
    AttendanceEventType,
    AttendanceSession,
    AttendanceStatus,
)
from geoattend.services.geofence import PositionSample
from geoattend.utils.datetime_utils import ensure_utc, iso_8601_utc
from geoattend.utils.json_serializer import sanitize_for_json

_log = logging.getLogger(__name__)


def session_snapshot(session: AttendanceSession) -> Dict[str, Any]:
    """JSON-safe view of a session as committed; stored on outbox events and sent to observers."""
    return sanitize_for_json({
        "id": session.id,
        "user_id": session.user_id,
        "location_id": session.location_id,
        "location_name": session.location.name if session.location is not None else None,
        "check_in_at": iso_8601_utc(session.check_in_at),
        "check_in_latitude": session.check_in_latitude,
        "check_in_longitude": session.check_in_longitude,
        "check_in_accuracy": session.check_in_accuracy,
        "check_in_distance_meters": session.check_in_distance_meters,
        "check_out_at": iso_8601_utc(session.check_out_at),
        "check_out_latitude": session.check_out_latitude,
        "check_out_longitude": session.check_out_longitude,
        "check_out_accuracy": session.check_out_accuracy,
        "status": session.status,
        "notes": session.notes,
    })


def _record_event(db: Session, session: AttendanceSession, event_type: AttendanceEventType, event_at: datetime) -> AttendanceEvent:
    event = AttendanceEvent(
        session_id=session.id,
        user_id=session.user_id,
        event_type=event_type,
        event_at=event_at,
        snapshot_json=session_snapshot(session),
        published_at=None,
    )
    db.add(event)
    return event


def get_open_session(db: Session, user_id: str) -> Optional[AttendanceSession]:
    """The user's open session, read fresh from the database."""
    return (
        db.query(AttendanceSession)
        .filter(
            AttendanceSession.user_id == user_id,
            AttendanceSession.check_out_at.is_(None),
        )
        .first()
    )


def get_session(db: Session, session_id: int) -> AttendanceSession:
    session = db.query(AttendanceSession).filter(AttendanceSession.id == session_id).first()
    if session is None:
        raise SessionNotFoundError(session_id)
    return session


def open_session(
    db: Session,
    user_id: str,
    location_id: int,
    check_in_time: datetime,
    position: PositionSample,
    status: AttendanceStatus,
    *,
    distance_meters: Optional[float] = None,
    notes: Optional[str] = None,
) -> AttendanceSession:
    """
    Create an open session for user_id.

    Raises AlreadyOpenError if the user already has an open session, including
    when a concurrent request commits first and the unique index rejects this
    insert. Nothing is persisted on failure.
    """
    check_in_time = ensure_utc(check_in_time)

    existing = get_open_session(db, user_id)
    if existing is not None:
        raise AlreadyOpenError(user_id, existing.id)

    session = AttendanceSession(
        user_id=user_id,
        location_id=location_id,
        check_in_at=check_in_time,
        check_in_latitude=position.latitude,
        check_in_longitude=position.longitude,
        check_in_accuracy=position.accuracy_meters,
        check_in_distance_meters=distance_meters,
        check_out_at=None,
        status=status,
        notes=notes,
    )
    try:
        db.add(session)
        db.flush()
        _record_event(db, session, AttendanceEventType.CHECK_IN, check_in_time)
        db.commit()
    except IntegrityError:
        db.rollback()
        winner = get_open_session(db, user_id)
        if winner is None:
            raise
        _log.info(
            "open_session rejected by unique index: user_id=%s open_session_id=%s",
            user_id, winner.id,
        )
        raise AlreadyOpenError(user_id, winner.id)
    except Exception:
        db.rollback()
        raise

    db.refresh(session)
    _log.info(
        "open_session: session_id=%s user_id=%s location_id=%s status=%s",
        session.id, user_id, location_id, session.status.value,
    )
    return session


def close_session(
    db: Session,
    session_id: int,
    check_out_time: datetime,
    position: PositionSample,
) -> AttendanceSession:
    """
    Close an open session exactly once.

    Raises SessionNotFoundError, AlreadyClosedError (also when a concurrent
    close wins the conditional update) or OutOfOrderError when check_out_time
    precedes check_in_at. Only the check_out_* columns are written.
    """
    check_out_time = ensure_utc(check_out_time)

    session = get_session(db, session_id)
    if session.check_out_at is not None:
        raise AlreadyClosedError(session_id)
    if check_out_time < ensure_utc(session.check_in_at):
        raise OutOfOrderError(session_id)

    try:
        updated = (
            db.query(AttendanceSession)
            .filter(
                AttendanceSession.id == session_id,
                AttendanceSession.check_out_at.is_(None),
            )
            .update(
                {
                    AttendanceSession.check_out_at: check_out_time,
                    AttendanceSession.check_out_latitude: position.latitude,
                    AttendanceSession.check_out_longitude: position.longitude,
                    AttendanceSession.check_out_accuracy: position.accuracy_meters,
                },
                synchronize_session=False,
            )
        )
        if not updated:
            db.rollback()
            _log.info("close_session lost race: session_id=%s already closed", session_id)
            raise AlreadyClosedError(session_id)
        db.refresh(session)
        _record_event(db, session, AttendanceEventType.CHECK_OUT, check_out_time)
        db.commit()
    except AlreadyClosedError:
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(session)
    _log.info("close_session: session_id=%s user_id=%s", session.id, session.user_id)
    return session


def _history_query(
    db: Session,
    user_id: Optional[str],
    from_at: Optional[datetime],
    to_at: Optional[datetime],
    location_id: Optional[int] = None,
    status: Optional[AttendanceStatus] = None,
):
    from_at = ensure_utc(from_at)
    to_at = ensure_utc(to_at)
    if from_at is not None and to_at is not None and from_at > to_at:
        raise InvalidRange(
            "from must be less than or equal to to",
            from_at=iso_8601_utc(from_at),
            to_at=iso_8601_utc(to_at),
        )

    query = db.query(AttendanceSession)
    if user_id is not None:
        query = query.filter(AttendanceSession.user_id == user_id)
    if from_at is not None:
        query = query.filter(AttendanceSession.check_in_at >= from_at)
    if to_at is not None:
        query = query.filter(AttendanceSession.check_in_at <= to_at)
    if location_id is not None:
        query = query.filter(AttendanceSession.location_id == location_id)
    if status is not None:
        query = query.filter(AttendanceSession.status == AttendanceStatus(status))
    return query


def list_sessions(
    db: Session,
    user_id: Optional[str],
    from_at: Optional[datetime] = None,
    to_at: Optional[datetime] = None,
    *,
    location_id: Optional[int] = None,
    status: Optional[AttendanceStatus] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[AttendanceSession]:
    """
    Sessions whose check-in falls in [from_at, to_at], most recent first.
    Ordering is total (check_in_at, id) so limit/offset paging is stable.
    user_id=None lists every user (admin views); location_id and status narrow further.
    """
    if limit < 1 or offset < 0:
        raise InvalidRange("limit must be positive and offset non-negative", limit=limit, offset=offset)
    return (
        _history_query(db, user_id, from_at, to_at, location_id, status)
        .options(joinedload(AttendanceSession.location))
        .order_by(AttendanceSession.check_in_at.desc(), AttendanceSession.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def count_sessions(
    db: Session,
    user_id: Optional[str],
    from_at: Optional[datetime] = None,
    to_at: Optional[datetime] = None,
    *,
    location_id: Optional[int] = None,
    status: Optional[AttendanceStatus] = None,
) -> int:
    return _history_query(db, user_id, from_at, to_at, location_id, status).count()


def list_open_sessions(db: Session, location_id: Optional[int] = None) -> List[AttendanceSession]:
    """Everyone currently checked in, most recent check-in first."""
    query = (
        db.query(AttendanceSession)
        .options(joinedload(AttendanceSession.location))
        .filter(AttendanceSession.check_out_at.is_(None))
    )
    if location_id is not None:
        query = query.filter(AttendanceSession.location_id == location_id)
    return query.order_by(AttendanceSession.check_in_at.desc(), AttendanceSession.id.desc()).all()
