"""
Tests for the session store (open/close invariants, outbox events, history paging)
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

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
from geoattend.services import session_store
from geoattend.services.geofence import PositionSample

UTC = timezone.utc
T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
HERE = PositionSample(37.7749, -122.4194, accuracy_meters=8.0)


def _open(db, office, user_id="u-1", at=T0, status=AttendanceStatus.PRESENT):
    return session_store.open_session(db, user_id, office.id, at, HERE, status, distance_meters=0.0)


def test_open_session_persists_and_writes_event(db, office):
    session = _open(db, office)

    assert session.id is not None
    assert session.is_open
    assert session.status == AttendanceStatus.PRESENT
    assert session_store.get_open_session(db, "u-1").id == session.id

    events = db.query(AttendanceEvent).all()
    assert len(events) == 1
    assert events[0].event_type == AttendanceEventType.CHECK_IN
    assert events[0].published_at is None
    assert events[0].snapshot_json["id"] == session.id
    assert events[0].snapshot_json["location_name"] == "SF Office"
    assert events[0].snapshot_json["check_in_at"] == "2026-03-02T09:00:00Z"
    assert events[0].snapshot_json["status"] == "PRESENT"


def test_second_open_session_rejected(db, office):
    first = _open(db, office)

    with pytest.raises(AlreadyOpenError) as exc_info:
        _open(db, office, at=T0 + timedelta(minutes=1))

    assert exc_info.value.details["session_id"] == first.id
    assert db.query(AttendanceSession).count() == 1
    assert db.query(AttendanceEvent).count() == 1


def test_other_users_sessions_are_independent(db, office):
    _open(db, office, user_id="u-1")
    _open(db, office, user_id="u-2")
    assert len(session_store.list_open_sessions(db)) == 2


def test_unique_index_rejects_second_open_row(db, office):
    _open(db, office)
    db.add(AttendanceSession(
        user_id="u-1",
        location_id=office.id,
        check_in_at=T0,
        check_in_latitude=0.0,
        check_in_longitude=0.0,
        status=AttendanceStatus.PRESENT,
    ))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_close_session_sets_check_out_once(db, office):
    session = _open(db, office)
    away = PositionSample(37.7800, -122.4194)

    closed = session_store.close_session(db, session.id, T0 + timedelta(hours=8), away)

    assert not closed.is_open
    assert closed.check_out_latitude == pytest.approx(37.78)
    assert closed.status == AttendanceStatus.PRESENT
    assert session_store.get_open_session(db, "u-1") is None

    with pytest.raises(AlreadyClosedError):
        session_store.close_session(db, session.id, T0 + timedelta(hours=9), away)

    db.refresh(closed)
    assert closed.check_out_latitude == pytest.approx(37.78)
    types = [e.event_type for e in db.query(AttendanceEvent).order_by(AttendanceEvent.id).all()]
    assert types == [AttendanceEventType.CHECK_IN, AttendanceEventType.CHECK_OUT]


def test_close_before_check_in_is_out_of_order(db, office):
    session = _open(db, office)

    with pytest.raises(OutOfOrderError):
        session_store.close_session(db, session.id, T0 - timedelta(seconds=1), HERE)

    db.refresh(session)
    assert session.is_open
    assert db.query(AttendanceEvent).count() == 1


def test_close_at_check_in_time_is_allowed(db, office):
    session = _open(db, office)
    closed = session_store.close_session(db, session.id, T0, HERE)
    assert not closed.is_open


def test_close_unknown_session(db):
    with pytest.raises(SessionNotFoundError):
        session_store.close_session(db, 999, T0, HERE)


def test_check_in_time_is_not_changed_by_close(db, office):
    session = _open(db, office)
    closed = session_store.close_session(db, session.id, T0 + timedelta(hours=1), HERE)
    assert closed.check_in_at.replace(tzinfo=UTC) == T0


def test_user_can_open_again_after_close(db, office):
    first = _open(db, office)
    session_store.close_session(db, first.id, T0 + timedelta(hours=4), HERE)
    second = _open(db, office, at=T0 + timedelta(hours=5))
    assert second.id != first.id
    assert session_store.get_open_session(db, "u-1").id == second.id


def test_list_sessions_most_recent_first_with_paging(db, office):
    ids = []
    for day in range(5):
        s = _open(db, office, at=T0 + timedelta(days=day))
        session_store.close_session(db, s.id, T0 + timedelta(days=day, hours=8), HERE)
        ids.append(s.id)

    page1 = session_store.list_sessions(db, "u-1", limit=2, offset=0)
    page2 = session_store.list_sessions(db, "u-1", limit=2, offset=2)
    page3 = session_store.list_sessions(db, "u-1", limit=2, offset=4)

    seen = [s.id for s in page1 + page2 + page3]
    assert seen == list(reversed(ids))
    assert session_store.count_sessions(db, "u-1") == 5


def test_list_sessions_date_filter(db, office):
    for day in range(3):
        s = _open(db, office, at=T0 + timedelta(days=day))
        session_store.close_session(db, s.id, T0 + timedelta(days=day, hours=1), HERE)

    sessions = session_store.list_sessions(db, "u-1", T0 + timedelta(days=1), T0 + timedelta(days=1, hours=12))
    assert len(sessions) == 1
    assert sessions[0].check_in_at.replace(tzinfo=UTC) == T0 + timedelta(days=1)


def test_list_sessions_filters_by_location_and_status(db, office):
    from geoattend.models.location import Location

    annex = Location(name="Annex", latitude=37.78, longitude=-122.41, radius_meters=80)
    db.add(annex)
    db.commit()
    _open(db, office, user_id="u-1", status=AttendanceStatus.LATE)
    _open(db, annex, user_id="u-2", status=AttendanceStatus.LATE)
    _open(db, annex, user_id="u-3")

    at_annex = session_store.list_sessions(db, None, location_id=annex.id)
    assert {s.user_id for s in at_annex} == {"u-2", "u-3"}

    late_at_annex = session_store.list_sessions(db, None, location_id=annex.id, status=AttendanceStatus.LATE)
    assert [s.user_id for s in late_at_annex] == ["u-2"]
    assert session_store.count_sessions(db, None, status=AttendanceStatus.LATE) == 2
    assert session_store.count_sessions(db, None, status=AttendanceStatus.ABSENT) == 0


def test_list_sessions_rejects_inverted_range(db):
    with pytest.raises(InvalidRange):
        session_store.list_sessions(db, "u-1", T0, T0 - timedelta(days=1))


def test_list_sessions_rejects_bad_paging(db):
    with pytest.raises(InvalidRange):
        session_store.list_sessions(db, "u-1", limit=0)


def test_list_open_sessions_by_location(db, office):
    from geoattend.models.location import Location

    other = Location(name="Warehouse", latitude=37.8, longitude=-122.3, radius_meters=100)
    db.add(other)
    db.commit()
    _open(db, office, user_id="u-1")
    _open(db, other, user_id="u-2")

    at_office = session_store.list_open_sessions(db, location_id=office.id)
    assert [s.user_id for s in at_office] == ["u-1"]
