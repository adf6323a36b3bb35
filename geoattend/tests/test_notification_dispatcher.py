"""
Tests for check-in/check-out notifications sent to admins and to the employee
"""
import pytest

from geoattend.services.change_notifier import SessionChanged
from geoattend.services.notification_dispatcher import (
    AUDIENCE_ROLE,
    AUDIENCE_USER,
    NotificationDispatcher,
    format_duration,
)


class RecordingTransport:
    def __init__(self):
        self.sent = []

    def send(self, notification):
        self.sent.append(notification)


def _change(event_type, status="PRESENT", check_out_at=None):
    return SessionChanged(
        event_id=1,
        event_type=event_type,
        user_id="u-1",
        session={
            "id": 10,
            "user_id": "u-1",
            "location_id": 3,
            "location_name": "SF Office",
            "check_in_at": "2026-03-02T08:55:00Z",
            "check_out_at": check_out_at,
            "status": status,
        },
    )


def test_check_in_on_time_notifications():
    transport = RecordingTransport()
    dispatcher = NotificationDispatcher(transport, display_name=lambda user_id: "Ada Lovelace")

    dispatcher(_change("CHECK_IN"))

    admin, user = transport.sent
    assert admin.audience == AUDIENCE_ROLE and admin.recipient == "ADMIN"
    assert admin.title == "Employee Check-In: Ada Lovelace"
    assert admin.body == "Ada Lovelace has checked in at SF Office (on time) at 08:55."
    assert admin.tag == "check-in"
    assert user.audience == AUDIENCE_USER and user.recipient == "u-1"
    assert user.title == "Check-In Successful"
    assert "(on time)" in user.body


def test_late_check_in_is_labelled_late():
    transport = RecordingTransport()
    NotificationDispatcher(transport)(_change("CHECK_IN", status="LATE"))
    assert all("(late)" in n.body for n in transport.sent)


def test_check_out_notifications_include_duration():
    transport = RecordingTransport()
    NotificationDispatcher(transport)(_change("CHECK_OUT", check_out_at="2026-03-02T17:40:00Z"))

    admin, user = transport.sent
    assert admin.title == "Employee Check-Out: u-1"
    assert admin.body.endswith("Duration: 8h 45m")
    assert user.title == "Check-Out Successful"
    assert user.tag == "check-out-confirmation"


def test_transport_errors_propagate():
    class DownTransport:
        def send(self, notification):
            raise ConnectionError("push service unavailable")

    with pytest.raises(ConnectionError):
        NotificationDispatcher(DownTransport())(_change("CHECK_IN"))


def test_unknown_event_type_sends_nothing():
    transport = RecordingTransport()
    NotificationDispatcher(transport)(_change("SOMETHING_ELSE"))
    assert transport.sent == []


@pytest.mark.parametrize("check_in,check_out,expected", [
    ("2026-03-02T09:00:00Z", "2026-03-02T09:00:59Z", "0h 0m"),
    ("2026-03-02T09:00:00Z", "2026-03-02T10:30:00Z", "1h 30m"),
    ("2026-03-02T22:00:00Z", "2026-03-03T06:05:00Z", "8h 5m"),
    ("2026-03-02T09:00:00Z", None, "0h 0m"),
])
def test_format_duration(check_in, check_out, expected):
    assert format_duration(check_in, check_out) == expected
