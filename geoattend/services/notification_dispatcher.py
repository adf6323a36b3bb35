"""
Notification dispatcher: turns committed session changes into user-facing
notifications (an alert to the ADMIN role and a confirmation to the employee).

Registered as a ChangeNotifier subscriber. Transport errors propagate so the
notifier can retry and, eventually, log and drop the change for this subscriber.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Protocol

from geoattend.core.constants import ROLE_ADMIN
from geoattend.models.attendance_session import AttendanceEventType, AttendanceStatus
from geoattend.services.change_notifier import SessionChanged
from geoattend.utils.datetime_utils import to_work_tz

_log = logging.getLogger(__name__)

AUDIENCE_ROLE = "role"
AUDIENCE_USER = "user"

ADMIN_ATTENDANCE_URL = "/admin-dashboard?tab=attendance"
MY_ATTENDANCE_URL = "/dashboard?tab=my-attendance"


@dataclass(frozen=True)
class Notification:
    audience: str
    recipient: str
    title: str
    body: str
    url: str
    tag: str


class NotificationTransport(Protocol):
    def send(self, notification: Notification) -> None:
        ...


class LoggingTransport:
    """Transport that only logs; used when no push provider is configured."""

    def send(self, notification: Notification) -> None:
        _log.info(
            "notification to %s:%s [%s] %s - %s",
            notification.audience, notification.recipient,
            notification.tag, notification.title, notification.body,
        )


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _clock_time(value: Optional[str]) -> str:
    dt = _parse_iso(value)
    if dt is None:
        return ""
    return to_work_tz(dt).strftime("%H:%M")


def format_duration(check_in_at: Optional[str], check_out_at: Optional[str]) -> str:
    """Worked time as "Xh Ym" (minutes floored)."""
    start = _parse_iso(check_in_at)
    end = _parse_iso(check_out_at)
    if start is None or end is None:
        return "0h 0m"
    total_minutes = max(0, int((end - start).total_seconds() // 60))
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m"


class NotificationDispatcher:
    def __init__(
        self,
        transport: Optional[NotificationTransport] = None,
        display_name: Optional[Callable[[str], str]] = None,
        admin_role: str = ROLE_ADMIN,
    ):
        self.transport = transport or LoggingTransport()
        self.display_name = display_name or (lambda user_id: user_id)
        self.admin_role = admin_role

    def __call__(self, change: SessionChanged) -> None:
        for notification in self.build(change):
            self.transport.send(notification)

    def build(self, change: SessionChanged) -> List[Notification]:
        session = change.session
        user_name = self.display_name(change.user_id)
        location_name = session.get("location_name") or f"location {session.get('location_id')}"

        if change.event_type == AttendanceEventType.CHECK_IN.value:
            status = "late" if session.get("status") == AttendanceStatus.LATE.value else "on time"
            at = _clock_time(session.get("check_in_at"))
            return [
                Notification(
                    audience=AUDIENCE_ROLE,
                    recipient=self.admin_role,
                    title=f"Employee Check-In: {user_name}",
                    body=f"{user_name} has checked in at {location_name} ({status}) at {at}.",
                    url=ADMIN_ATTENDANCE_URL,
                    tag="check-in",
                ),
                Notification(
                    audience=AUDIENCE_USER,
                    recipient=change.user_id,
                    title="Check-In Successful",
                    body=f"You have successfully checked in at {location_name} ({status}) at {at}.",
                    url=MY_ATTENDANCE_URL,
                    tag="check-in-confirmation",
                ),
            ]

        if change.event_type == AttendanceEventType.CHECK_OUT.value:
            at = _clock_time(session.get("check_out_at"))
            duration = format_duration(session.get("check_in_at"), session.get("check_out_at"))
            return [
                Notification(
                    audience=AUDIENCE_ROLE,
                    recipient=self.admin_role,
                    title=f"Employee Check-Out: {user_name}",
                    body=f"{user_name} has checked out from {location_name} at {at}. Duration: {duration}",
                    url=ADMIN_ATTENDANCE_URL,
                    tag="check-out",
                ),
                Notification(
                    audience=AUDIENCE_USER,
                    recipient=change.user_id,
                    title="Check-Out Successful",
                    body=f"You have successfully checked out from {location_name} at {at}. Duration: {duration}",
                    url=MY_ATTENDANCE_URL,
                    tag="check-out-confirmation",
                ),
            ]

        _log.warning("No notification template for event_type=%s (event_id=%s)", change.event_type, change.event_id)
        return []
