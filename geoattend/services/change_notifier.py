"""
Change notifier: fans committed session changes out to subscribers
(dashboard refresh, notification dispatch).

Delivery reads the attendance_events outbox in id order, so changes for one
user reach subscribers in the order the session store committed them. An event
is marked published only after every subscriber has been tried, so a crash in
between redelivers it: delivery is at-least-once and subscribers should treat
(session id, check_in_at, check_out_at) as the idempotency key. A subscriber
that keeps failing is logged and skipped for that event; the session store is
never touched.

Across processes only the holder of the outbox lease drains: every uvicorn
worker runs a dispatcher thread, but a worker that cannot claim the lease skips
its pass, so two workers never interleave deliveries for the same user. The
lease is renewed before each event and released when a pass finishes; a holder
that dies keeps it until it expires.
"""
import logging
import os
import socket
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from geoattend.core.config import settings
from geoattend.models.attendance_session import AttendanceEvent, AttendanceSession
from geoattend.models.outbox_lease import OutboxLease
from geoattend.utils.datetime_utils import now_utc

_log = logging.getLogger(__name__)

OUTBOX_LEASE_NAME = "attendance_events"


@dataclass(frozen=True)
class SessionChanged:
    event_id: int
    event_type: str
    user_id: str
    session: Dict[str, Any]

    @property
    def dedupe_key(self) -> Tuple[Any, Any, Any]:
        return (self.session.get("id"), self.session.get("check_in_at"), self.session.get("check_out_at"))


Subscriber = Callable[[SessionChanged], None]


def to_session_changed(event: AttendanceEvent) -> SessionChanged:
    event_type = event.event_type.value if hasattr(event.event_type, "value") else str(event.event_type)
    return SessionChanged(
        event_id=event.id,
        event_type=event_type,
        user_id=event.user_id,
        session=dict(event.snapshot_json or {}),
    )


def list_changes(
    db: Session,
    after_id: int = 0,
    user_id: Optional[str] = None,
    limit: int = 100,
) -> List[AttendanceEvent]:
    """Outbox events after the given cursor, oldest first (polling feed for dashboards)."""
    query = db.query(AttendanceEvent).filter(AttendanceEvent.id > after_id)
    if user_id is not None:
        query = query.filter(AttendanceEvent.user_id == user_id)
    return query.order_by(AttendanceEvent.id.asc()).limit(limit).all()


class ChangeNotifier:
    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        max_attempts: int = 3,
        retry_delay_seconds: float = 0.0,
        poll_interval_seconds: float = 2.0,
        batch_size: int = 100,
        lease_seconds: float = 60.0,
        owner: Optional[str] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._session_factory = session_factory
        self._max_attempts = max_attempts
        self._retry_delay_seconds = retry_delay_seconds
        self._poll_interval_seconds = poll_interval_seconds
        self._batch_size = batch_size
        self._lease_seconds = lease_seconds
        self.owner = owner or f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"

        self._subscribers: List[Subscriber] = []
        self._subscribers_lock = threading.Lock()
        # one drain at a time keeps per-user order within the process
        self._drain_lock = threading.Lock()
        self._wake = threading.Event()
        self._stopping = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def subscribe(self, handler: Subscriber) -> None:
        with self._subscribers_lock:
            if handler not in self._subscribers:
                self._subscribers.append(handler)

    def unsubscribe(self, handler: Subscriber) -> None:
        with self._subscribers_lock:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

    def publish(self, session: Optional[AttendanceSession] = None) -> None:
        """
        Signal that a session change was committed.

        Fire-and-forget: the change is already in the outbox, so this only wakes
        the dispatcher thread. Without a running dispatcher the change waits for
        the next drain().
        """
        if session is not None:
            _log.debug("publish: session_id=%s user_id=%s", session.id, session.user_id)
        self._wake.set()

    def _claim_lease(self, db: Session) -> bool:
        """Take or renew the outbox lease. False when another live dispatcher holds it."""
        now = now_utc()
        expires_at = now + timedelta(seconds=self._lease_seconds)
        updated = (
            db.query(OutboxLease)
            .filter(OutboxLease.name == OUTBOX_LEASE_NAME)
            .filter(or_(
                OutboxLease.owner == self.owner,
                OutboxLease.expires_at.is_(None),
                OutboxLease.expires_at < now,
            ))
            .update({OutboxLease.owner: self.owner, OutboxLease.expires_at: expires_at}, synchronize_session=False)
        )
        if updated:
            db.commit()
            return True
        db.rollback()
        if db.get(OutboxLease, OUTBOX_LEASE_NAME) is not None:
            return False
        db.add(OutboxLease(name=OUTBOX_LEASE_NAME, owner=self.owner, expires_at=expires_at))
        try:
            db.commit()
        except IntegrityError:
            # another dispatcher created the row first
            db.rollback()
            return False
        return True

    def _release_lease(self, db: Session) -> None:
        (
            db.query(OutboxLease)
            .filter(OutboxLease.name == OUTBOX_LEASE_NAME, OutboxLease.owner == self.owner)
            .update({OutboxLease.expires_at: None}, synchronize_session=False)
        )
        db.commit()

    def drain(self) -> int:
        """
        Deliver every pending outbox event in commit order. Returns the number delivered.

        Returns 0 without delivering when another dispatcher holds the outbox
        lease, and stops early if the lease is lost mid-pass.
        """
        delivered = 0
        with self._drain_lock:
            db = self._session_factory()
            try:
                if not self._claim_lease(db):
                    _log.debug("drain: outbox lease held by another dispatcher; skipping")
                    return 0
                lost = False
                while not lost:
                    events = (
                        db.query(AttendanceEvent)
                        .filter(AttendanceEvent.published_at.is_(None))
                        .order_by(AttendanceEvent.id.asc())
                        .limit(self._batch_size)
                        .all()
                    )
                    if not events:
                        break
                    for event in events:
                        if not self._claim_lease(db):
                            _log.warning("drain: outbox lease lost before event_id=%s; stopping", event.id)
                            lost = True
                            break
                        self._deliver(to_session_changed(event))
                        event.published_at = now_utc()
                        db.commit()
                        delivered += 1
                if not lost:
                    self._release_lease(db)
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()
        if delivered:
            _log.debug("drain: delivered %s change(s)", delivered)
        return delivered

    def _deliver(self, change: SessionChanged) -> None:
        with self._subscribers_lock:
            handlers = list(self._subscribers)
        for handler in handlers:
            for attempt in range(1, self._max_attempts + 1):
                try:
                    handler(change)
                    break
                except Exception:
                    if attempt >= self._max_attempts:
                        _log.error(
                            "Dropping change event_id=%s for subscriber %r after %s attempts",
                            change.event_id, handler, attempt,
                            exc_info=True,
                        )
                    else:
                        _log.warning(
                            "Subscriber %r failed on event_id=%s (attempt %s/%s)",
                            handler, change.event_id, attempt, self._max_attempts,
                        )
                        if self._retry_delay_seconds:
                            time.sleep(self._retry_delay_seconds * attempt)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background dispatcher thread (idempotent)."""
        if self.running:
            return
        self._stopping.clear()
        self._thread = threading.Thread(target=self._run, name="attendance-change-notifier", daemon=True)
        self._thread.start()
        _log.info("Change notifier started")

    def stop(self, timeout: float = 5.0) -> None:
        if not self.running:
            return
        self._stopping.set()
        self._wake.set()
        self._thread.join(timeout)
        self._thread = None
        _log.info("Change notifier stopped")

    def _run(self) -> None:
        while not self._stopping.is_set():
            self._wake.wait(self._poll_interval_seconds)
            self._wake.clear()
            self._drain_logged()
        # flush whatever was committed before shutdown
        self._drain_logged()

    def _drain_logged(self) -> None:
        try:
            self.drain()
        except Exception:
            _log.exception("Change notifier pass failed; pending events stay in the outbox")


_notifier: Optional[ChangeNotifier] = None


def get_change_notifier() -> ChangeNotifier:
    """Process-wide notifier bound to the application's session factory."""
    global _notifier
    if _notifier is None:
        from geoattend.db.session import SessionLocal

        _notifier = ChangeNotifier(
            SessionLocal,
            max_attempts=settings.NOTIFY_MAX_ATTEMPTS,
            retry_delay_seconds=settings.NOTIFY_RETRY_DELAY_SECONDS,
            poll_interval_seconds=settings.NOTIFY_POLL_INTERVAL_SECONDS,
            batch_size=settings.NOTIFY_BATCH_SIZE,
            lease_seconds=settings.NOTIFY_LEASE_SECONDS,
        )
    return _notifier
