"""
Typed errors raised by the attendance engine.

Every error carries an HTTP status, a stable machine-readable code and optional
details so callers can tell failure categories apart without parsing messages.
"""
from typing import Any, Dict, Optional


class AttendanceError(Exception):
    """Base class for all attendance engine errors."""

    status_code: int = 400
    code: str = "ATTENDANCE_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "detail": self.message, **self.details}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


# --- Input errors ---


class InputError(AttendanceError):
    """Request data is malformed or refers to something that does not exist."""


class InvalidCoordinates(InputError):
    status_code = 422
    code = "INVALID_COORDINATES"


class InvalidRange(InputError):
    status_code = 400
    code = "INVALID_RANGE"


class LocationNotFound(InputError):
    status_code = 404
    code = "LOCATION_NOT_FOUND"

    def __init__(self, location_id: int):
        super().__init__(f"Location {location_id} not found", location_id=location_id)


# --- Policy violations ---


class PolicyViolation(AttendanceError):
    """Request is well formed but attendance policy forbids it."""


class GeofenceViolation(PolicyViolation):
    status_code = 403
    code = "GEOFENCE_VIOLATION"

    def __init__(self, distance_meters: float, radius_meters: float):
        super().__init__(
            "You are not within the required distance of this location",
            distance_meters=round(distance_meters, 1),
            radius_meters=radius_meters,
        )
        self.distance_meters = distance_meters
        self.radius_meters = radius_meters


# --- Invariant violations ---


class InvariantViolation(AttendanceError):
    """Request conflicts with the current session state (stale view or lost race)."""

    status_code = 409


class AlreadyOpenError(InvariantViolation):
    code = "ALREADY_OPEN"

    def __init__(self, user_id: str, session_id: Optional[int] = None):
        super().__init__("You already have an active check-in", user_id=user_id, session_id=session_id)


class NoOpenSessionError(InvariantViolation):
    code = "NO_OPEN_SESSION"

    def __init__(self, user_id: str):
        super().__init__("No active check-in found", user_id=user_id)


class AlreadyClosedError(InvariantViolation):
    code = "ALREADY_CLOSED"

    def __init__(self, session_id: int):
        super().__init__(f"Session {session_id} is already closed", session_id=session_id)


class OutOfOrderError(InvariantViolation):
    code = "OUT_OF_ORDER"

    def __init__(self, session_id: int):
        super().__init__(
            f"Check-out time precedes check-in time for session {session_id}",
            session_id=session_id,
        )


class SessionNotFoundError(AttendanceError):
    status_code = 404
    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: int):
        super().__init__(f"Session {session_id} not found", session_id=session_id)


# --- Sensor errors (originate on the client device) ---


class SensorError(AttendanceError):
    """The device could not provide a position fix. Never retried by the engine."""

    status_code = 422


class PermissionDenied(SensorError):
    code = "PERMISSION_DENIED"

    def __init__(self, message: str = "Location permission was denied on the device"):
        super().__init__(message)


class PositionUnavailable(SensorError):
    code = "POSITION_UNAVAILABLE"

    def __init__(self, message: str = "The device could not determine its position"):
        super().__init__(message)


class PositionTimeout(SensorError):
    code = "TIMEOUT"

    def __init__(self, message: str = "Timed out waiting for a position fix"):
        super().__init__(message)
