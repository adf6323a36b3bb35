"""
Attendance schemas: check-in/check-out requests, session output, change feed.
"""
from datetime import datetime
from typing import Optional, List, Any, Dict, Literal
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from geoattend.core.constants import (
    POSITION_ERROR_PERMISSION_DENIED,
    POSITION_ERROR_TIMEOUT,
    POSITION_ERROR_UNAVAILABLE,
)
from geoattend.utils.datetime_utils import iso_8601_utc

PositionErrorCode = Literal[
    POSITION_ERROR_PERMISSION_DENIED,
    POSITION_ERROR_UNAVAILABLE,
    POSITION_ERROR_TIMEOUT,
]


def _serialize_dt_utc(dt: Optional[datetime]) -> Optional[str]:
    """Serialize datetime as ISO-8601 UTC with Z for API responses."""
    return iso_8601_utc(dt)


class AttendanceSubmitRequest(BaseModel):
    """
    Body for check-in and check-out.

    Either lat + lng (the device's fix) or position_error (the device could not
    produce one). Coordinate ranges are checked by the geofence evaluator so an
    out-of-range fix reports INVALID_COORDINATES.
    """
    location_id: int = Field(..., description="Work site the user is checking in/out at")
    lat: Optional[float] = Field(None, description="GPS latitude [-90, 90]")
    lng: Optional[float] = Field(None, description="GPS longitude [-180, 180]")
    accuracy: Optional[float] = Field(None, description="Accuracy in meters; must be positive")
    position_error: Optional[PositionErrorCode] = Field(
        None, description="Device error instead of a fix: PERMISSION_DENIED, POSITION_UNAVAILABLE or TIMEOUT"
    )
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("accuracy")
    @classmethod
    def check_accuracy(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("accuracy must be positive")
        return v

    @model_validator(mode="after")
    def check_position(self):
        if self.position_error is None and (self.lat is None or self.lng is None):
            raise ValueError("lat and lng are required unless position_error is given")
        return self


class AttendanceSessionOut(BaseModel):
    """Attendance session output; all datetimes ISO-8601 UTC (Z)."""
    id: int
    user_id: str
    location_id: int
    location_name: Optional[str] = None
    check_in_at: datetime
    check_in_latitude: float
    check_in_longitude: float
    check_in_accuracy: Optional[float] = None
    check_in_distance_meters: Optional[float] = None
    check_out_at: Optional[datetime] = None
    check_out_latitude: Optional[float] = None
    check_out_longitude: Optional[float] = None
    check_out_accuracy: Optional[float] = None
    status: str
    notes: Optional[str] = None
    is_open: bool

    model_config = ConfigDict(from_attributes=True)

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, v: Any) -> Any:
        return getattr(v, "value", v)

    @field_serializer("check_in_at", "check_out_at", when_used="always")
    def _serialize_datetime_utc(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt_utc(dt)


class GeofenceOut(BaseModel):
    within_radius: bool
    distance_meters: float
    radius_meters: float

    @field_serializer("distance_meters")
    def _round_distance(self, v: float) -> float:
        return round(v, 1)


class CheckOutSummaryOut(BaseModel):
    duration_minutes: int
    duration_text: str
    scheduled_minutes: Optional[int] = None
    overtime_minutes: int
    is_overtime: bool

    model_config = ConfigDict(from_attributes=True)


class AttendanceSubmitResponse(BaseModel):
    """Result of check-in / check-out"""
    action: str
    session: AttendanceSessionOut
    geofence: GeofenceOut
    check_out_summary: Optional[CheckOutSummaryOut] = None


class SessionListResponse(BaseModel):
    """List of sessions with total"""
    items: List[AttendanceSessionOut]
    total: int


class SessionChangeOut(BaseModel):
    """Outbox entry as exposed by the change feed."""
    id: int
    session_id: int
    user_id: str
    event_type: str
    event_at: datetime
    session: Dict[str, Any] = Field(validation_alias="snapshot_json")
    published_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @field_validator("event_type", mode="before")
    @classmethod
    def event_type_value(cls, v: Any) -> Any:
        return getattr(v, "value", v)

    @field_serializer("event_at", "published_at", when_used="always")
    def _serialize_datetime_utc(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt_utc(dt)


class ChangeFeedResponse(BaseModel):
    items: List[SessionChangeOut]
    next_after_id: int
