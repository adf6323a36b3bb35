"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB (SQLite hands naive values back; treat them as UTC).
- Work-shift times are wall-clock values in settings.WORK_TIMEZONE.
- API responses expose datetimes as ISO-8601 UTC with Z.
"""
from datetime import datetime, timezone
from typing import Optional

from geoattend.core.config import settings

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for check_in_at, check_out_at, published_at, etc."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def to_work_tz(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to the configured work timezone. Naive datetimes are treated as UTC before converting."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(settings.get_work_timezone())


def iso_8601_utc(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with Z for UTC. Used for all API response datetime fields."""
    if dt is None:
        return None
    utc = ensure_utc(dt)
    s = utc.isoformat()
    if s.endswith("+00:00"):
        s = s[:-6] + "Z"
    return s
