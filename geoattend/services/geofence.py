"""
Geofence evaluation: great-circle distance from a reported position to a location centre.
Pure functions, safe to share across concurrent requests.
"""
import math
from dataclasses import dataclass
from typing import Optional

from geoattend.core.exceptions import InvalidCoordinates

EARTH_RADIUS_METERS = 6_371_000.0


@dataclass(frozen=True)
class PositionSample:
    """A single position fix reported by the client device."""
    latitude: float
    longitude: float
    accuracy_meters: Optional[float] = None


@dataclass(frozen=True)
class GeofenceResult:
    within_radius: bool
    distance_meters: float
    radius_meters: float


def validate_coordinates(latitude: float, longitude: float) -> None:
    """Raise InvalidCoordinates unless latitude is in [-90, 90] and longitude in [-180, 180]."""
    if latitude is None or longitude is None:
        raise InvalidCoordinates("Latitude and longitude are required", latitude=latitude, longitude=longitude)
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise InvalidCoordinates("Coordinates must be finite numbers")
    if not -90.0 <= latitude <= 90.0:
        raise InvalidCoordinates("Latitude must be between -90 and 90", latitude=latitude)
    if not -180.0 <= longitude <= 180.0:
        raise InvalidCoordinates("Longitude must be between -180 and 180", longitude=longitude)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in meters between two WGS-84 points on a spherical Earth."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # rounding can push a a hair outside [0, 1] for antipodal or identical points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def evaluate(position: PositionSample, location) -> GeofenceResult:
    """
    Decide whether position lies inside the location's geofence.

    location is anything exposing latitude, longitude and radius_meters
    (normally a Location row). The boundary is inclusive: a position exactly
    radius_meters away is inside.
    """
    validate_coordinates(position.latitude, position.longitude)
    validate_coordinates(location.latitude, location.longitude)
    radius = location.radius_meters
    if radius is None or not math.isfinite(radius) or radius <= 0:
        raise InvalidCoordinates("Geofence radius must be a positive number of meters")

    distance = haversine_distance(
        position.latitude, position.longitude,
        location.latitude, location.longitude,
    )
    return GeofenceResult(within_radius=distance <= radius, distance_meters=distance, radius_meters=radius)
