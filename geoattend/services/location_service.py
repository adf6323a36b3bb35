"""
Location directory (read side). Locations are administered elsewhere.
"""
from typing import List
from sqlalchemy.orm import Session

from geoattend.core.exceptions import LocationNotFound
from geoattend.models.location import Location


def get_location(db: Session, location_id: int) -> Location:
    """Return the location or raise LocationNotFound."""
    location = db.query(Location).filter(Location.id == location_id).first()
    if location is None:
        raise LocationNotFound(location_id)
    return location


def list_locations(db: Session) -> List[Location]:
    return db.query(Location).order_by(Location.name.asc(), Location.id.asc()).all()
