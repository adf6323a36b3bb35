"""
Location directory endpoints (read-only; sites are managed by the admin console)
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from geoattend.core.deps import CurrentUser, get_current_user, get_db
from geoattend.schemas.location import LocationOut
from geoattend.services.location_service import get_location, list_locations

router = APIRouter()


@router.get("", response_model=List[LocationOut])
async def list_locations_endpoint(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """All work sites with their geofence, ordered by name."""
    return [LocationOut.model_validate(loc) for loc in list_locations(db)]


@router.get("/{location_id}", response_model=LocationOut)
async def get_location_endpoint(
    location_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return LocationOut.model_validate(get_location(db, location_id))
