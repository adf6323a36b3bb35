"""
Location schemas
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict


class LocationOut(BaseModel):
    """Work site with its geofence (centre + radius in meters)"""
    id: int
    name: str
    address: Optional[str] = None
    latitude: float
    longitude: float
    radius_meters: float

    model_config = ConfigDict(from_attributes=True)
