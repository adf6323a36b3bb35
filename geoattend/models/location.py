"""
Location model (named work site with a circular geofence)
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, CheckConstraint
from sqlalchemy.sql import func
from geoattend.core.config import settings
from geoattend.db.base import Base


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    address = Column(String, nullable=True)
    latitude = Column(Float, nullable=False)  # WGS-84 degrees, geofence centre
    longitude = Column(Float, nullable=False)
    radius_meters = Column(Float, nullable=False, default=lambda: settings.DEFAULT_LOCATION_RADIUS_METERS)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        CheckConstraint("radius_meters > 0", name="ck_locations_radius_positive"),
    )
