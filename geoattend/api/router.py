"""
Main API router
"""
from fastapi import APIRouter

from geoattend.api.v1 import (
    health,
    version,
    attendance,
    locations,
)
from geoattend.api.v1.admin import admin_router

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(locations.router, prefix="/locations", tags=["locations"])
api_router.include_router(admin_router)
