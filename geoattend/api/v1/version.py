"""
Version and metadata endpoint
"""
from fastapi import APIRouter
from geoattend.core.config import settings
from geoattend.core.constants import SERVICE_NAME

router = APIRouter()


@router.get("/version")
async def get_version():
    """
    Get application version and metadata

    Returns:
        Version information including service name, version, environment and work timezone
    """
    return {
        "service": SERVICE_NAME,
        "version": settings.VERSION or "1.0.0",
        "env": settings.APP_ENV,
        "work_timezone": settings.WORK_TIMEZONE,
    }
