"""
geoattend backend - Main Application Entry Point
"""
import logging
from contextlib import asynccontextmanager
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from geoattend.api.router import api_router
from geoattend.core.config import settings
from geoattend.core.errors import (
    attendance_error_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from geoattend.core.exceptions import AttendanceError
from geoattend.core.logging import setup_logging
from geoattend.services.change_notifier import get_change_notifier
from geoattend.services.notification_dispatcher import NotificationDispatcher

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    try:
        parsed = urlparse(url)
        if parsed.scheme.startswith("sqlite"):
            return url
        if parsed.password:
            netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
            if parsed.port:
                netloc += f":{parsed.port}"
            return urlunparse(parsed._replace(netloc=netloc))
    except ValueError:
        return "***"
    return url


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the database in use, then run the change notifier for the life of the app."""
    # Logged so it can be verified against Alembic
    logger.info("DATABASE_URL (app): %s", _mask_database_url(settings.DATABASE_URL))
    notifier = get_change_notifier()
    notifier.subscribe(NotificationDispatcher())
    notifier.start()
    try:
        yield
    finally:
        notifier.stop()


# Create FastAPI app
app = FastAPI(
    title="geoattend backend",
    description="Geofenced attendance sessions: check-in/check-out, status policy and change notifications",
    version=settings.VERSION or "1.0.0",
    lifespan=lifespan,
)

# Configure CORS - must be before other middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# Register exception handlers
app.add_exception_handler(AttendanceError, attendance_error_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


# Missing tables mean migrations have not been applied
def _is_no_such_table(err: BaseException) -> bool:
    msg = str(err).lower()
    return "no such table" in msg or ("relation" in msg and "does not exist" in msg)


async def _handle_operational_error(request, exc: OperationalError):
    if _is_no_such_table(exc):
        logger.error("Database schema missing: %s", exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": True,
                "status_code": 500,
                "detail": "Run alembic upgrade head",
                "path": str(request.url.path),
            },
        )
    return await generic_exception_handler(request, exc)


app.add_exception_handler(OperationalError, _handle_operational_error)
