"""
Configuration management for the geoattend backend
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Required settings
    DATABASE_URL: str = Field(..., description="SQLAlchemy database URL (PostgreSQL or SQLite)")
    JWT_SECRET_KEY: str = Field(..., description="Secret used to verify bearer tokens issued by the identity service")

    # Optional settings with defaults
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_EXPIRE_MINUTES: int = Field(default=120, description="JWT token expiration in minutes")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Shift start/end times are wall-clock values in this zone; storage is always UTC
    WORK_TIMEZONE: str = Field(default="UTC", description="IANA timezone used to interpret work-shift times")

    # Attendance policy
    LATE_TOLERANCE_MINUTES: int = Field(
        default=0,
        ge=0,
        description="Grace period after shift start before a check-in is marked LATE",
    )
    OVERTIME_TOLERANCE_MINUTES: int = Field(
        default=0,
        ge=0,
        description="Minutes a session may exceed the scheduled shift duration before it is reported as overtime",
    )
    DEFAULT_LOCATION_RADIUS_METERS: float = Field(
        default=50.0,
        gt=0,
        description="Geofence radius applied to locations created without an explicit radius",
    )

    # Change notifier
    NOTIFY_MAX_ATTEMPTS: int = Field(default=3, ge=1, description="Delivery attempts per subscriber before an event is dropped for it")
    NOTIFY_RETRY_DELAY_SECONDS: float = Field(default=0.5, ge=0, description="Base delay between subscriber retries (multiplied by the attempt number)")
    NOTIFY_POLL_INTERVAL_SECONDS: float = Field(default=2.0, gt=0, description="Dispatcher wake-up interval when idle")
    NOTIFY_BATCH_SIZE: int = Field(default=100, ge=1, description="Outbox events fetched per dispatcher pass")
    NOTIFY_LEASE_SECONDS: float = Field(
        default=60.0,
        gt=0,
        description="How long a dispatcher holds the outbox between renewals; must exceed the slowest delivery",
    )

    # Version (can be git SHA or semver)
    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("WORK_TIMEZONE")
    @classmethod
    def validate_work_timezone(cls, v: str) -> str:
        """WORK_TIMEZONE must be a known IANA zone"""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"WORK_TIMEZONE '{v}' is not a known IANA timezone")
        return v

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            # JWT_SECRET_KEY must be at least 32 characters in production
            if len(self.JWT_SECRET_KEY) < 32:
                raise ValueError(
                    "JWT_SECRET_KEY must be at least 32 characters in production environment"
                )

            # ALLOWED_ORIGINS must not be wildcard in production
            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    def get_work_timezone(self) -> ZoneInfo:
        return ZoneInfo(self.WORK_TIMEZONE)


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
