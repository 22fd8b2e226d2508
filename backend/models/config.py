import os
import sys
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    Local development reads `backend/.env` for convenience. Under pytest or
    CI the file is ignored so tests see only the variables they set.
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'test', 'staging', or 'production'",
    )
    PROJECT_NAME: str = "StreetLight Watch"

    DATABASE_URL: str = "sqlite:///./data/streetlight.db"
    SECRET_KEY: str = Field(
        ...,  # Required, no default
        description="JWT secret key - must be set via SECRET_KEY environment variable",
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=60 * 24 * 7,
        description="Session token lifetime (7 days)",
    )
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:5173"],
        description="Allowed CORS origins (comma-separated in env var)",
    )

    # Optional admin seed used by init_db.py
    ADMIN_EMAIL: str = Field(default="", description="Seed admin email")
    ADMIN_PASSWORD: str = Field(default="", description="Seed admin password")

    # Database connection pool settings
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    AUTO_CREATE_DB: bool = Field(
        default=False,
        description="When true (development only), call Base.metadata.create_all on startup",
    )
    SLOW_REQUEST_THRESHOLD: float = Field(
        default=1.0,
        description="Log warning for requests slower than this (seconds)",
    )
    LOGS_DIR: str = "logs"

    # Login lockout
    MAX_LOGIN_ATTEMPTS: int = Field(
        default=5,
        description="Consecutive failed logins before the account is locked",
    )
    ACCOUNT_LOCK_MINUTES: int = Field(
        default=60,
        description="How long a locked account stays locked",
    )
    PASSWORD_RESET_EXPIRE_MINUTES: int = Field(
        default=10,
        description="Lifetime of a password reset token",
    )

    # Duplicate detection
    DUPLICATE_RADIUS_METERS: float = Field(
        default=50.0,
        description="Reports closer than this to an open report are flagged duplicates",
    )
    DUPLICATE_SEARCH_LIMIT: int = Field(
        default=5,
        description="Maximum nearby reports examined by the duplicate search",
    )

    # Media storage
    UPLOAD_DIR: str = Field(
        default="data/uploads/reports",
        description="Directory where report images are stored",
    )
    MEDIA_BASE_URL: str = Field(
        default="/data/uploads/reports",
        description="Public URL prefix for stored report images",
    )
    MAX_IMAGE_SIZE_BYTES: int = 5 * 1024 * 1024
    MAX_IMAGES_PER_REPORT: int = 5

    # Reverse geocoding (Nominatim)
    GEOCODING_ENABLED: bool = True
    GEOCODER_URL: str = "https://nominatim.openstreetmap.org/reverse"
    GEOCODER_TIMEOUT_SECONDS: float = 5.0
    GEOCODER_USER_AGENT: str = "StreetLightWatch/1.0"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",  # Allow extra env vars (e.g., SENTRY_DSN)
    )


# Raises pydantic.ValidationError at import time if SECRET_KEY is missing.
settings = Settings()  # type: ignore[call-arg]


def get_settings() -> Settings:
    """Get the settings instance (for dependency injection)."""
    return settings
