"""
GEOACCESS API Configuration

Environment-based settings for the authorization engine and its API.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings

from geoaccess.core.constants import (
    DEFAULT_MONITOR_INTERVAL_SECONDS,
    EXPIRING_SOON_DAYS,
    INDIAN_STATES,
    MAX_AUDIT_LOGS,
    SYSTEM_NAME,
    VERSION,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = f"{SYSTEM_NAME} API"
    APP_VERSION: str = VERSION
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./geoaccess.db"
    DATABASE_ECHO: bool = False

    # Audit
    MAX_AUDIT_LOGS: int = MAX_AUDIT_LOGS

    # Background monitor
    MONITOR_INTERVAL_SECONDS: float = DEFAULT_MONITOR_INTERVAL_SECONDS
    EXPIRING_SOON_DAYS: int = EXPIRING_SOON_DAYS

    # Zones
    SEED_DEFAULT_ZONES: bool = False
    REGIONS: list[str] = list(INDIAN_STATES)

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:3001"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
