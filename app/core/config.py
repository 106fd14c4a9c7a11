"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, upstream backend, timeouts, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB (wizard sessions)
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="opsconsole",
        description="MongoDB database name"
    )

    MONGODB_MAX_POOL_SIZE: int = Field(
        default=20,
        description="Motor connection pool ceiling"
    )
    MONGODB_CONNECT_RETRIES: int = Field(
        default=3,
        description="Connection attempts at startup before giving up"
    )

    # Upstream master-data backend
    BACKEND_API_URL: str = Field(
        default="http://localhost:3000/api/v1",
        description="Base URL of the master-data backend (companies, roles, users)"
    )
    BACKEND_TIMEOUT: float = Field(
        default=30.0,
        description="Upstream request timeout in seconds"
    )

    # Wizard sessions
    WIZARD_SESSION_TIMEOUT_MINUTES: int = Field(
        default=60,
        description="Idle minutes after which an unsaved wizard session is dropped"
    )
    WIZARD_SAVE_CLAIM_TIMEOUT_SECONDS: float = Field(
        default=120.0,
        description="Age after which an unreleased save claim counts as abandoned"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @field_validator("BACKEND_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not settings.BACKEND_API_URL:
        errors.append("BACKEND_API_URL is required")

    if settings.BACKEND_TIMEOUT <= 0:
        errors.append("BACKEND_TIMEOUT must be positive")

    # a save makes up to three sequential backend calls
    if settings.WIZARD_SAVE_CLAIM_TIMEOUT_SECONDS <= 3 * settings.BACKEND_TIMEOUT:
        errors.append("WIZARD_SAVE_CLAIM_TIMEOUT_SECONDS must exceed three backend timeouts")

    if settings.is_production:
        if settings.BACKEND_API_URL.startswith("http://localhost"):
            errors.append("BACKEND_API_URL must point at a deployed backend in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
