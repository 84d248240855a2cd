"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, gateway URL, cache TTLs)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


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

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="tenanthub",
        description="MongoDB database name"
    )
    STORE_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Upper bound for a single persistence call in seconds"
    )

    # WhatsApp gateway (WAHA)
    WAHA_URL: str = Field(
        default="http://localhost:3000",
        description="WAHA gateway base URL"
    )
    WAHA_API_KEY: Optional[str] = Field(
        default=None,
        description="WAHA API key sent as X-Api-Key"
    )
    WAHA_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Outbound message request timeout in seconds"
    )

    # Routing caches
    TENANT_CACHE_TTL_SECONDS: int = Field(
        default=300,
        description="How long a resolved tenant stays cached"
    )
    RECENT_ORDERS_LIMIT: int = Field(
        default=5,
        description="How many orders the 'orders' command lists"
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

    # Security
    ADMIN_API_KEY: Optional[str] = Field(
        default=None,
        description="Shared key required in X-Admin-Key for admin routes"
    )

    @field_validator("ADMIN_API_KEY")
    @classmethod
    def validate_admin_key(cls, v, info: ValidationInfo):
        """Ensure admin routes are protected in production."""
        if info.data.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("ADMIN_API_KEY is required in production environment")
        return v

    @field_validator("TENANT_CACHE_TTL_SECONDS", "RECENT_ORDERS_LIMIT")
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

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

    if not settings.WAHA_URL:
        errors.append("WAHA_URL is required")

    # Production-specific validations
    if settings.is_production:
        if not settings.WAHA_API_KEY:
            errors.append("WAHA_API_KEY is required in production")
        if not settings.ADMIN_API_KEY:
            errors.append("ADMIN_API_KEY is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
