"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (Mongo URI, Twilio credentials, timeouts)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGO_URI: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGO_DB_NAME: str = Field(
        default="receiptBot",
        description="MongoDB database name"
    )
    STORE_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        description="Upper bound for a single user store operation"
    )

    # Message dispatch
    MAX_CONCURRENT_MESSAGES: int = Field(
        default=100,
        description="Maximum inbound messages processed at the same time"
    )

    # WhatsApp/Twilio
    TWILIO_ACCOUNT_SID: Optional[str] = Field(
        default=None,
        description="Twilio account SID"
    )
    TWILIO_AUTH_TOKEN: Optional[str] = Field(
        default=None,
        description="Twilio auth token"
    )
    TWILIO_WHATSAPP_NUMBER: str = Field(
        default="whatsapp:+14155238886",
        description="Sender number, whatsapp: prefixed"
    )
    TWILIO_BASE_URL: str = Field(
        default="https://api.twilio.com/2010-04-01",
        description="Twilio REST API base URL"
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

    @validator("TWILIO_AUTH_TOKEN")
    def validate_twilio_token(cls, v, values):
        """Ensure Twilio credentials are set in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("TWILIO_AUTH_TOKEN is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGO_URI:
        errors.append("MONGO_URI is required")

    if settings.STORE_TIMEOUT_SECONDS <= 0:
        errors.append("STORE_TIMEOUT_SECONDS must be positive")

    if settings.MAX_CONCURRENT_MESSAGES < 1:
        errors.append("MAX_CONCURRENT_MESSAGES must be at least 1")

    # Production-specific validations
    if settings.is_production:
        if not settings.TWILIO_ACCOUNT_SID:
            errors.append("TWILIO_ACCOUNT_SID is required in production")
        if not settings.TWILIO_AUTH_TOKEN:
            errors.append("TWILIO_AUTH_TOKEN is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
