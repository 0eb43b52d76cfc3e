"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Order API (the system of record for orders and submissions)
    ORDER_API_BASE_URL: str = "http://localhost:3000/api"
    ORDER_API_TOKEN: Optional[str] = None

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Timeouts and retries
    API_TIMEOUT: float = 15.0
    API_MAX_RETRIES: int = 2

    # Draft autosave
    DRAFT_AUTOSAVE_DELAY: float = 2.0

    # Call log
    CALL_LOG_ENABLED: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra fields in .env file
        case_sensitive=False,  # Allow both UPPERCASE and lowercase
    )


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
