"""
Application Configuration

Uses Pydantic Settings for environment variable management with validation.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/intake"

    # Staff authentication (JWT)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480  # one clinic shift

    # Intake links
    # Empty still boots; every token operation then fails with a 500.
    INTAKE_FORM_SECRET: str = ""
    INTAKE_FORM_PREVIOUS_SECRETS: str = ""
    INTAKE_TOKEN_LEEWAY_MS: int = 0
    PUBLIC_APP_URL: str = ""

    # Public intake rate limiting
    INTAKE_RATE_LIMIT_REQUESTS: int = 20
    INTAKE_RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def previous_intake_secrets(self) -> List[str]:
        """Retired intake secrets still accepted for verification."""
        return [s.strip() for s in self.INTAKE_FORM_PREVIOUS_SECRETS.split(",") if s.strip()]

    @property
    def public_app_url(self) -> str:
        return self.PUBLIC_APP_URL.rstrip("/")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are only loaded once.
    """
    return Settings()


# Global settings instance
settings = get_settings()
