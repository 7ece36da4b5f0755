"""Application settings loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["development", "staging", "production", "test"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Configuration
    ENVIRONMENT: Environment = "development"
    DEBUG: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Origin allow-list anchor
    APP_URL: str = "http://localhost:3000"

    # Signing secrets
    CSRF_SECRET: SecretStr = SecretStr("your-csrf-secret-key-change-in-production")
    JWT_SECRET: SecretStr = SecretStr("your-super-secret-jwt-key-change-this-in-production")

    # Lifetimes
    SESSION_TTL_SECONDS: int = 7 * 24 * 60 * 60
    CSRF_TOKEN_TTL_SECONDS: int = 60 * 60

    # Cookie holding the session id that CSRF tokens are bound to
    SESSION_COOKIE_NAME: str = "session-token"

    @property
    def is_production(self) -> bool:
        """Whether the production security profile applies."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
