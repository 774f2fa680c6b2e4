"""Configuration management for colivo."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Signing secret for local development only; rejected at startup in production
DEV_SECRET_KEY = "dev-secret-change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis Configuration (optional, falls back to the in-memory store)
    redis_url: str | None = Field(default=None, description="Redis connection URL (e.g., redis://localhost:6379)")

    # Session Configuration
    secret_key: str = Field(default=DEV_SECRET_KEY, description="Secret used to sign session tokens")
    session_max_age_seconds: int = Field(default=86400, description="Maximum age of a session token in seconds")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    environment: str = Field(default="development", description="Deployment environment name")

    # Task Recurrence Configuration
    recurrence_trigger: Literal["creation", "completion"] = Field(
        default="creation",
        description="When the next occurrence of a recurring task is scheduled",
    )

    @property
    def is_production(self) -> bool:
        """Whether the app runs in production."""
        return self.environment.lower() == "production"

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Productivity score
    OVERDUE_PENALTY_PER_TASK: int = 10
    OVERDUE_PENALTY_CAP: int = 30
    RECENT_ACTIVITY_BONUS_PER_TASK: int = 2
    RECENT_ACTIVITY_BONUS_CAP: int = 20
    PRODUCTIVITY_SCORE_MAX: int = 100

    # Personal dashboard
    UPCOMING_DEADLINE_DAYS: int = 7
    UPCOMING_DEADLINE_LIMIT: int = 5
    RECENT_ACTIVITY_LIMIT: int = 10

    # Metrics
    PRODUCTIVITY_TREND_DAYS: int = 30

    # Search
    SEARCH_DEFAULT_LIMIT: int = 10
    SEARCH_MIN_QUERY_LENGTH: int = 2
    SIMPLE_SEARCH_RELEVANCE: float = 0.8
    SEARCH_TITLE_WEIGHT: float = 0.4
    SEARCH_DESCRIPTION_WEIGHT: float = 0.3
    SEARCH_INSTRUCTIONS_WEIGHT: float = 0.2
    SEARCH_LABEL_WEIGHT: float = 0.1

    # Quality rating bounds
    QUALITY_RATING_MIN: int = 1
    QUALITY_RATING_MAX: int = 5

    # Redis Configuration
    REDIS_MAX_CONNECTIONS: int = 10  # Maximum connections in Redis connection pool
    REDIS_MAX_RETRIES: int = 3
    REDIS_RETRY_BASE_DELAY_SECONDS: float = 0.1

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
