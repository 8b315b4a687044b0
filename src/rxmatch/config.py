"""Configuration management for RxMatch.

Uses pydantic-settings to load configuration from environment variables.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_env_file() -> Path | None:
    """Search for .env file in common locations."""
    cwd = Path.cwd()

    # Check parent directories (up to 5 levels) for project root .env
    check_dir = cwd
    for _ in range(5):
        if (check_dir / ".env").exists():
            return check_dir / ".env"
        parent = check_dir.parent
        if parent == check_dir:
            break
        check_dir = parent

    # src/rxmatch/config.py -> project root
    project_root = Path(__file__).resolve().parent.parent.parent
    if (project_root / ".env").exists():
        return project_root / ".env"

    return None


_env_file = _find_env_file()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_env_file) if _env_file else ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================
    # Environment
    # =========================
    environment: Literal["development", "staging", "production"] = "development"

    # =========================
    # API Settings
    # =========================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # =========================
    # PostgreSQL
    # =========================
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "rxmatch"
    postgres_user: str = "rxmatch"
    postgres_password: str = Field(default="", repr=False)

    @computed_field
    @property
    def database_url(self) -> str:
        """SQLAlchemy database URL for PostgreSQL."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Synchronous database URL for Alembic."""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # =========================
    # Review Queue
    # =========================
    review_confidence_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Calculations scoring below this are queued for manual review",
    )
    review_high_priority_below: float = Field(
        default=0.4, ge=0.0, le=1.0, description="Confidence below this queues as high priority"
    )
    review_medium_priority_below: float = Field(
        default=0.55, ge=0.0, le=1.0, description="Confidence below this queues as medium priority"
    )
    review_cas_max_attempts: int = Field(
        default=5,
        ge=1,
        description="Conditional-update attempts before a concurrent edit is reported as a conflict",
    )

    # =========================
    # Audit Trail
    # =========================
    audit_sink: Literal["log", "database"] = "log"
    audit_retry_attempts: int = Field(default=3, ge=1)
    audit_retry_delay_seconds: float = Field(default=0.1, ge=0.0)

    # =========================
    # Logging
    # =========================
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    @model_validator(mode="after")
    def _check_priority_bands(self) -> "Settings":
        if not (
            self.review_high_priority_below
            <= self.review_medium_priority_below
            <= self.review_confidence_threshold
        ):
            raise ValueError(
                "priority bands must satisfy high <= medium <= review_confidence_threshold"
            )
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
