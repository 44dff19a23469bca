"""
Configuration management using pydantic-settings.
All settings loaded from environment variables (12-factor app).
"""

from functools import lru_cache
from typing import Dict, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chapterpulse.models.enums import CanonicalCategory

# Points each member must earn per canonical category in a semester
DEFAULT_POINT_REQUIREMENTS: Dict[str, float] = {
    CanonicalCategory.BROTHERHOOD.value: 20.0,
    CanonicalCategory.PROFESSIONALISM.value: 4.0,
    CanonicalCategory.SERVICE.value: 4.0,
    CanonicalCategory.SCHOLARSHIP.value: 4.0,
    CanonicalCategory.HEALTH_WELLNESS.value: 3.0,
    CanonicalCategory.FUNDRAISING.value: 3.0,
    CanonicalCategory.DEI.value: 3.0,
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Data source (Supabase / PostgREST)
    supabase_url: str = Field(default="", description="Supabase project URL; empty uses in-memory source")
    supabase_api_key: str = Field(default="", description="Supabase anon or service key")
    approved_events_only: bool = Field(
        default=True, description="Only load events whose status is 'approved'"
    )
    http_timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP request timeout")
    fetch_retry_count: int = Field(default=3, ge=1, le=10, description="Attempts per fetch")
    fetch_retry_backoff_seconds: float = Field(
        default=1.0, ge=0.0, description="Base for exponential retry backoff"
    )

    # Load coordination
    members_page_size: int = Field(default=50, ge=1, le=1000, description="Members per page")
    events_page_size: int = Field(default=20, ge=1, le=1000, description="Events per page")
    default_range_months: int = Field(
        default=6, ge=1, le=60, description="Months of events loaded by default"
    )
    load_on_startup: bool = Field(
        default=True, description="Run the initial member/event/attendance load at startup"
    )

    # Derived views
    leaderboard_limit: int = Field(default=10, ge=1, le=500, description="Default leaderboard size")
    top_attendees_limit: int = Field(default=5, ge=0, le=50, description="Names listed per event")
    major_distribution_limit: int = Field(default=10, ge=1, le=100, description="Majors shown")
    point_requirements: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_POINT_REQUIREMENTS),
        description="Required points per canonical category (JSON object; merged over defaults)",
    )

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_reload: bool = Field(default=True, description="Enable hot reload")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:8081",
        description="CORS allowed origins (comma-separated)",
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")

    # Development
    dev_mode: bool = Field(default=True, description="Development mode")
    testing: bool = Field(default=False, description="Testing mode")

    @field_validator("cors_origins")
    @classmethod
    def parse_cors_origins(cls, v: str) -> List[str]:
        """Parse comma-separated CORS origins."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("point_requirements")
    @classmethod
    def merge_point_requirements(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Overlay configured requirements on the defaults; keys must be canonical."""
        unknown = sorted(set(v) - set(DEFAULT_POINT_REQUIREMENTS))
        if unknown:
            raise ValueError(f"Unknown point categories: {unknown}")
        negative = sorted(k for k, points in v.items() if points < 0)
        if negative:
            raise ValueError(f"Point requirements must be non-negative: {negative}")
        return {**DEFAULT_POINT_REQUIREMENTS, **v}

    @field_validator("supabase_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the project URL so paths can be appended."""
        return v.strip().rstrip("/")

    @property
    def uses_supabase(self) -> bool:
        """Whether a remote PostgREST source is configured."""
        return bool(self.supabase_url)

    @property
    def rest_base_url(self) -> str:
        """Construct the PostgREST base URL."""
        return f"{self.supabase_url}/rest/v1"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure singleton behavior.
    """
    return Settings()
