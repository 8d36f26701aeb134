"""Application configuration with environment variable validation."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Catalog database (optional: ad-hoc scoring works without it)
    supabase_url: str = Field(default="", validation_alias="SUPABASE_URL")
    supabase_key: str = Field(default="", validation_alias="SUPABASE_KEY")

    # Scoring
    fit_margin_in: float = Field(default=0.5, ge=0, validation_alias="FIT_MARGIN_IN")
    score_profile: str = Field(default="default", validation_alias="SCORE_PROFILE")
    max_results: int = Field(default=50, gt=0, validation_alias="MAX_RESULTS")

    # Ranking cache
    ranking_cache_size: int = Field(default=256, gt=0, validation_alias="RANKING_CACHE_SIZE")
    ranking_cache_ttl: int = Field(default=600, gt=0, validation_alias="RANKING_CACHE_TTL")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # CORS: a comma-separated string or a JSON list
    allowed_origins: str | list[str] = Field(
        default=["*"],
        validation_alias="ALLOWED_ORIGINS",
    )

    @property
    def cors_origins(self) -> list[str]:
        """Parse ALLOWED_ORIGINS from comma-separated string or return list."""
        if isinstance(self.allowed_origins, str):
            return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return self.allowed_origins

    @property
    def catalog_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
