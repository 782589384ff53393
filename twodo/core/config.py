"""
Application configuration using Pydantic Settings.

Centralizes all configuration with environment variable support.
"""

from functools import lru_cache
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/twodo.db"

    # Environment
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_to_file: bool = True

    # Reference time zone for "today" (occurrence dates are date-only)
    timezone: str = "UTC"

    # Routine generation
    routine_lookahead_days: int = 30
    routine_generation_timeout_seconds: float = 30.0
    routine_generator_enabled: bool = True

    # HTTP (comma-separated)
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except ZoneInfoNotFoundError as e:
            raise ValueError(f"Unknown timezone {v!r}") from e
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
