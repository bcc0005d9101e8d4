"""
Application Configuration
Environment-driven settings for the alerting service.

Every field can be set with an ALERTS_ prefixed environment variable
(ALERTS_DB_PATH, ALERTS_TICK_INTERVAL_SECONDS, ...) or a .env file.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ALERTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # APPLICATION
    # ========================================================================

    app_name: str = "Sentiment Alerts API"
    app_version: str = "1.0.0"
    api_prefix: str = "/api"
    allowed_origins: List[str] = Field(default=["*"])

    # ========================================================================
    # ENGINE
    # ========================================================================

    db_path: str = "data/alerts.db"
    tick_interval_seconds: float = 30.0
    buffer_size: int = 10000
    scheduler_autostart: bool = True

    # ========================================================================
    # LOGGING
    # ========================================================================

    log_level: str = "INFO"
    log_format: str = "console"  # console | json

    @field_validator("tick_interval_seconds")
    @classmethod
    def positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("tick_interval_seconds must be positive")
        return v

    @field_validator("buffer_size")
    @classmethod
    def positive_buffer(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("buffer_size must be positive")
        return v

    @field_validator("log_format")
    @classmethod
    def known_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
