"""
Service settings using pydantic-settings.

Loads configuration from:
1. Environment variables with TIER_NORMALIZER_ prefix
2. .env file (if present)

  TIER_NORMALIZER_MAX_UPLOAD_BYTES=1048576
  TIER_NORMALIZER_MAX_NESTING_DEPTH=50
  TIER_NORMALIZER_LOG_LEVEL=DEBUG
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .rules import MAX_NESTING_DEPTH

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TIER_NORMALIZER_",
        env_file=".env",
        extra="ignore",
    )

    max_upload_bytes: int = Field(default=5 * 1024 * 1024, gt=0)
    max_nesting_depth: int = Field(default=MAX_NESTING_DEPTH, gt=0)
    log_level: LogLevel = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper()
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
