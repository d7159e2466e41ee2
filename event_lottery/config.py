"""Runtime settings, read from the environment or a ``.env`` file."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="EVENT_LOTTERY_", env_file=".env")

    offset_days: int = Field(default=7, ge=0)
    # How long a run waits for a run already in flight before giving up
    lock_timeout_seconds: float = Field(default=5.0, ge=0)
    # Period of the in-process scheduled run; 0 turns it off
    run_interval_seconds: float = Field(default=86400.0, ge=0)
    seed_sample_data: bool = True
    include_events_in_response: bool = True
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
