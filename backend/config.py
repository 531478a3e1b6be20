"""
Runtime configuration for the journal risk engine.

Values are read from environment variables prefixed with ``JOURNAL_`` (or a
local ``.env`` file) via pydantic-settings.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_prefix="JOURNAL_", env_file=".env", extra="ignore")

    APP_NAME: str = "Trade Journal Risk Engine"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # Monte Carlo defaults used when a journal has no trade history yet.
    DEFAULT_SIMULATIONS: int = 50
    DEFAULT_TRADES: int = 50

    # Upper bound on simulations × trades accepted by the API (~80 MB of float64).
    MAX_SIMULATION_CELLS: int = 10_000_000
    MONTE_CARLO_SEED: Optional[int] = None


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
