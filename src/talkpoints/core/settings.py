"""Centralized configuration using Pydantic Settings (v2).

Two layers live here:

- :class:`Settings`: process-level configuration read from the environment
  and `.env` files (environment name, log level, provider keys, model alias).
- :class:`EngineConfig`: the tunables of one talking-points engine
  (timers, cooldowns, thresholds, enable flag). It is an explicit object
  passed into the orchestrator at construction, never read from a global.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Typed application configuration loaded from env and `.env` files.

    Attributes
    ----------
    environment : EnvName
        Runtime environment flag; maps from `TALKPOINTS_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    openrouter_api_key : Optional[str]
        Key for the OpenRouter chat-completions endpoint; maps from
        `OPENROUTER_API_KEY`.
    model_alias : str
        Registry alias used by the generation agent; maps from
        `TALKPOINTS_MODEL`.
    """

    environment: EnvName = Field(default="dev", alias="TALKPOINTS_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")
    openrouter_api_key: str | None = Field(default=None, alias="OPENROUTER_API_KEY")
    model_alias: str = Field(default="talking_points", alias="TALKPOINTS_MODEL")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_dev(self) -> bool:
        """Return True if running in the development environment."""
        return self.environment == "dev"

    @property
    def is_test(self) -> bool:
        """Return True if running in the test environment."""
        return self.environment == "test"

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)


class EngineConfig(BaseModel):
    """Tunables for a single talking-points engine.

    All durations are in seconds of the engine clock.
    """

    enabled: bool = True
    warmup_delay: float = Field(default=6.0, ge=0.0)
    debounce_delay: float = Field(default=1.0, ge=0.0)
    update_cooldown: float = Field(default=40.0, ge=0.0)
    release_delay: float = Field(default=1.0, ge=0.0)
    trigger_cooldown: float = Field(default=1.0, ge=0.0)
    history_ttl: float = Field(default=30.0, gt=0.0)
    history_cleanup_interval: float = Field(default=5.0, gt=0.0)
    silence_timeout: float = Field(default=30.0, gt=0.0)
    split_threshold: int = Field(default=3, ge=1)
    transcript_tail_chars: int = Field(default=500, ge=1)
    min_transcript_words: int = Field(default=20, ge=0)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a `Settings` instance.

    Tests rebuild it via `load_settings.cache_clear()` after mutating
    `os.environ`.
    """
    os.environ.setdefault("TALKPOINTS_ENV", "dev")
    return Settings()


settings: Settings = load_settings()


def get_logger(name: str = "talkpoints") -> logging.Logger:
    """Return a process-global logger configured to the current log level."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger


__all__ = ["EngineConfig", "Settings", "get_logger", "load_settings", "settings"]
