"""
core/config.py -- Process-level configuration via pydantic-settings.

All environment variable reads for SQLAuth happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

These are host settings (where the authsources file lives, how loud the logs
are, how fast the HTTP login endpoint may be hit). Per-source connection
parameters live in the authsources file and are validated by
sqlauth.config.SourceConfig.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. authsources_file -> AUTHSOURCES_FILE).

Layer rule: core/ is the kernel. This module may not import from api/ or
sqlauth/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Host settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False
    log_level: str = "INFO"

    # JSON file mapping auth_id -> source configuration
    authsources_file: str = "authsources.json"

    # Applied to POST /api/v1/auth/{source_id}/login per client IP
    login_rate_limit: str = "10/minute"

    @model_validator(mode="after")
    def validate_log_level(self) -> "Settings":
        """Normalize LOG_LEVEL; DEBUG=true forces debug logging."""
        level = self.log_level.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, got {self.log_level!r}")
        self.log_level = "DEBUG" if self.debug else level
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Install the process-wide log format. Entry points call this once."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
