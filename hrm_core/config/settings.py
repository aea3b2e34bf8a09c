"""Settings model for the HRM mock server."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices
from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

_VALID_LOG_LEVELS = frozenset(
  {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
)


class HRMSettings(BaseSettings):
  """Runtime settings loaded from environment variables."""

  host: str = "127.0.0.1"
  port: int = Field(
    default=3001,
    validation_alias=AliasChoices("HRM_PORT", "PORT", "port"),
  )

  # When unset the packaged seed document is served from memory only.
  data_file: Optional[Path] = None

  session_ttl_minutes: int = Field(default=30, gt=0)
  enforce_session_expiry: bool = False

  log_level: str = "INFO"
  cors_origins: list[str] = Field(default_factory=lambda: ["*"])

  model_config = SettingsConfigDict(
    env_prefix="HRM_",
    env_file=".env",
    extra="ignore",
    populate_by_name=True,
  )

  @field_validator("log_level", mode="before")
  @classmethod
  def _validate_log_level(cls, log_level: str) -> str:
    normalized_level = str(log_level).upper()
    if normalized_level not in _VALID_LOG_LEVELS:
      raise ValueError(
        f"Invalid log level {log_level!r}. Expected one of"
        f" {sorted(_VALID_LOG_LEVELS)}."
      )
    return normalized_level

  @property
  def log_level_value(self) -> int:
    return logging.getLevelName(self.log_level)

  @property
  def session_ttl_ms(self) -> int:
    return self.session_ttl_minutes * 60 * 1000


@lru_cache(maxsize=1)
def get_settings() -> HRMSettings:
  """Returns a cached settings object for the running process."""

  return HRMSettings()
