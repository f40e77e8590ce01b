"""Configuration schema.

Only the auth token is required. Everything else has a default pointing
at the public services, and can be overridden through ``PLAYBOT_*``
environment variables or a ``.env`` file (mostly useful for tests and
staging endpoints).
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """playbot settings."""

    model_config = SettingsConfigDict(
        env_prefix="PLAYBOT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    token: str = Field(..., min_length=1)

    # Slack Web API root; rtm.start, chat.postMessage etc. hang off it
    slack_api_base: str = "https://slack.com/api"

    playground_compile_url: str = "https://play.golang.org/compile"
    wiki_host: str = "wikipedia.org"

    queue_size: int = Field(100, gt=0)
    http_timeout: float | None = None  # None waits forever

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


def load_settings(**overrides: Any) -> Settings:
    """Build settings from the environment, letting CLI flags win.

    ``None`` overrides are ignored so unset flags fall through to env/.env.
    """
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
