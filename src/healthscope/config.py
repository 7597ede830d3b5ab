# Settings - environment + config.json backed application settings.
# Created: 2026-10-02
#
# Values resolve in this order: explicit kwargs > HEALTHSCOPE_* env vars >
# ~/.healthscope/config.json > defaults. The API key is never written to
# config.json; it lives in the secret store (see storage/secret_store.py).

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

SUPPORTED_MODELS = (
    "claude-3-opus-latest",
    "claude-3-5-sonnet-latest",
    "claude-3-5-haiku-latest",
)

DEFAULT_SYSTEM_PROMPT = (
    "You are a health analysis assistant. Analyze the provided health data "
    "and provide structured insights."
)

# Fields persisted by Settings.save()
_PERSISTED_FIELDS = (
    "anthropic_base_url",
    "anthropic_model",
    "request_timeout",
    "max_history_notes",
    "analysis_prompt",
    "system_prompt",
    "auto_analyze",
    "user_id",
)


def get_config_dir() -> Path:
    """Get/create the config directory (~/.healthscope or $HEALTHSCOPE_HOME)."""
    override = os.environ.get("HEALTHSCOPE_HOME")
    d = Path(override) if override else Path.home() / ".healthscope"
    d.mkdir(parents=True, exist_ok=True)
    return d


def get_config_path() -> Path:
    """Path of the persisted settings file."""
    return get_config_dir() / "config.json"


class Settings(BaseSettings):
    """HealthScope settings."""

    model_config = SettingsConfigDict(env_prefix="HEALTHSCOPE_", extra="ignore")

    anthropic_api_key: str | None = None
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    anthropic_model: str = "claude-3-5-sonnet-latest"
    request_timeout: float = Field(default=60.0, gt=0)
    max_history_notes: int = Field(default=10, ge=0)
    analysis_prompt: str = ""
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    auto_analyze: bool = True
    user_id: str | None = None

    @field_validator("anthropic_model")
    @classmethod
    def warn_unknown_model(cls, value: str) -> str:
        if value not in SUPPORTED_MODELS:
            logger.warning("Model %r is not a known model; sending it as-is", value)
        return value

    @classmethod
    def load(cls) -> Settings:
        """Load settings from config.json, letting env vars take precedence."""
        path = get_config_path()
        data: dict = {}
        if path.exists():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError) as e:
                logger.warning("Ignoring unreadable config %s: %s", path, e)
                data = {}
        # Env vars must win over the file, so only pass keys without an env override
        overrides = {
            key: value
            for key, value in data.items()
            if key in _PERSISTED_FIELDS and f"HEALTHSCOPE_{key.upper()}" not in os.environ
        }
        return cls(**overrides)

    def save(self) -> None:
        """Persist non-secret settings to config.json."""
        path = get_config_path()
        data = {key: getattr(self, key) for key in _PERSISTED_FIELDS}
        temp_path = path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(temp_path, path)
        logger.info("Saved settings to %s", path)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (call ``get_settings.cache_clear()`` to reload)."""
    return Settings.load()
