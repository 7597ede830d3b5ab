# Secret Store - file-based API key storage at ~/.healthscope/secrets/.
# Created: 2026-10-04

from __future__ import annotations

import json
import logging
import os
import stat
from pathlib import Path

from healthscope.config import Settings, get_config_dir

logger = logging.getLogger(__name__)

_SERVICE = "anthropic"


class FileSecretStore:
    """File-based secret store at ~/.healthscope/secrets/{service}.json.

    Files are chmod 0600 (owner-only read/write). When no key file exists the
    HEALTHSCOPE_ANTHROPIC_API_KEY setting is used instead.
    """

    def __init__(self, base_path: Path | None = None, settings: Settings | None = None):
        self._base_path = base_path
        self._settings = settings

    def _secrets_dir(self) -> Path:
        d = self._base_path or get_config_dir() / "secrets"
        d.mkdir(parents=True, exist_ok=True)
        return d

    def _key_path(self) -> Path:
        return self._secrets_dir() / f"{_SERVICE}.json"

    def get_api_key(self) -> str | None:
        """Return the stored API key, falling back to settings."""
        path = self._key_path()
        if path.exists():
            try:
                key = json.loads(path.read_text()).get("api_key")
                if key:
                    return key
            except (json.JSONDecodeError, OSError, AttributeError) as e:
                logger.warning("Failed to read API key from %s: %s", path, e)
        if self._settings is not None and self._settings.anthropic_api_key:
            return self._settings.anthropic_api_key
        return None

    def set_api_key(self, api_key: str) -> None:
        """Store the API key."""
        if not api_key:
            raise ValueError("api_key must not be empty")
        path = self._key_path()
        path.write_text(json.dumps({"api_key": api_key}))
        os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
        logger.info("Saved API key for %s", _SERVICE)

    def delete_api_key(self) -> bool:
        """Delete the stored key. Returns True if one was deleted."""
        path = self._key_path()
        if path.exists():
            path.unlink()
            logger.info("Deleted API key for %s", _SERVICE)
            return True
        return False
