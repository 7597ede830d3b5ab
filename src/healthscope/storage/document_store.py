"""File-based document store.

Created: 2026-10-04
Implements DocumentStoreProtocol using one JSON file per document.

Storage layout:
~/.healthscope/data/
    conversations.json   # Chat conversations
    healthNotes.json     # Journal notes
    quickLogTypes.json   # Quick log definitions

Design notes:
- Atomic writes using temp file + os.replace
- Missing or unreadable documents load as None
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from healthscope.config import get_config_dir
from healthscope.errors import StorageError

logger = logging.getLogger(__name__)


class FileDocumentStore:
    """Stores named JSON documents under a base directory."""

    def __init__(self, base_path: Path | None = None):
        """Initialize the store.

        Args:
            base_path: Directory for document files. Defaults to ~/.healthscope/data/
        """
        if base_path is None:
            base_path = get_config_dir() / "data"

        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        if not name or Path(name).name != name:
            raise ValueError(f"Invalid document name: {name!r}")
        return self.base_path / name

    def load(self, name: str) -> Any | None:
        """Load a JSON document, returning None if not found or unreadable."""
        path = self._path(name)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Error loading {path}: {e}")
            return None

    def save(self, value: Any, name: str) -> None:
        """Save a JSON document atomically.

        Raises:
            StorageError: if the document could not be written. The previous
                version of the document is left untouched.
        """
        path = self._path(name)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error saving {path}: {e}")
            if temp_path.exists():
                temp_path.unlink()
            raise StorageError(f"Failed to save {name}: {e}") from e

    def delete(self, name: str) -> bool:
        """Delete a document. Returns True if it existed."""
        path = self._path(name)
        if path.exists():
            path.unlink()
            return True
        return False
