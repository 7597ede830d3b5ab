# Storage protocols - interfaces for the persistence collaborators.
# Created: 2026-10-04

from typing import Any, Protocol


class DocumentStoreProtocol(Protocol):
    """Named JSON documents.

    Writes must be atomic per document: a failed save never leaves a
    partially written document behind.
    """

    def load(self, name: str) -> Any | None:
        """Load a document, or None if it doesn't exist."""
        ...

    def save(self, value: Any, name: str) -> None:
        """Replace a document."""
        ...


class SecretStoreProtocol(Protocol):
    """Key-value secret store holding the API credential."""

    def get_api_key(self) -> str | None:
        """Return the stored API key, or None if absent."""
        ...
