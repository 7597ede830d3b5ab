"""Persistence collaborators: document store and secret store."""

from healthscope.storage.document_store import FileDocumentStore
from healthscope.storage.protocol import DocumentStoreProtocol, SecretStoreProtocol
from healthscope.storage.secret_store import FileSecretStore

__all__ = [
    "DocumentStoreProtocol",
    "FileDocumentStore",
    "FileSecretStore",
    "SecretStoreProtocol",
]
