"""
Storage Services Package

Provides the abstract document storage interface and its backends:
a local JSON file, the GitHub contents API, and an in-memory store.
"""

from water_billing.services.storage.codec import decode_document, encode_document
from water_billing.services.storage.factory import create_storage, resolve_backend
from water_billing.services.storage.github import GitHubDocumentStorage
from water_billing.services.storage.interface import (
    ConnectionError,
    DocumentFormatError,
    DocumentNotFoundError,
    DocumentStorageInterface,
    StorageError,
)
from water_billing.services.storage.local_file import LocalFileDocumentStorage
from water_billing.services.storage.memory import InMemoryDocumentStorage

__all__ = [
    # Interface
    "DocumentStorageInterface",
    # Exceptions
    "ConnectionError",
    "DocumentFormatError",
    "DocumentNotFoundError",
    "StorageError",
    # Backends
    "GitHubDocumentStorage",
    "InMemoryDocumentStorage",
    "LocalFileDocumentStorage",
    # Helpers
    "create_storage",
    "decode_document",
    "encode_document",
    "resolve_backend",
]
