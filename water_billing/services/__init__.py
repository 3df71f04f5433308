"""Services package."""

from water_billing.services.storage import (
    ConnectionError,
    DocumentFormatError,
    DocumentNotFoundError,
    DocumentStorageInterface,
    GitHubDocumentStorage,
    InMemoryDocumentStorage,
    LocalFileDocumentStorage,
    StorageError,
    create_storage,
)

__all__ = [
    # Storage services
    "ConnectionError",
    "DocumentFormatError",
    "DocumentNotFoundError",
    "DocumentStorageInterface",
    "GitHubDocumentStorage",
    "InMemoryDocumentStorage",
    "LocalFileDocumentStorage",
    "StorageError",
    "create_storage",
]
