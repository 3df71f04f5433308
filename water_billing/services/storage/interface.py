"""
Abstract Document Storage Interface

DESIGN DECISION: All state lives in one JSON document that is read and
written wholesale. The interface is therefore just load and save.
This allows us to:
1. Use a local file in development
2. Use the GitHub contents API in deployment
3. Use in-memory storage for testing

There is no locking and no merge: a save replaces the whole document
and the last writer wins. Failures are raised once; nothing retries
automatically, the operator retries the action.
"""

from abc import ABC, abstractmethod

from water_billing.models.document import AppData


class DocumentStorageInterface(ABC):
    """
    Abstract interface for the document store.

    Any storage implementation (local file, GitHub, etc.)
    must implement these methods.
    """

    #: Short backend name used in log events
    backend_name: str = "abstract"

    @abstractmethod
    async def load(self) -> AppData:
        """
        Read the whole document.

        Returns:
            The decoded document

        Raises:
            DocumentNotFoundError: If no document exists yet
            DocumentFormatError: If the stored JSON does not match the schema
            StorageError: For any other read failure
        """
        pass

    @abstractmethod
    async def save(self, data: AppData) -> bool:
        """
        Overwrite the whole document.

        Args:
            data: The complete document to persist

        Returns:
            True if saved successfully

        Raises:
            StorageError: If the write fails
        """
        pass

    def describe(self) -> str:
        """Human-readable location of the document, for status displays."""
        return self.backend_name


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DocumentNotFoundError(StorageError):
    """The document does not exist in the backend."""
    pass


class DocumentFormatError(StorageError):
    """The stored document is not valid JSON or does not match the schema."""
    pass


class ConnectionError(StorageError):
    """Could not reach the storage backend."""
    pass
