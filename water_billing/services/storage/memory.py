"""
In-memory Storage

Keeps the encoded document in a string, so loads and saves go through
the same JSON codec as the real backends. Used by tests and demos.
"""

from typing import Optional

from water_billing.models.document import AppData
from water_billing.services.storage.codec import decode_document, encode_document
from water_billing.services.storage.interface import (
    DocumentNotFoundError,
    DocumentStorageInterface,
)


class InMemoryDocumentStorage(DocumentStorageInterface):
    """Document held in process memory."""

    backend_name = "memory"

    def __init__(self, initial: Optional[AppData] = None):
        self._text: Optional[str] = encode_document(initial) if initial is not None else None
        self.save_count = 0

    @property
    def raw_text(self) -> Optional[str]:
        """The encoded document as it would be written to disk."""
        return self._text

    async def load(self) -> AppData:
        if self._text is None:
            raise DocumentNotFoundError("No document has been saved")
        return decode_document(self._text)

    async def save(self, data: AppData) -> bool:
        self._text = encode_document(data)
        self.save_count += 1
        return True
