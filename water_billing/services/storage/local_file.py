"""
Local File Storage

Used in development: the document is a JSON file on disk
(data/data.json by default).

Writes go to a temporary sibling file that is then renamed over the
original, so a crash mid-write never leaves a truncated document.
"""

import os
import tempfile
from pathlib import Path
from typing import Union

import structlog

from water_billing.models.document import AppData
from water_billing.services.storage.codec import decode_document, encode_document
from water_billing.services.storage.interface import (
    DocumentNotFoundError,
    DocumentStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class LocalFileDocumentStorage(DocumentStorageInterface):
    """Document stored as a single JSON file."""

    backend_name = "local"

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def describe(self) -> str:
        return f"local file {self._path}"

    async def load(self) -> AppData:
        """Read and decode the JSON file."""
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise DocumentNotFoundError(f"Data file not found: {self._path}") from e
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}") from e

        data = decode_document(text)
        logger.debug("document_read", backend=self.backend_name, path=str(self._path))
        return data

    async def save(self, data: AppData) -> bool:
        """Replace the JSON file with the encoded document."""
        payload = encode_document(data)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}") from e

        logger.debug("document_written", backend=self.backend_name, path=str(self._path))
        return True
