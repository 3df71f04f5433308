"""
JSON encoding of the document, shared by every backend.

The persisted form is UTF-8 JSON with two-space indentation, which keeps
diffs of the GitHub-hosted file readable.
"""

import json

from pydantic import ValidationError

from water_billing.models.document import AppData
from water_billing.services.storage.interface import DocumentFormatError


def encode_document(data: AppData) -> str:
    return json.dumps(data.to_document(), indent=2, ensure_ascii=False)


def decode_document(text: str) -> AppData:
    """
    Parse and validate a stored document.

    Raises:
        DocumentFormatError: On malformed JSON or schema mismatch
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentFormatError(f"Document is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise DocumentFormatError(
            f"Document root must be an object, got {type(raw).__name__}"
        )

    try:
        return AppData.from_document(raw)
    except ValidationError as e:
        raise DocumentFormatError(f"Document does not match the schema: {e}") from e
