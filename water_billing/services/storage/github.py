"""
GitHub Contents API Storage

DESIGN DECISION: In deployment the document lives as a JSON file in a
GitHub repository, because:
1. No database to run for a handful of properties
2. Every save is a commit, so history comes for free
3. The file can be inspected and fixed by hand

TRADEOFFS:
- Each save needs the current blob SHA, so it costs a read plus a write
- The SHA only guards against a writer racing between our read and our
  write; it is not used for conflict resolution (last writer wins)
- No automatic retries: a failure is reported and the operator retries
"""

import base64
from typing import Any, Optional

import requests
import structlog

from water_billing.config import GitHubSettings, get_settings
from water_billing.models.document import AppData
from water_billing.services.storage.codec import decode_document, encode_document
from water_billing.services.storage.interface import (
    ConnectionError,
    DocumentFormatError,
    DocumentNotFoundError,
    DocumentStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class GitHubDocumentStorage(DocumentStorageInterface):
    """
    Document stored as a file in a GitHub repository.

    Reads GET the contents endpoint and base64-decode the file.
    Saves re-read the current SHA, then PUT the new content as a commit.
    """

    backend_name = "github"

    def __init__(
        self,
        settings: Optional[GitHubSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self._settings = settings or get_settings().github
        if not self._settings.is_configured:
            raise ConnectionError("GitHub storage requires GITHUB_TOKEN and GITHUB_REPO")
        self._session = session or requests.Session()

    @property
    def contents_url(self) -> str:
        base = self._settings.api_url.rstrip("/")
        return f"{base}/repos/{self._settings.repo}/contents/{self._settings.file_path}"

    def describe(self) -> str:
        return f"github {self._settings.repo}:{self._settings.file_path}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.token}",
            "Accept": "application/vnd.github.v3+json",
        }

    def _fetch(self) -> dict[str, Any]:
        """GET the file metadata and content."""
        params = {"ref": self._settings.branch} if self._settings.branch else None
        try:
            response = self._session.get(
                self.contents_url,
                headers=self._headers(),
                params=params,
                timeout=self._settings.timeout_seconds,
            )
        except requests.RequestException as e:
            raise ConnectionError(f"Failed to reach GitHub: {e}") from e

        if response.status_code == 404:
            raise DocumentNotFoundError(f"Document not found on GitHub: {self.describe()}")
        if not response.ok:
            raise StorageError(
                f"Failed to read from GitHub: HTTP {response.status_code}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise DocumentFormatError(f"GitHub returned a non-JSON response: {e}") from e

    async def load(self) -> AppData:
        """Read and decode the document from the repository."""
        payload = self._fetch()
        try:
            text = base64.b64decode(payload["content"]).decode("utf-8")
        except (KeyError, TypeError, ValueError) as e:
            raise DocumentFormatError(f"GitHub content could not be decoded: {e}") from e

        data = decode_document(text)
        logger.debug("document_read", backend=self.backend_name, sha=payload.get("sha"))
        return data

    async def save(self, data: AppData) -> bool:
        """Commit the encoded document over the current file."""
        try:
            sha = self._fetch().get("sha")
        except DocumentNotFoundError:
            # First save creates the file
            sha = None

        body: dict[str, Any] = {
            "message": self._settings.commit_message,
            "content": base64.b64encode(encode_document(data).encode("utf-8")).decode("ascii"),
        }
        if sha:
            body["sha"] = sha
        if self._settings.branch:
            body["branch"] = self._settings.branch

        try:
            response = self._session.put(
                self.contents_url,
                headers=self._headers(),
                json=body,
                timeout=self._settings.timeout_seconds,
            )
        except requests.RequestException as e:
            raise ConnectionError(f"Failed to reach GitHub: {e}") from e

        if not response.ok:
            raise StorageError(f"Failed to write to GitHub: HTTP {response.status_code}")

        logger.debug("document_written", backend=self.backend_name, previous_sha=sha)
        return True
