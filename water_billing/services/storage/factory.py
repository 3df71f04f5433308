"""
Storage backend selection.

'auto' mirrors how the application is deployed: the GitHub backend in
production when credentials are present, the local file otherwise.
"""

from typing import Optional

import structlog

from water_billing.config import Settings, get_settings
from water_billing.services.storage.github import GitHubDocumentStorage
from water_billing.services.storage.interface import DocumentStorageInterface
from water_billing.services.storage.local_file import LocalFileDocumentStorage
from water_billing.services.storage.memory import InMemoryDocumentStorage


logger = structlog.get_logger(__name__)


def resolve_backend(settings: Settings) -> str:
    """Concrete backend name for the configured storage settings."""
    backend = settings.storage.backend
    if backend != "auto":
        return backend
    if settings.app.is_production and settings.github.is_configured:
        return "github"
    return "local"


def create_storage(settings: Optional[Settings] = None) -> DocumentStorageInterface:
    """
    Build the configured document storage.

    Raises:
        ConnectionError: If GitHub is selected but not configured
    """
    settings = settings or get_settings()
    backend = resolve_backend(settings)

    if backend == "github":
        storage = GitHubDocumentStorage(settings.github)
    elif backend == "memory":
        storage = InMemoryDocumentStorage()
    else:
        storage = LocalFileDocumentStorage(settings.storage.data_file)

    logger.info("storage_selected", backend=backend, location=storage.describe())
    return storage
