"""HTTP document endpoint (FastAPI)."""

from water_billing.api.app import create_app, get_app_settings, get_storage

__all__ = [
    "create_app",
    "get_app_settings",
    "get_storage",
]
