"""Configuration package."""

from water_billing.config.settings import (
    AppSettings,
    GitHubSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GitHubSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
