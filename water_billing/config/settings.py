"""
Configuration Management for Water Billing Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The only environment-driven choice that affects behaviour is which
storage backend holds the JSON document; everything else is presentation
or server tuning.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Document storage selection."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["auto", "local", "github", "memory"] = Field(
        default="auto",
        description="Storage backend; 'auto' picks GitHub in production when configured"
    )
    data_file: str = Field(
        default="data/data.json",
        description="Path of the JSON document for the local backend"
    )


class GitHubSettings(BaseSettings):
    """GitHub contents API storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GITHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    token: Optional[str] = Field(
        default=None,
        description="Personal access token with contents read/write scope"
    )
    repo: Optional[str] = Field(
        default=None,
        description="Repository holding the document, as 'owner/name'"
    )
    file_path: str = Field(
        default="data/data.json",
        description="Path of the document inside the repository"
    )
    branch: Optional[str] = Field(
        default=None,
        description="Branch to read and commit to (repository default if unset)"
    )
    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub API base URL"
    )
    commit_message: str = Field(
        default="Update data via web app",
        description="Commit message used for every save"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="HTTP timeout for API calls"
    )

    @field_validator('repo')
    @classmethod
    def validate_repo(cls, v: Optional[str]) -> Optional[str]:
        """Repository must look like owner/name."""
        if v is not None and v.count("/") != 1:
            raise ValueError(f"GITHUB_REPO must be 'owner/name', got {v!r}")
        return v

    @property
    def is_configured(self) -> bool:
        return bool(self.token and self.repo)


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (False for human-readable console output)"
    )

    # Presentation
    utility_name: str = Field(
        default="Linda Vista Water",
        min_length=1,
        description="Name printed on invoices"
    )
    billing_reminder_last_day: int = Field(
        default=5,
        ge=1,
        le=28,
        description="Show the billing reminder from the 1st through this day of the month"
    )

    # HTTP endpoint
    api_host: str = Field(
        default="127.0.0.1",
        description="Interface the document API binds to"
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port the document API listens on"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_production(self) -> bool:
        return self.app_environment.lower() == "production"


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so one broken section
    # does not prevent the others from loading

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def github(self) -> GitHubSettings:
        return GitHubSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    "<name>_error" entries describing failures.
    Useful for startup checks and the settings page.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "github", "app"):
        try:
            section = getattr(settings, name)
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
            continue

        if name == "github" and not section.is_configured:
            results[name] = False
            results[f"{name}_error"] = "GITHUB_TOKEN and GITHUB_REPO are not set"
        else:
            results[name] = True

    return results
