"""Tests for configuration and logging setup."""

import logging

import pytest
import structlog
from pydantic import ValidationError

from water_billing.config import (
    AppSettings,
    GitHubSettings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)
from water_billing.logging_setup import configure_from_settings, configure_logging


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "STORAGE_BACKEND",
        "GITHUB_TOKEN",
        "GITHUB_REPO",
        "APP_ENVIRONMENT",
        "LOG_LEVEL",
        "UTILITY_NAME",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:

    def test_defaults(self):
        app = AppSettings()
        assert app.utility_name == "Linda Vista Water"
        assert app.billing_reminder_last_day == 5
        assert not app.is_production
        assert StorageSettings().backend == "auto"
        assert StorageSettings().data_file == "data/data.json"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("UTILITY_NAME", "Canyon Water")
        monkeypatch.setenv("APP_ENVIRONMENT", "Production")
        app = AppSettings()
        assert app.utility_name == "Canyon Water"
        assert app.is_production

    def test_only_used_app_fields_are_declared(self):
        assert set(AppSettings.model_fields) == {
            "app_environment",
            "log_level",
            "log_json",
            "utility_name",
            "billing_reminder_last_day",
            "api_host",
            "api_port",
        }

    def test_log_level_normalized(self):
        assert AppSettings(log_level="debug").log_level == "DEBUG"

    def test_log_level_rejected(self):
        with pytest.raises(ValidationError):
            AppSettings(log_level="chatty")

    def test_github_repo_format(self):
        with pytest.raises(ValidationError):
            GitHubSettings(repo="just-a-name")
        assert GitHubSettings(token="t", repo="owner/water").is_configured
        assert not GitHubSettings(token=None, repo="owner/water").is_configured

    def test_invalid_backend(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "s3")
        with pytest.raises(ValidationError):
            StorageSettings()

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_validate_all_settings_reports_github(self):
        status = validate_all_settings()
        assert status["storage"] is True
        assert status["app"] is True
        assert status["github"] is False
        assert "GITHUB_TOKEN" in status["github_error"]

    def test_validate_all_settings_reports_broken_section(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "s3")
        status = validate_all_settings()
        assert status["storage"] is False
        assert status["storage_error"]


class TestLogging:

    def test_configure_logging_sets_level(self):
        configure_logging(level="WARNING", json_output=False)
        assert logging.getLogger().level == logging.WARNING

    def test_json_logging(self, capsys):
        configure_logging(level="INFO", json_output=True)
        structlog.get_logger("water_billing.test").info("payment_recorded", amount=35.0)
        out = capsys.readouterr().out
        assert '"event": "payment_recorded"' in out
        assert '"amount": 35.0' in out

    def test_configure_from_settings(self):
        configure_from_settings(AppSettings(log_level="ERROR", log_json=False))
        assert logging.getLogger().level == logging.ERROR
