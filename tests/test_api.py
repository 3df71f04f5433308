"""Contract tests for the HTTP document endpoint."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from water_billing.api import create_app
from water_billing.config import AppSettings, get_settings
from water_billing.services.storage import InMemoryDocumentStorage, StorageError


class BrokenStorage(InMemoryDocumentStorage):
    """Backend whose every call fails."""

    async def load(self):
        raise StorageError("backend down")

    async def save(self, data):
        raise StorageError("backend down")


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(utility_name="Linda Vista Water", log_json=False)


@pytest.fixture
def client(memory_storage, app_settings):
    """FastAPI test client over the sample document."""
    return TestClient(create_app(storage=memory_storage, app_settings=app_settings))


@pytest.fixture
def broken_client(app_settings):
    return TestClient(create_app(storage=BrokenStorage(), app_settings=app_settings))


class TestDocumentEndpoint:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_get_returns_document(self, client, sample_data):
        response = client.get("/api/data")
        assert response.status_code == 200
        assert response.json() == sample_data.to_document()

    def test_post_overwrites_document(self, client, memory_storage, sample_document):
        response = client.post("/api/data", json=sample_document)
        assert response.status_code == 200
        assert response.json() == {"success": True}

        stored = asyncio.run(memory_storage.load())
        assert stored.to_document() == sample_document
        assert client.get("/api/data").json() == sample_document

    def test_post_rejects_invalid_body(self, client, memory_storage):
        response = client.post("/api/data", json={"payments": [{"id": "x"}]})
        assert response.status_code == 422
        assert memory_storage.save_count == 0

    def test_read_failure_is_generic(self, broken_client):
        response = broken_client.get("/api/data")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to read data"}

    def test_write_failure_is_generic(self, broken_client, sample_document):
        response = broken_client.post("/api/data", json=sample_document)
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to write data"}


class TestDownloads:

    def test_activity_csv(self, client):
        response = client.get("/api/exports/activity.csv")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="activity.csv"' in response.headers["content-disposition"]
        assert '"Final Customer Balances"' in response.text

    def test_invoice_csv(self, client):
        response = client.get("/api/exports/invoices/2025-01.csv")
        assert response.status_code == 200
        assert 'filename="invoices-2025-01.csv"' in response.headers["content-disposition"]
        assert response.text.count("\n") == 3

    def test_invalid_period(self, client):
        assert client.get("/api/exports/invoices/2025-13.csv").status_code == 422

    def test_period_invoices_html(self, client):
        response = client.get("/api/invoices/2025-01.html")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Smith Household" in response.text
        assert "Jones Household" in response.text

    def test_single_invoice_html(self, client):
        response = client.get("/api/invoices/2025-02/p-smith.html")
        assert response.status_code == 200
        assert "Smith Household" in response.text
        assert "Jones Household" not in response.text

    def test_single_invoice_without_usage(self, client):
        assert client.get("/api/invoices/2025-02/p-jones.html").status_code == 404

    def test_single_invoice_unknown_property(self, client):
        assert client.get("/api/invoices/2025-01/p-nobody.html").status_code == 404

    def test_download_read_failure(self, broken_client):
        response = broken_client.get("/api/exports/activity.csv")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to read data"}


class TestUnavailableBackend:

    @pytest.fixture
    def unconfigured_client(self, monkeypatch, app_settings):
        monkeypatch.setenv("STORAGE_BACKEND", "github")
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_REPO", raising=False)
        get_settings.cache_clear()
        yield TestClient(create_app(app_settings=app_settings))
        get_settings.cache_clear()

    def test_read_is_generic_error(self, unconfigured_client):
        response = unconfigured_client.get("/api/data")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to read data"}

    def test_download_is_generic_error(self, unconfigured_client):
        response = unconfigured_client.get("/api/exports/activity.csv")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to read data"}

    def test_write_is_generic_error(self, unconfigured_client, sample_document):
        response = unconfigured_client.post("/api/data", json=sample_document)
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to write data"}
