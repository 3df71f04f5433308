"""
Tests for the document storage backends.

The GitHub backend is exercised against a mocked requests session;
no network calls are made.
"""

import asyncio
import base64
import json
from unittest.mock import MagicMock

import pytest
import requests

from water_billing.config import GitHubSettings, Settings
from water_billing.models import AppData
from water_billing.services.storage import (
    ConnectionError,
    DocumentFormatError,
    DocumentNotFoundError,
    GitHubDocumentStorage,
    InMemoryDocumentStorage,
    LocalFileDocumentStorage,
    StorageError,
    create_storage,
    decode_document,
    encode_document,
    resolve_backend,
)


class TestCodec:

    def test_encoding_is_indented_camel_case(self, sample_data):
        text = encode_document(sample_data)
        assert '\n  "properties": [' in text
        assert '"balanceAdjustment"' in text
        assert '"billingPeriod": "2025-01"' in text

    def test_decode_matches_original(self, sample_data):
        assert decode_document(encode_document(sample_data)) == sample_data

    def test_invalid_json(self):
        with pytest.raises(DocumentFormatError):
            decode_document("{not json")

    def test_root_must_be_object(self):
        with pytest.raises(DocumentFormatError):
            decode_document("[]")

    def test_schema_mismatch(self):
        with pytest.raises(DocumentFormatError):
            decode_document(json.dumps({"payments": [{"id": "x"}]}))

    def test_format_error_is_storage_error(self):
        assert issubclass(DocumentFormatError, StorageError)


class TestLocalFileStorage:

    def test_save_then_load(self, tmp_path, sample_data):
        storage = LocalFileDocumentStorage(tmp_path / "data" / "data.json")
        assert asyncio.run(storage.save(sample_data)) is True
        assert asyncio.run(storage.load()) == sample_data

    def test_file_is_plain_json(self, tmp_path, sample_document):
        path = tmp_path / "data.json"
        path.write_text(json.dumps(sample_document), encoding="utf-8")
        storage = LocalFileDocumentStorage(path)

        asyncio.run(storage.save(asyncio.run(storage.load())))

        assert json.loads(path.read_text(encoding="utf-8")) == sample_document

    def test_no_temp_files_left_behind(self, tmp_path, sample_data):
        storage = LocalFileDocumentStorage(tmp_path / "data.json")
        asyncio.run(storage.save(sample_data))
        asyncio.run(storage.save(sample_data))
        assert [p.name for p in tmp_path.iterdir()] == ["data.json"]

    def test_missing_file(self, tmp_path):
        storage = LocalFileDocumentStorage(tmp_path / "missing.json")
        with pytest.raises(DocumentNotFoundError):
            asyncio.run(storage.load())

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(DocumentFormatError):
            asyncio.run(LocalFileDocumentStorage(path).load())

    def test_describe(self, tmp_path):
        assert "data.json" in LocalFileDocumentStorage(tmp_path / "data.json").describe()


class TestInMemoryStorage:

    def test_empty_store_has_no_document(self):
        with pytest.raises(DocumentNotFoundError):
            asyncio.run(InMemoryDocumentStorage().load())

    def test_round_trip(self, sample_data):
        storage = InMemoryDocumentStorage()
        asyncio.run(storage.save(sample_data))
        assert storage.save_count == 1
        assert asyncio.run(storage.load()) == sample_data
        assert storage.raw_text == encode_document(sample_data)


def _response(status_code: int, payload=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload
    return response


def _contents_payload(data: AppData, sha: str = "abc123") -> dict:
    encoded = base64.b64encode(encode_document(data).encode("utf-8")).decode("ascii")
    return {"sha": sha, "content": encoded, "encoding": "base64"}


@pytest.fixture
def github_settings() -> GitHubSettings:
    return GitHubSettings(
        token="test-token",
        repo="owner/water",
        file_path="data/data.json",
        branch="main",
    )


class TestGitHubStorage:

    def test_requires_configuration(self):
        with pytest.raises(ConnectionError):
            GitHubDocumentStorage(GitHubSettings(token=None, repo=None), session=MagicMock())

    def test_contents_url(self, github_settings):
        storage = GitHubDocumentStorage(github_settings, session=MagicMock())
        assert storage.contents_url == (
            "https://api.github.com/repos/owner/water/contents/data/data.json"
        )

    def test_load_decodes_content(self, github_settings, sample_data):
        session = MagicMock()
        session.get.return_value = _response(200, _contents_payload(sample_data))
        storage = GitHubDocumentStorage(github_settings, session=session)

        assert asyncio.run(storage.load()) == sample_data

        _, kwargs = session.get.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer test-token"
        assert kwargs["headers"]["Accept"] == "application/vnd.github.v3+json"
        assert kwargs["params"] == {"ref": "main"}
        assert kwargs["timeout"] == github_settings.timeout_seconds

    def test_save_sends_sha_and_content(self, github_settings, sample_data):
        session = MagicMock()
        session.get.return_value = _response(200, _contents_payload(AppData(), sha="old-sha"))
        session.put.return_value = _response(200, {})
        storage = GitHubDocumentStorage(github_settings, session=session)

        assert asyncio.run(storage.save(sample_data)) is True

        _, kwargs = session.put.call_args
        body = kwargs["json"]
        assert body["sha"] == "old-sha"
        assert body["branch"] == "main"
        assert body["message"] == "Update data via web app"
        assert base64.b64decode(body["content"]).decode("utf-8") == encode_document(sample_data)

    def test_first_save_has_no_sha(self, github_settings, sample_data):
        session = MagicMock()
        session.get.return_value = _response(404)
        session.put.return_value = _response(201, {})
        storage = GitHubDocumentStorage(github_settings, session=session)

        asyncio.run(storage.save(sample_data))

        _, kwargs = session.put.call_args
        assert "sha" not in kwargs["json"]

    def test_missing_file(self, github_settings):
        session = MagicMock()
        session.get.return_value = _response(404)
        storage = GitHubDocumentStorage(github_settings, session=session)
        with pytest.raises(DocumentNotFoundError):
            asyncio.run(storage.load())

    def test_http_error_on_read(self, github_settings):
        session = MagicMock()
        session.get.return_value = _response(500)
        storage = GitHubDocumentStorage(github_settings, session=session)
        with pytest.raises(StorageError):
            asyncio.run(storage.load())

    def test_http_error_on_write(self, github_settings, sample_data):
        session = MagicMock()
        session.get.return_value = _response(200, _contents_payload(sample_data))
        session.put.return_value = _response(409)
        storage = GitHubDocumentStorage(github_settings, session=session)
        with pytest.raises(StorageError):
            asyncio.run(storage.save(sample_data))

    def test_network_failure_is_not_retried(self, github_settings):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("offline")
        storage = GitHubDocumentStorage(github_settings, session=session)
        with pytest.raises(ConnectionError):
            asyncio.run(storage.load())
        assert session.get.call_count == 1

    def test_undecodable_content(self, github_settings):
        session = MagicMock()
        session.get.return_value = _response(200, {"sha": "x"})
        storage = GitHubDocumentStorage(github_settings, session=session)
        with pytest.raises(DocumentFormatError):
            asyncio.run(storage.load())


class TestBackendSelection:

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in (
            "STORAGE_BACKEND",
            "STORAGE_DATA_FILE",
            "GITHUB_TOKEN",
            "GITHUB_REPO",
            "APP_ENVIRONMENT",
        ):
            monkeypatch.delenv(name, raising=False)

    def test_auto_is_local_in_development(self):
        assert resolve_backend(Settings()) == "local"

    def test_auto_is_local_without_credentials(self, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "production")
        assert resolve_backend(Settings()) == "local"

    def test_auto_is_github_in_configured_production(self, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "production")
        monkeypatch.setenv("GITHUB_TOKEN", "t")
        monkeypatch.setenv("GITHUB_REPO", "owner/water")
        assert resolve_backend(Settings()) == "github"

    def test_explicit_backend(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        assert isinstance(create_storage(Settings()), InMemoryDocumentStorage)

    def test_local_backend_uses_data_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORAGE_BACKEND", "local")
        monkeypatch.setenv("STORAGE_DATA_FILE", str(tmp_path / "doc.json"))
        storage = create_storage(Settings())
        assert isinstance(storage, LocalFileDocumentStorage)
        assert storage.path == tmp_path / "doc.json"
