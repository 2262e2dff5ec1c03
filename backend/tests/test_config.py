import pytest

from ainotes.config import load_settings
from ainotes.storage.backend import build_adapter
from ainotes.storage.local_store import LocalStorageAdapter
from ainotes.storage.remote_store import RemoteDocumentAdapter

REMOTE_ENV = {
    "APPWRITE_ENDPOINT": "https://appwrite.test/v1",
    "APPWRITE_PROJECT_ID": "proj",
    "APPWRITE_DB_ID": "db",
    "APPWRITE_COLLECTION_ID": "notes",
}


def test_local_adapter_when_remote_not_configured(tmp_path, monkeypatch):
    monkeypatch.setenv("APP_DATA_DIR", str(tmp_path))
    for name in REMOTE_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("APPWRITE_ENDPOINT", "https://appwrite.test/v1")

    settings = load_settings()
    assert settings.remote_configured is False
    adapter = build_adapter(settings)
    assert isinstance(adapter, LocalStorageAdapter)
    assert adapter.path.parent == tmp_path


def test_remote_adapter_when_fully_configured(monkeypatch):
    for name, value in REMOTE_ENV.items():
        monkeypatch.setenv(name, value)

    adapter = build_adapter(load_settings())
    assert isinstance(adapter, RemoteDocumentAdapter)
    adapter.close()


def test_bad_numbers_are_reported(monkeypatch):
    monkeypatch.setenv("NOTES_PAGE_SIZE", "lots")
    with pytest.raises(ValueError, match="NOTES_PAGE_SIZE"):
        load_settings()


def test_cache_owner_limit_defaults_and_floors_at_one(monkeypatch):
    monkeypatch.delenv("NOTES_CACHE_MAX_OWNERS", raising=False)
    assert load_settings().notes_cache_max_owners == 256

    monkeypatch.setenv("NOTES_CACHE_MAX_OWNERS", "0")
    assert load_settings().notes_cache_max_owners == 1
