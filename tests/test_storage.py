import asyncio

import pytest

from versenest_auth.core.config import get_settings, reset_settings_cache
from versenest_auth.core.errors import StorageFailure
from versenest_auth.db.storage import MemoryStorage, SqliteStorage, storage_from_settings
from versenest_auth.services.session import SessionStore


def test_sqlite_storage_round_trip(tmp_path):
    storage = SqliteStorage(tmp_path / "nested" / "client.db")

    async def run():
        await storage.set_items({"authToken": "a", "userData": "b"})
        await storage.set_items({"authToken": "c"})
        assert await storage.get_item("authToken") == "c"
        assert await storage.get_item("userData") == "b"
        await storage.remove_items(["authToken", "userData"])
        assert await storage.get_item("authToken") is None

    asyncio.run(run())


def test_sqlite_storage_failure_is_storage_failure(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    storage = SqliteStorage(blocker / "client.db")
    with pytest.raises(StorageFailure):
        asyncio.run(storage.get_item("authToken"))


def test_session_survives_restart_with_sqlite(tmp_path, identity, reader_signup):
    path = tmp_path / "client.db"
    first = SessionStore(identity, SqliteStorage(path))
    asyncio.run(first.signup(reader_signup))

    second = SessionStore(identity, SqliteStorage(path))
    asyncio.run(second.initialize())
    assert second.user == first.user

    asyncio.run(second.logout())
    third = SessionStore(identity, SqliteStorage(path))
    asyncio.run(third.initialize())
    assert third.user is None


def test_storage_backend_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    reset_settings_cache()
    assert isinstance(storage_from_settings(), MemoryStorage)

    monkeypatch.setenv("STORAGE_BACKEND", "sqlite")
    monkeypatch.setenv("STORAGE_PATH", str(tmp_path / "s.db"))
    reset_settings_cache()
    storage = storage_from_settings()
    assert isinstance(storage, SqliteStorage)
    assert storage.path == tmp_path / "s.db"


def test_invalid_env_values_fall_back(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "floppy")
    monkeypatch.setenv("STARTUP_REVALIDATION", "sometimes")
    monkeypatch.setenv("IDENTITY_TIMEOUT_SECONDS", "none")
    reset_settings_cache()
    settings = get_settings()
    assert settings.storage_backend == "sqlite"
    assert settings.startup_revalidation == "optimistic"
    assert settings.identity_timeout_seconds is None


def test_unparseable_timeout_keeps_default(monkeypatch):
    monkeypatch.setenv("IDENTITY_TIMEOUT_SECONDS", "abc")
    reset_settings_cache()
    assert get_settings().identity_timeout_seconds == 10.0
