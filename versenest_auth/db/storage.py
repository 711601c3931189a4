"""Persisted client storage: a small string key/value store.

Two backends share one async interface:
- ``MemoryStorage`` keeps values in a dict (tests, ephemeral clients).
- ``SqliteStorage`` keeps values in a single-table SQLite file and runs the
  blocking calls in a worker thread.

Multi-key writes and removals are applied together. Any backend failure is
raised as ``StorageFailure``.

Controls:
- Use parameterized queries.
- Ensure connections are closed via context managers.
- Create the database directory if missing; initialize schema on first connect.
"""
from __future__ import annotations

import asyncio
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, Mapping, Optional, Protocol, Union

from versenest_auth.core.config import Settings, get_settings
from versenest_auth.core.errors import StorageFailure


class ClientStorage(Protocol):
    """Async string key/value storage owned by the session store."""

    async def get_item(self, key: str) -> Optional[str]: ...

    async def set_items(self, items: Mapping[str, str]) -> None: ...

    async def remove_items(self, keys: Iterable[str]) -> None: ...


class MemoryStorage:
    """Dict-backed storage. ``snapshot()`` exposes the raw keys for tests."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_items(self, items: Mapping[str, str]) -> None:
        self._items.update(items)

    async def remove_items(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._items.pop(key, None)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._items)


def _ensure_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS client_storage (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """
    )
    conn.commit()


class SqliteStorage:
    """SQLite-backed storage that survives process restarts."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.path), check_same_thread=False)
        except (OSError, sqlite3.Error) as exc:
            raise StorageFailure(f"Cannot open client storage: {exc}") from exc
        try:
            _ensure_schema(conn)
            yield conn
        except sqlite3.Error as exc:
            raise StorageFailure(f"Client storage operation failed: {exc}") from exc
        finally:
            conn.close()

    def _get(self, key: str) -> Optional[str]:
        with self._conn() as conn:
            row = conn.execute("SELECT value FROM client_storage WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None

    def _set(self, items: Mapping[str, str]) -> None:
        with self._conn() as conn:
            with conn:
                conn.executemany(
                    "INSERT INTO client_storage (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    list(items.items()),
                )

    def _remove(self, keys: Iterable[str]) -> None:
        with self._conn() as conn:
            with conn:
                conn.executemany("DELETE FROM client_storage WHERE key = ?", [(k,) for k in keys])

    async def get_item(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._get, key)

    async def set_items(self, items: Mapping[str, str]) -> None:
        await asyncio.to_thread(self._set, dict(items))

    async def remove_items(self, keys: Iterable[str]) -> None:
        await asyncio.to_thread(self._remove, list(keys))


# PUBLIC_INTERFACE
def storage_from_settings(settings: Optional[Settings] = None) -> ClientStorage:
    """Build the storage backend named by STORAGE_BACKEND."""
    settings = settings or get_settings()
    if settings.storage_backend == "sqlite":
        return SqliteStorage(settings.storage_path)
    return MemoryStorage()
