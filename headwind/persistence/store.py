"""Key-value store for the small amount of state Headwind persists.

Two implementations share the ``KeyValueStore`` protocol:

- ``SqliteKeyValueStore`` — one ``kv`` table in a local SQLite file.
  Queries run in a worker thread so the event loop never blocks on disk.
- ``InMemoryKeyValueStore`` — dict-backed, for tests and ephemeral runs.

Both expose ``watch(key)``: a stream that starts with the current value
(``None`` when missing) and yields every later write to that key.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import AsyncIterator, Protocol

from headwind.streams import Broadcast

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> bytes | None: ...

    async def put(self, key: str, value: bytes) -> None: ...

    async def delete(self, key: str) -> None: ...

    def watch(self, key: str) -> AsyncIterator[bytes | None]: ...


class _WatchMixin:
    """Per-key broadcasts fed by ``put`` / ``delete``."""

    def _init_watchers(self) -> None:
        self._watchers: dict[str, Broadcast[bytes | None]] = {}

    def _notify(self, key: str, value: bytes | None) -> None:
        broadcast = self._watchers.get(key)
        if broadcast is not None:
            broadcast.publish(value)

    async def _watch(self, key: str) -> AsyncIterator[bytes | None]:
        broadcast = self._watchers.get(key)
        if broadcast is None:
            broadcast = Broadcast(replay_latest=True)
            self._watchers[key] = broadcast
        subscription = broadcast.subscribe()
        try:
            if not broadcast.has_value:
                current = await self.get(key)  # type: ignore[attr-defined]
                # A concurrent put may have published meanwhile; it wins.
                if not broadcast.has_value:
                    broadcast.publish(current)
            async for value in subscription:
                yield value
        finally:
            subscription.cancel()


class InMemoryKeyValueStore(_WatchMixin):
    def __init__(self, initial: dict[str, bytes] | None = None):
        self._data: dict[str, bytes] = dict(initial or {})
        self._init_watchers()

    async def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    async def put(self, key: str, value: bytes) -> None:
        self._data[key] = value
        self._notify(key, value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)
        self._notify(key, None)

    def watch(self, key: str) -> AsyncIterator[bytes | None]:
        return self._watch(key)


class SqliteKeyValueStore(_WatchMixin):
    """SQLite-backed store. The database file is created on first use."""

    def __init__(self, db_path: Path | str):
        self._db_path = Path(db_path)
        self._lock = asyncio.Lock()
        self._initialized = False
        self._init_watchers()

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path))
        if not self._initialized:
            conn.execute("CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value BLOB NOT NULL)")
            conn.commit()
            self._initialized = True
            logger.info("Opened key-value store at %s", self._db_path)
        return conn

    def _get_sync(self, key: str) -> bytes | None:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return bytes(row[0]) if row else None

    def _put_sync(self, key: str, value: bytes) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
            conn.commit()
        finally:
            conn.close()

    def _delete_sync(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    async def get(self, key: str) -> bytes | None:
        async with self._lock:
            return await asyncio.to_thread(self._get_sync, key)

    async def put(self, key: str, value: bytes) -> None:
        async with self._lock:
            await asyncio.to_thread(self._put_sync, key, value)
        self._notify(key, value)

    async def delete(self, key: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._delete_sync, key)
        self._notify(key, None)

    def watch(self, key: str) -> AsyncIterator[bytes | None]:
        return self._watch(key)
