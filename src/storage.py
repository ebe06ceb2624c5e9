"""Persistent key-value store over libsql.

The responder treats persistence as an opaque async service with five
operations (``has``/``get``/``set``/``push``/``delete``).  Values are plain
JSON documents.  ``LibsqlKeyValueStore`` keeps them in a single ``kv`` table
and wraps the synchronous ``libsql`` driver with ``asyncio.to_thread()``.
Connection target is determined by settings:

- **Production**: ``TURSO_DATABASE_URL`` + ``TURSO_AUTH_TOKEN`` → remote Turso
- **Dev/test**: no Turso env vars → local SQLite file via ``database_path``
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import libsql

from src.config import settings

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS kv (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""

_UPSERT = "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)"


class KeyValueStore(Protocol):
    """Contract consumed by the responder."""

    async def has(self, key: str) -> bool: ...

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def push(self, key: str, item: Any) -> None: ...

    async def delete(self, key: str) -> None: ...


@dataclass(frozen=True)
class ChannelKeys:
    """All persisted keys for one channel, derived from its identifier."""

    channel: str

    @property
    def history(self) -> str:
        return f"chat:{self.channel}"

    @property
    def markov(self) -> str:
        return f"markov:{self.channel}"

    @property
    def knowledge(self) -> str:
        return f"kg:{self.channel}"

    @property
    def jokes(self) -> str:
        return f"jokes:{self.channel}"

    @property
    def vocabulary(self) -> str:
        return f"vocab:{self.channel}"

    def all(self) -> tuple[str, ...]:
        return (self.history, self.markov, self.knowledge, self.jokes, self.vocabulary)


def _open_local(path: str) -> Any:
    """Open a local libsql connection with WAL mode and busy timeout."""
    conn = libsql.connect(path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


def _open(db_path: Path | None) -> Any:
    if db_path:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return _open_local(str(db_path))

    if settings.turso_database_url:
        return libsql.connect(
            database=settings.turso_database_url,
            auth_token=settings.turso_auth_token,
        )

    settings.database_path.parent.mkdir(parents=True, exist_ok=True)
    return _open_local(str(settings.database_path))


class LibsqlKeyValueStore:
    """JSON key-value store persisted in SQLite / Turso.

    Singleton accessed via ``LibsqlKeyValueStore.shared()``.  Pass an explicit
    *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).

    Every operation opens its own connection; ``push`` is a read-modify-write
    inside one connection and is not atomic across concurrent callers.
    """

    _instance: LibsqlKeyValueStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    @classmethod
    def shared(cls) -> LibsqlKeyValueStore:
        """Return the shared store instance.

        Not named ``get``: that name belongs to the key lookup below.
        """
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self):  # noqa: ANN202
        conn = await asyncio.to_thread(_open, self._db_path)
        if not self._initialised:
            await asyncio.to_thread(conn.execute, _CREATE_TABLE)
            await asyncio.to_thread(conn.commit)
            self._initialised = True
        return conn

    @staticmethod
    def _read(conn: Any, key: str) -> Any | None:
        row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable value at %s", key)
            return None

    # -- Contract --------------------------------------------------------------

    async def has(self, key: str) -> bool:
        conn = await self._connect()
        try:
            cursor = await asyncio.to_thread(
                conn.execute, "SELECT 1 FROM kv WHERE key = ?", (key,)
            )
            return await asyncio.to_thread(cursor.fetchone) is not None
        finally:
            await asyncio.to_thread(conn.close)

    async def get(self, key: str) -> Any | None:
        """Return the decoded value at *key*, or None if absent."""
        conn = await self._connect()
        try:
            return await asyncio.to_thread(self._read, conn, key)
        finally:
            await asyncio.to_thread(conn.close)

    async def set(self, key: str, value: Any) -> None:
        conn = await self._connect()
        try:
            await asyncio.to_thread(conn.execute, _UPSERT, (key, json.dumps(value)))
            await asyncio.to_thread(conn.commit)
        finally:
            await asyncio.to_thread(conn.close)

    async def push(self, key: str, item: Any) -> None:
        """Append *item* to the list at *key*.

        A missing or non-list value is replaced by a fresh one-element list.
        """

        def _push(conn: Any) -> None:
            current = self._read(conn, key)
            if not isinstance(current, list):
                if current is not None:
                    logger.warning("Value at %s is not a list; reinitialising", key)
                current = []
            current.append(item)
            conn.execute(_UPSERT, (key, json.dumps(current)))
            conn.commit()

        conn = await self._connect()
        try:
            await asyncio.to_thread(_push, conn)
        finally:
            await asyncio.to_thread(conn.close)

    async def delete(self, key: str) -> None:
        conn = await self._connect()
        try:
            await asyncio.to_thread(conn.execute, "DELETE FROM kv WHERE key = ?", (key,))
            await asyncio.to_thread(conn.commit)
        finally:
            await asyncio.to_thread(conn.close)
