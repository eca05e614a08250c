"""Durable key-value store for engine state.

Values are JSON strings. Callers never see store failures: reads degrade to
a default and writes are logged and dropped.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Protocol

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """In-process store. State is lost on restart."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value


class SqlStore:
    """Rows in notification_state, one per key (see goalalerts.db)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, key: str) -> str | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT value FROM notification_state WHERE key = :key"),
                {"key": key},
            )
            row = result.fetchone()
        return None if row is None else row[0]

    async def set(self, key: str, value: str) -> None:
        async with self._session_factory() as session:
            await session.execute(
                text(
                    "INSERT INTO notification_state (key, value, updated_at) "
                    "VALUES (:key, :value, :updated_at) "
                    "ON CONFLICT (key) DO UPDATE "
                    "SET value = excluded.value, updated_at = excluded.updated_at"
                ),
                {"key": key, "value": value, "updated_at": datetime.now(timezone.utc)},
            )
            await session.commit()


async def read_json(store: KeyValueStore, key: str, default: Any) -> Any:
    """Load and decode `key`. Missing, unreadable or malformed → `default`."""
    try:
        raw = await store.get(key)
    except Exception as exc:
        logger.warning("State read failed for %s: %s", key, exc)
        return default
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        logger.warning("Discarding malformed state under %s: %s", key, exc)
        return default


async def write_json(store: KeyValueStore, key: str, value: Any) -> bool:
    """Encode and save `value`. Returns False (and logs) on failure."""
    try:
        await store.set(key, json.dumps(value))
    except Exception as exc:
        logger.warning("State write failed for %s: %s", key, exc)
        return False
    return True


class StateTable:
    """One store key holding a JSON object of id -> state.

    Goals are re-fetched on every refresh, so per-goal state lives here keyed
    by goal id rather than on the goal objects. `edit()` is the only
    read-modify-write path and holds the table lock for its duration.
    """

    def __init__(self, store: KeyValueStore, key: str):
        self.store = store
        self.key = key
        self._lock = asyncio.Lock()

    async def load(self) -> dict[str, Any]:
        data = await read_json(self.store, self.key, {})
        if not isinstance(data, dict):
            logger.warning("Expected an object under %s, got %s", self.key, type(data).__name__)
            return {}
        return data

    async def get(self, item_id: str) -> Any:
        return (await self.load()).get(item_id)

    @asynccontextmanager
    async def edit(self) -> AsyncIterator[dict[str, Any]]:
        """Yield the decoded table; saves it afterwards if it changed."""
        async with self._lock:
            data = await self.load()
            before = json.dumps(data, sort_keys=True)
            yield data
            if json.dumps(data, sort_keys=True) != before:
                await write_json(self.store, self.key, data)

    async def delete(self, item_id: str) -> None:
        async with self.edit() as data:
            data.pop(item_id, None)
