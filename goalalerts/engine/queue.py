"""Bounded notification history, newest first, persisted across sessions."""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from goalalerts.engine.dispatcher import PlatformDispatcher
from goalalerts.engine.models import NOTIFICATION_LIST, Notification
from goalalerts.engine.store import KeyValueStore, read_json, write_json

logger = logging.getLogger(__name__)


class NotificationQueue:
    STORAGE_KEY = "goal_notifications"

    def __init__(
        self,
        store: KeyValueStore,
        max_size: int = 50,
        dispatcher: PlatformDispatcher | None = None,
    ):
        self.store = store
        self.max_size = max_size
        self.dispatcher = dispatcher
        self._items: list[Notification] | None = None
        self._lock = asyncio.Lock()

    async def _load(self) -> list[Notification]:
        raw = await read_json(self.store, self.STORAGE_KEY, [])
        try:
            return NOTIFICATION_LIST.validate_python(raw)
        except ValidationError as exc:
            logger.warning("Stored notifications unreadable, starting empty: %s", exc)
            return []

    async def _ensure_loaded(self) -> list[Notification]:
        if self._items is None:
            self._items = await self._load()
        return self._items

    async def _save(self) -> None:
        await write_json(
            self.store,
            self.STORAGE_KEY,
            NOTIFICATION_LIST.dump_python(self._items or [], mode="json"),
        )

    async def add(self, notification: Notification) -> None:
        """Prepend; anything past max_size (the oldest) is dropped."""
        async with self._lock:
            items = await self._ensure_loaded()
            self._items = [notification, *items][: self.max_size]
            await self._save()

    async def _flag(self, notification_id: str, field: str) -> bool:
        async with self._lock:
            for item in await self._ensure_loaded():
                if item.id == notification_id:
                    setattr(item, field, True)
                    await self._save()
                    return True
        return False

    async def dismiss(self, notification_id: str) -> bool:
        """Hide a notification. It stays in storage; False if the id is unknown."""
        return await self._flag(notification_id, "dismissed")

    async def mark_read(self, notification_id: str) -> bool:
        return await self._flag(notification_id, "read")

    async def clear_all(self) -> None:
        async with self._lock:
            self._items = []
            await self._save()
        if self.dispatcher is not None:
            self.dispatcher.close_all()

    async def get(self, notification_id: str) -> Notification | None:
        return next((n for n in await self._ensure_loaded() if n.id == notification_id), None)

    async def all(self) -> list[Notification]:
        return list(await self._ensure_loaded())

    async def visible(self) -> list[Notification]:
        return [n for n in await self._ensure_loaded() if not n.dismissed]

    async def unread_count(self) -> int:
        return sum(1 for n in await self._ensure_loaded() if not n.read and not n.dismissed)
