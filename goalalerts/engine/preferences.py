"""Notification settings, stored as JSON and merged over defaults."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from goalalerts.engine.models import NotificationPreferences
from goalalerts.engine.store import KeyValueStore, read_json, write_json

logger = logging.getLogger(__name__)


def _deep_merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class PreferenceStore:
    STORAGE_KEY = "goal_notification_preferences"

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._lock = asyncio.Lock()

    async def load(self) -> NotificationPreferences:
        """Stored preferences over defaults; fields added later get defaults.

        Anything unreadable falls back to the full default set.
        """
        stored = await read_json(self.store, self.STORAGE_KEY, None)
        if not isinstance(stored, dict):
            return NotificationPreferences()
        defaults = NotificationPreferences().model_dump(mode="json")
        try:
            return NotificationPreferences.model_validate(_deep_merge(defaults, stored))
        except ValidationError as exc:
            logger.warning("Stored notification preferences invalid, using defaults: %s", exc)
            return NotificationPreferences()

    async def save(self, preferences: NotificationPreferences) -> None:
        async with self._lock:
            await write_json(self.store, self.STORAGE_KEY, preferences.model_dump(mode="json"))

    async def update(self, partial: dict[str, Any]) -> NotificationPreferences:
        """Merge `partial` into the stored preferences.

        Nested sections (quiet_hours, reminder_times) merge key by key.
        Raises ValidationError when the merged result is invalid; nothing is
        saved in that case.
        """
        async with self._lock:
            current = (await self.load()).model_dump(mode="json")
            updated = NotificationPreferences.model_validate(_deep_merge(current, partial))
            await write_json(self.store, self.STORAGE_KEY, updated.model_dump(mode="json"))
        return updated

    async def reset(self) -> NotificationPreferences:
        defaults = NotificationPreferences()
        await self.save(defaults)
        return defaults
