"""Outbound surfaces besides the queue: platform push and in-app toasts."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from goalalerts.engine.clock import Clock
from goalalerts.engine.models import Notification, PermissionState, Priority

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DisplayOptions:
    icon: str | None = None
    require_interaction: bool = False
    silent: bool = False


class PlatformHandle(Protocol):
    def close(self) -> None: ...


class NotificationPlatform(Protocol):
    """OS/browser push surface."""

    async def permission(self) -> PermissionState: ...

    async def request_permission(self) -> PermissionState: ...

    async def show(self, title: str, body: str, tag: str, options: DisplayOptions) -> PlatformHandle: ...


class NullPlatform:
    """Used when no push surface is configured: permission is always denied."""

    async def permission(self) -> PermissionState:
        return PermissionState.denied

    async def request_permission(self) -> PermissionState:
        return PermissionState.denied

    async def show(self, title: str, body: str, tag: str, options: DisplayOptions) -> PlatformHandle:
        raise RuntimeError("No notification platform configured")


def dispatch_tag(notification: Notification) -> str:
    """De-duplication key: one live platform notification per type and goal."""
    return f"goal-{notification.type}-{notification.goal_id or 'general'}"


def _close_quietly(handle: PlatformHandle) -> None:
    try:
        handle.close()
    except Exception as exc:
        logger.warning("Closing platform notification failed: %s", exc)


class PlatformDispatcher:
    def __init__(self, platform: NotificationPlatform | None = None, auto_close_seconds: float = 8.0):
        self.platform = platform or NullPlatform()
        self.auto_close_seconds = auto_close_seconds
        self._active: dict[str, PlatformHandle] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

    @property
    def active_tags(self) -> list[str]:
        return list(self._active)

    async def permission(self) -> PermissionState:
        """Current grant, queried fresh each time (it can be revoked out of band)."""
        try:
            return PermissionState(await self.platform.permission())
        except Exception as exc:
            logger.warning("Notification permission query failed: %s", exc)
            return PermissionState.denied

    async def request_permission(self) -> PermissionState:
        current = await self.permission()
        if current != PermissionState.default:
            return current
        try:
            return PermissionState(await self.platform.request_permission())
        except Exception as exc:
            logger.warning("Notification permission request failed: %s", exc)
            return PermissionState.denied

    async def show(self, notification: Notification, silent: bool = False) -> PlatformHandle | None:
        """Show `notification`, replacing any live one with the same tag.

        Urgent notifications stay until closed; everything else is withdrawn
        after auto_close_seconds. Returns None when dispatch was skipped.
        """
        if await self.permission() != PermissionState.granted:
            logger.debug("Skipping platform dispatch for %s: no permission", notification.id)
            return None

        tag = dispatch_tag(notification)
        self.close(tag)

        options = DisplayOptions(
            icon=notification.icon,
            require_interaction=notification.priority == Priority.urgent,
            silent=silent,
        )
        try:
            handle = await self.platform.show(notification.title, notification.message, tag, options)
        except Exception as exc:
            logger.warning("Platform notification failed for %s: %s", tag, exc)
            return None

        self._active[tag] = handle
        if not options.require_interaction:
            loop = asyncio.get_running_loop()
            self._timers[tag] = loop.call_later(self.auto_close_seconds, self._expire, tag, handle)
        return handle

    def _expire(self, tag: str, handle: PlatformHandle) -> None:
        self._timers.pop(tag, None)
        if self._active.get(tag) is handle:
            del self._active[tag]
        _close_quietly(handle)

    def close(self, tag: str) -> None:
        timer = self._timers.pop(tag, None)
        if timer is not None:
            timer.cancel()
        handle = self._active.pop(tag, None)
        if handle is not None:
            _close_quietly(handle)

    def close_all(self) -> None:
        for tag in list(self._active):
            self.close(tag)
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()


# ---------------------------------------------------------------------------
# Toasts
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Toast:
    message: str
    severity: str  # "success" | "info" | "error"
    created_at: datetime
    expires_at: datetime


def toast_severity(priority: Priority) -> str:
    if priority == Priority.urgent:
        return "error"
    if priority == Priority.high:
        return "info"
    return "success"


class ToastFeed:
    """Short-lived messages. Expiry is evaluated on read against the clock."""

    def __init__(self, clock: Clock, ttl_seconds: float = 5.0, max_entries: int = 20):
        self._clock = clock
        self.ttl = timedelta(seconds=ttl_seconds)
        self._entries: deque[Toast] = deque(maxlen=max_entries)

    def push(self, message: str, severity: str) -> Toast:
        now = self._clock.now()
        toast = Toast(message=message, severity=severity, created_at=now, expires_at=now + self.ttl)
        self._entries.append(toast)
        return toast

    def active(self) -> list[Toast]:
        now = self._clock.now()
        while self._entries and self._entries[0].expires_at <= now:
            self._entries.popleft()
        return [t for t in self._entries if t.expires_at > now]

    def clear(self) -> None:
        self._entries.clear()
