"""Tests for platform dispatch and the toast feed."""

from __future__ import annotations

import asyncio

import pytest

from goalalerts.engine.dispatcher import (
    NullPlatform,
    PlatformDispatcher,
    ToastFeed,
    dispatch_tag,
    toast_severity,
)
from goalalerts.engine.models import (
    DeadlineNotification,
    PermissionState,
    Priority,
    StreakNotification,
)
from tests.conftest import NOW, FakePlatform


def _streak(goal_id: str | None = None, count: int = 3) -> StreakNotification:
    return StreakNotification(
        priority=Priority.medium,
        title=f"{count} Days Streak!",
        message="",
        goal_id=goal_id,
        streak_count=count,
        icon="🔥",
    )


def _urgent_deadline() -> DeadlineNotification:
    return DeadlineNotification(
        priority=Priority.urgent,
        title="📅 Goal Ends Tomorrow",
        message="",
        goal_id="g1",
        days_remaining=1,
        goal_title="G",
        goal_end_date=NOW,
        current_progress=10,
        target_value=100,
    )


class TestTag:
    def test_goal_scoped(self):
        assert dispatch_tag(_streak("g1")) == "goal-streak-g1"

    def test_general(self):
        assert dispatch_tag(_streak()) == "goal-streak-general"


class TestShow:
    @pytest.mark.asyncio
    async def test_same_tag_replaces(self, platform):
        dispatcher = PlatformDispatcher(platform, auto_close_seconds=60)
        await dispatcher.show(_streak("g1", 3))
        await dispatcher.show(_streak("g1", 4))

        first, second = (h for h, _ in platform.shown)
        assert first.closed is True
        assert second.closed is False
        assert dispatcher.active_tags == ["goal-streak-g1"]
        dispatcher.close_all()

    @pytest.mark.asyncio
    async def test_different_tags_coexist(self, platform):
        dispatcher = PlatformDispatcher(platform, auto_close_seconds=60)
        await dispatcher.show(_streak("g1"))
        await dispatcher.show(_streak("g2"))
        assert sorted(dispatcher.active_tags) == ["goal-streak-g1", "goal-streak-g2"]
        dispatcher.close_all()

    @pytest.mark.asyncio
    async def test_auto_close(self, platform):
        dispatcher = PlatformDispatcher(platform, auto_close_seconds=0.01)
        handle = await dispatcher.show(_streak("g1"))
        await asyncio.sleep(0.05)
        assert handle.closed is True
        assert dispatcher.active_tags == []

    @pytest.mark.asyncio
    async def test_urgent_requires_interaction(self, platform):
        dispatcher = PlatformDispatcher(platform, auto_close_seconds=0.01)
        handle = await dispatcher.show(_urgent_deadline())
        await asyncio.sleep(0.05)

        assert handle.closed is False
        assert platform.shown[0][1].require_interaction is True

    @pytest.mark.asyncio
    async def test_silent_and_icon_passed(self, platform):
        dispatcher = PlatformDispatcher(platform, auto_close_seconds=60)
        await dispatcher.show(_streak("g1"), silent=True)
        options = platform.shown[0][1]
        assert options.silent is True
        assert options.icon == "🔥"
        dispatcher.close_all()

    @pytest.mark.asyncio
    async def test_close_all(self, platform):
        dispatcher = PlatformDispatcher(platform, auto_close_seconds=60)
        await dispatcher.show(_streak("g1"))
        await dispatcher.show(_urgent_deadline())
        dispatcher.close_all()
        assert all(h.closed for h, _ in platform.shown)
        assert dispatcher.active_tags == []

    @pytest.mark.asyncio
    async def test_denied_skips(self):
        platform = FakePlatform(PermissionState.denied)
        dispatcher = PlatformDispatcher(platform)
        assert await dispatcher.show(_streak()) is None
        assert platform.shown == []

    @pytest.mark.asyncio
    async def test_permission_requeried_each_time(self, platform):
        dispatcher = PlatformDispatcher(platform, auto_close_seconds=60)
        await dispatcher.show(_streak("g1"))
        platform.state = PermissionState.denied
        assert await dispatcher.show(_streak("g2")) is None
        assert platform.permission_queries == 2
        dispatcher.close_all()

    @pytest.mark.asyncio
    async def test_null_platform(self):
        dispatcher = PlatformDispatcher()
        assert await dispatcher.permission() == PermissionState.denied
        assert await dispatcher.show(_streak()) is None
        assert isinstance(dispatcher.platform, NullPlatform)


class TestPermission:
    @pytest.mark.asyncio
    async def test_request_from_default(self):
        platform = FakePlatform(PermissionState.default)
        assert await PlatformDispatcher(platform).request_permission() == PermissionState.granted

    @pytest.mark.asyncio
    async def test_already_decided_not_reasked(self):
        platform = FakePlatform(PermissionState.denied)
        platform.grant_on_request = PermissionState.granted
        assert await PlatformDispatcher(platform).request_permission() == PermissionState.denied


class TestToastFeed:
    def test_severity(self):
        assert toast_severity(Priority.urgent) == "error"
        assert toast_severity(Priority.high) == "info"
        assert toast_severity(Priority.low) == "success"

    def test_expires(self, clock):
        feed = ToastFeed(clock, ttl_seconds=5)
        feed.push("hello", "success")
        assert [t.message for t in feed.active()] == ["hello"]
        clock.advance(seconds=5)
        assert feed.active() == []

    def test_bounded(self, clock):
        feed = ToastFeed(clock, max_entries=2)
        for i in range(3):
            feed.push(str(i), "info")
        assert [t.message for t in feed.active()] == ["1", "2"]

    def test_clear(self, clock):
        feed = ToastFeed(clock)
        feed.push("x", "info")
        feed.clear()
        assert feed.active() == []
