"""Notification service: detectors and delivery wired together.

One instance per user session. Storage, clock and platform are injected so
the whole flow can run against an in-memory store and a fixed clock.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Iterable

from goalalerts.config import settings
from goalalerts.engine import content, gate
from goalalerts.engine.analytics import calculate_goal_stats
from goalalerts.engine.clock import Clock
from goalalerts.engine.detectors import DeadlineDetector, MilestoneDetector, StreakDetector
from goalalerts.engine.dispatcher import (
    NotificationPlatform,
    PlatformDispatcher,
    ToastFeed,
    toast_severity,
)
from goalalerts.engine.models import (
    DeadlineNotification,
    Goal,
    GoalProgress,
    GoalStats,
    MilestoneNotification,
    Notification,
    NotificationPreferences,
    PermissionState,
    Priority,
    ReminderNotification,
    ReminderType,
    StreakInfo,
    StreakNotification,
    StreakType,
    SummaryNotification,
    SummaryPeriod,
)
from goalalerts.engine.preferences import PreferenceStore
from goalalerts.engine.queue import NotificationQueue
from goalalerts.engine.store import KeyValueStore, MemoryStore, SqlStore

logger = logging.getLogger(__name__)

DEFAULT_GOAL_COLOR = "#3b82f6"
DEADLINE_URGENT_COLOR = "#ef4444"
DEADLINE_COLOR = "#f59e0b"
STREAK_COLOR = "#10b981"
SUMMARY_COLOR = "#6366f1"
REMINDER_COLOR = "#8b5cf6"


class NotificationService:
    def __init__(
        self,
        store: KeyValueStore,
        clock: Clock | None = None,
        platform: NotificationPlatform | None = None,
        toasts: ToastFeed | None = None,
        queue_max_size: int | None = None,
        auto_close_seconds: float | None = None,
    ):
        self.clock = clock or Clock(settings.default_tz)
        self.preferences = PreferenceStore(store)
        self.milestones = MilestoneDetector(store)
        self.deadlines = DeadlineDetector(store, self.clock)
        self.streaks = StreakDetector(store, self.clock)
        self.dispatcher = PlatformDispatcher(
            platform,
            auto_close_seconds if auto_close_seconds is not None else settings.platform_auto_close_seconds,
        )
        self.queue = NotificationQueue(
            store,
            queue_max_size if queue_max_size is not None else settings.queue_max_size,
            dispatcher=self.dispatcher,
        )
        self.toasts = toasts or ToastFeed(self.clock, settings.toast_ttl_seconds, settings.toast_max_entries)

    # -----------------------------------------------------------------------
    # Delivery
    # -----------------------------------------------------------------------

    async def _deliver(self, notification: Notification) -> Notification | None:
        prefs = await self.preferences.load()
        if not gate.should_show_notification(notification, prefs, self.clock.now()):
            logger.debug("Gate held back %s notification %s", notification.type, notification.id)
            return None

        await self.queue.add(notification)
        self.toasts.push(notification.title, toast_severity(notification.priority))
        if prefs.enable_browser_notifications:
            await self.dispatcher.show(notification, silent=not prefs.enable_sounds)

        logger.info("Queued %s notification %s", notification.type, notification.id)
        return notification

    async def notify_milestone(
        self, goal: Goal, progress: GoalProgress, milestone: int
    ) -> Notification | None:
        text = content.milestone_content(
            goal.title, milestone, progress.current_value, goal.target_value, goal.target_unit
        )
        return await self._deliver(
            MilestoneNotification(
                priority=Priority.high if milestone >= 75 else Priority.medium,
                title=text.title,
                message=text.message,
                timestamp=self.clock.now(),
                goal_id=goal.id,
                icon=text.icon,
                color=goal.color or DEFAULT_GOAL_COLOR,
                milestone_percentage=milestone,
                current_progress=progress.current_value,
                target_value=goal.target_value,
                goal_title=goal.title,
            )
        )

    async def notify_deadline(self, goal: Goal, progress: GoalProgress) -> Notification | None:
        days = progress.days_remaining
        text = content.deadline_content(
            goal.title, days, progress.current_value, goal.target_value, goal.target_unit
        )
        if days <= 1:
            priority = Priority.urgent
        elif days <= 3:
            priority = Priority.high
        else:
            priority = Priority.medium
        return await self._deliver(
            DeadlineNotification(
                priority=priority,
                title=text.title,
                message=text.message,
                timestamp=self.clock.now(),
                goal_id=goal.id,
                icon=text.icon,
                color=DEADLINE_URGENT_COLOR if days <= 1 else DEADLINE_COLOR,
                days_remaining=days,
                goal_title=goal.title,
                goal_end_date=goal.end_date,
                current_progress=progress.current_value,
                target_value=goal.target_value,
            )
        )

    async def notify_streak(
        self,
        streak_count: int,
        streak_type: StreakType = StreakType.daily,
        goal_title: str | None = None,
        goal_id: str | None = None,
    ) -> Notification | None:
        streak_type = StreakType(streak_type)
        text = content.streak_content(streak_count, streak_type.value, goal_title)
        return await self._deliver(
            StreakNotification(
                priority=Priority.high if streak_count >= 30 else Priority.medium,
                title=text.title,
                message=text.message,
                timestamp=self.clock.now(),
                goal_id=goal_id,
                icon=text.icon,
                color=STREAK_COLOR,
                streak_count=streak_count,
                streak_type=streak_type,
                goal_title=goal_title,
            )
        )

    async def notify_summary(self, period: SummaryPeriod, stats: GoalStats) -> Notification | None:
        period = SummaryPeriod(period)
        text = content.summary_content(
            period.value,
            stats.goals_completed,
            stats.total_goals,
            stats.average_progress,
            stats.top_performing_goal,
        )
        return await self._deliver(
            SummaryNotification(
                priority=Priority.low,
                title=text.title,
                message=text.message,
                timestamp=self.clock.now(),
                icon=text.icon,
                color=SUMMARY_COLOR,
                summary_period=period,
                goals_completed=stats.goals_completed,
                total_goals=stats.total_goals,
                average_progress=stats.average_progress,
                top_performing_goal=stats.top_performing_goal,
            )
        )

    async def notify_reminder(
        self, reminder_type: ReminderType, scheduled_for: datetime | None = None
    ) -> Notification | None:
        reminder_type = ReminderType(reminder_type)
        text = content.reminder_content(reminder_type.value)
        now = self.clock.now()
        return await self._deliver(
            ReminderNotification(
                priority=Priority.low,
                title=text.title,
                message=text.message,
                timestamp=now,
                icon=text.icon,
                color=REMINDER_COLOR,
                reminder_type=reminder_type,
                scheduled_for=scheduled_for or now,
            )
        )

    # -----------------------------------------------------------------------
    # Detection triggers
    # -----------------------------------------------------------------------

    async def check_milestones(self, goal: Goal, progress: GoalProgress):
        return await self.milestones.check(goal, progress)

    async def check_deadline_reminder(
        self, goal: Goal, progress: GoalProgress, offsets: Iterable[int] | None = None
    ):
        if offsets is None:
            offsets = (await self.preferences.load()).deadline_reminder_days
        return await self.deadlines.check(goal, progress, offsets)

    async def check_goals(self, goals: list[Goal], progresses: list[GoalProgress]) -> list[Notification]:
        """Run milestone and deadline detection for every open goal.

        Completed goals and goals without a progress snapshot are skipped.
        Returns the notifications that made it past the gate.
        """
        goals_by_id = {g.id: g for g in goals}
        offsets = (await self.preferences.load()).deadline_reminder_days
        accepted: list[Notification] = []

        for progress in progresses:
            goal = goals_by_id.get(progress.goal_id)
            if goal is None or goal.is_completed:
                continue

            milestones = await self.milestones.check(goal, progress)
            for milestone in milestones.new_milestones:
                sent = await self.notify_milestone(goal, progress, milestone)
                if sent is not None:
                    accepted.append(sent)

            deadline = await self.deadlines.check(goal, progress, offsets)
            if deadline.should_notify:
                sent = await self.notify_deadline(goal, progress)
                if sent is not None:
                    accepted.append(sent)

        return accepted

    def calculate_streak(self, run_dates: Iterable[str | date | datetime]) -> StreakInfo:
        return self.streaks.calculate(run_dates)

    async def check_streak(
        self,
        run_dates: Iterable[str | date | datetime],
        goal_id: str | None = None,
        goal_title: str | None = None,
    ) -> tuple[StreakInfo, Notification | None]:
        info, should_notify = await self.streaks.check(run_dates, goal_id)
        sent = None
        if should_notify and info.current_streak > 0:
            sent = await self.notify_streak(info.current_streak, info.streak_type, goal_title, goal_id)
        return info, sent

    def calculate_goal_stats(self, goals: list[Goal], progresses: list[GoalProgress]) -> GoalStats:
        return calculate_goal_stats(goals, progresses, self.clock.now())

    async def send_summary(
        self,
        period: SummaryPeriod,
        goals: list[Goal],
        progresses: list[GoalProgress],
    ) -> tuple[GoalStats, Notification | None]:
        stats = self.calculate_goal_stats(goals, progresses)
        return stats, await self.notify_summary(period, stats)

    async def forget_goal(self, goal_id: str) -> None:
        """Drop milestone and deadline state for a deleted or reset goal."""
        await self.milestones.clear(goal_id)
        await self.deadlines.clear(goal_id)

    # -----------------------------------------------------------------------
    # Queue operations
    # -----------------------------------------------------------------------

    async def list_notifications(self) -> list[Notification]:
        return await self.queue.visible()

    async def dismiss_notification(self, notification_id: str) -> bool:
        return await self.queue.dismiss(notification_id)

    async def mark_as_read(self, notification_id: str) -> bool:
        return await self.queue.mark_read(notification_id)

    async def clear_all_notifications(self) -> None:
        await self.queue.clear_all()

    async def get_unread_count(self) -> int:
        return await self.queue.unread_count()

    # -----------------------------------------------------------------------
    # Preferences & permission
    # -----------------------------------------------------------------------

    async def get_preferences(self) -> NotificationPreferences:
        return await self.preferences.load()

    async def update_preferences(self, partial: dict[str, Any]) -> NotificationPreferences:
        return await self.preferences.update(partial)

    async def request_permission(self) -> PermissionState:
        state = await self.dispatcher.request_permission()
        if state == PermissionState.granted:
            await self.preferences.update({"enable_browser_notifications": True})
            self.toasts.push("Notifications enabled successfully!", "success")
        elif state == PermissionState.default:
            self.toasts.push(
                "Notification permission not decided yet. Enable it any time from settings.",
                "info",
            )
        else:
            self.toasts.push(
                "Notification permission denied. You can still receive in-app notifications.",
                "info",
            )
        return state


def build_service() -> NotificationService:
    """Service wired from settings: SQL-backed state or in-memory."""
    if settings.state_backend == "sql":
        from goalalerts.db import async_session

        store: KeyValueStore = SqlStore(async_session)
    else:
        store = MemoryStore()
    return NotificationService(store, Clock(settings.default_tz))
