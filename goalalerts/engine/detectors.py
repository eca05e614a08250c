"""Event detectors for milestones, deadline reminders and running streaks.

Detection is pure (see features); the detectors here only add the persisted
per-goal state that keeps an event from firing twice. They never look at
notification preferences: the timing gate decides what surfaces.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable

from goalalerts.engine import features
from goalalerts.engine.clock import Clock
from goalalerts.engine.models import (
    DeadlineCheckResult,
    Goal,
    GoalProgress,
    MilestoneCheckResult,
    StreakInfo,
    StreakType,
)
from goalalerts.engine.store import KeyValueStore, StateTable

logger = logging.getLogger(__name__)


def _as_thresholds(raw: object) -> list[int]:
    if not isinstance(raw, list):
        return []
    return [m for m in raw if isinstance(m, int) and m in features.MILESTONES]


class MilestoneDetector:
    STORAGE_KEY = "goal_milestones"

    def __init__(self, store: KeyValueStore):
        self._table = StateTable(store, self.STORAGE_KEY)

    async def check(self, goal: Goal, progress: GoalProgress) -> MilestoneCheckResult:
        """Report thresholds newly crossed by `progress` and record them.

        Achieved thresholds are never revoked, so a goal whose progress drops
        (e.g. its target was raised) does not re-announce them.
        """
        current_pct = features.floor_pct(progress.progress_percentage)

        async with self._table.edit() as table:
            achieved = _as_thresholds(table.get(goal.id))
            found = features.new_milestones(current_pct, achieved)
            if found:
                table[goal.id] = sorted(set(achieved) | set(found))

        return MilestoneCheckResult(
            new_milestones=found,
            has_new_milestones=bool(found),
            next_milestone=features.next_milestone(current_pct),
            progress_to_next_milestone=features.progress_to_next_milestone(current_pct),
        )

    async def achieved(self, goal_id: str) -> list[int]:
        return _as_thresholds(await self._table.get(goal_id))

    async def clear(self, goal_id: str) -> None:
        """Forget a goal's milestones (goal deleted or reset)."""
        await self._table.delete(goal_id)


class DeadlineDetector:
    STORAGE_KEY = "goal_deadline_notifications"

    def __init__(self, store: KeyValueStore, clock: Clock):
        self._table = StateTable(store, self.STORAGE_KEY)
        self._clock = clock

    def _last_notified(self, raw: object) -> dict[int, date]:
        if not isinstance(raw, dict):
            return {}
        days: dict[int, date] = {}
        for offset, stamp in raw.items():
            try:
                days[int(offset)] = self._clock.local(datetime.fromisoformat(stamp)).date()
            except (TypeError, ValueError):
                logger.warning("Ignoring unreadable deadline timestamp %r", stamp)
        return days

    async def check(
        self,
        goal: Goal,
        progress: GoalProgress,
        reminder_days: Iterable[int],
    ) -> DeadlineCheckResult:
        """Decide whether a deadline reminder is due today.

        Fires when days_remaining equals a configured offset, or 0 ("due
        today"), and that offset has not already fired on today's date.
        """
        days_remaining = progress.days_remaining
        now = self._clock.now()

        async with self._table.edit() as table:
            entry = table.get(goal.id)
            should_notify = features.deadline_due(
                days_remaining,
                reminder_days,
                self._last_notified(entry),
                now.date(),
            )
            if should_notify:
                stamps = dict(entry) if isinstance(entry, dict) else {}
                stamps[str(days_remaining)] = now.isoformat()
                table[goal.id] = stamps

        level = features.deadline_level(days_remaining)
        return DeadlineCheckResult(
            should_notify=should_notify,
            days_remaining=days_remaining,
            is_urgent=level == "urgent",
            notification_level=level,
        )

    async def clear(self, goal_id: str) -> None:
        await self._table.delete(goal_id)


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------

def calculate_streak(
    run_dates: Iterable[str | date | datetime],
    clock: Clock,
    previous: StreakInfo | None = None,
) -> StreakInfo:
    """Current and longest daily streak from a user's run dates.

    Several runs on one day count once. `previous` is the last stored
    snapshot; beating its longest streak marks a new record.
    """
    days = {d for d in (features.to_day(v, clock.tz) for v in run_dates) if d is not None}
    if not days:
        return StreakInfo()

    ordered = sorted(days)
    current = features.current_streak(ordered[::-1], clock.today())
    longest = max(features.longest_streak(ordered), current)

    return StreakInfo(
        current_streak=current,
        longest_streak=longest,
        streak_type=StreakType.daily,
        is_new_record=previous is not None and current > previous.longest_streak,
        should_celebrate=current in features.CELEBRATION_STREAKS,
    )


def should_notify_streak(new: StreakInfo, old: StreakInfo | None) -> bool:
    """Celebrate milestones, records, and every 7th day of a growing streak.

    The weekly rule can fire again if a streak resets and regrows to the
    same multiple of 7; that is accepted.
    """
    if old is None:
        return new.should_celebrate
    return (
        new.is_new_record
        or new.should_celebrate
        or (new.current_streak > old.current_streak and new.current_streak % 7 == 0)
    )


class StreakDetector:
    STORAGE_KEY = "goal_streaks"
    GENERAL = "general"

    def __init__(self, store: KeyValueStore, clock: Clock):
        self._table = StateTable(store, self.STORAGE_KEY)
        self._clock = clock

    def calculate(
        self,
        run_dates: Iterable[str | date | datetime],
        previous: StreakInfo | None = None,
    ) -> StreakInfo:
        return calculate_streak(run_dates, self._clock, previous)

    @staticmethod
    def _snapshot(raw: object) -> StreakInfo | None:
        if not isinstance(raw, dict):
            return None
        try:
            return StreakInfo.model_validate(raw)
        except ValueError:
            logger.warning("Ignoring unreadable streak snapshot %r", raw)
            return None

    async def stored(self, goal_id: str | None = None) -> StreakInfo | None:
        return self._snapshot(await self._table.get(goal_id or self.GENERAL))

    async def check(
        self,
        run_dates: Iterable[str | date | datetime],
        goal_id: str | None = None,
    ) -> tuple[StreakInfo, bool]:
        """Recompute the streak, decide whether to announce it, store it."""
        scope = goal_id or self.GENERAL
        async with self._table.edit() as table:
            old = self._snapshot(table.get(scope))
            new = self.calculate(run_dates, old)
            table[scope] = new.model_dump(mode="json")
        return new, should_notify_streak(new, old)
