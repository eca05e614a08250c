"""Stateless detection math. Nothing here touches storage or raises."""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable

MILESTONES: tuple[int, ...] = (25, 50, 75, 100)

CELEBRATION_STREAKS: frozenset[int] = frozenset({3, 7, 14, 21, 30, 60, 90, 180, 365})


def clamp_pct(value: float) -> float:
    """Clamp a percentage to [0, 100]. NaN becomes 0."""
    if math.isnan(value):
        return 0.0
    return min(100.0, max(0.0, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (2.5 -> 3), unlike round()."""
    if not math.isfinite(value):
        return 0
    return math.floor(value + 0.5)


def percent_of(current: float, target: float) -> float:
    """current / target * 100. Non-positive target yields 0."""
    if target <= 0.0:
        return 0.0
    return (current / target) * 100.0


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------

def floor_pct(progress_percentage: float) -> int:
    """Whole-number progress used for threshold comparison."""
    if math.isnan(progress_percentage):
        return 0
    if math.isinf(progress_percentage):
        return MILESTONES[-1] if progress_percentage > 0 else 0
    return math.floor(progress_percentage)


def new_milestones(current_pct: int, achieved: Iterable[int]) -> list[int]:
    """Thresholds reached by `current_pct` that are not already achieved."""
    done = set(achieved)
    return [m for m in MILESTONES if current_pct >= m and m not in done]


def next_milestone(current_pct: int) -> int | None:
    return next((m for m in MILESTONES if current_pct < m), None)


def progress_to_next_milestone(current_pct: int) -> float:
    """Position between the previous threshold (or 0) and the next one, as a percentage."""
    upcoming = next_milestone(current_pct)
    if upcoming is None:
        return 0.0
    previous = max((m for m in MILESTONES if m < upcoming), default=0)
    return clamp_pct((current_pct - previous) / (upcoming - previous) * 100.0)


# ---------------------------------------------------------------------------
# Deadlines
# ---------------------------------------------------------------------------

def deadline_level(days_remaining: int) -> str:
    """Map days remaining to "urgent" | "warning" | "info"."""
    if days_remaining <= 1:
        return "urgent"
    if days_remaining <= 3:
        return "warning"
    return "info"


def deadline_due(
    days_remaining: int,
    reminder_days: Iterable[int],
    last_notified: dict[int, date],
    today: date,
) -> bool:
    """True when `days_remaining` matches an offset (or the 0 "due today"
    sentinel) and that offset has not fired on `today` yet."""
    if days_remaining != 0 and days_remaining not in set(reminder_days):
        return False
    return last_notified.get(days_remaining) != today


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------

def to_day(value: str | date | datetime, tz: tzinfo) -> date | None:
    """Normalize a run date to a calendar day in `tz`.

    Plain ISO dates ("2026-10-18") are taken as-is. Timestamps are converted
    to `tz` first (naive ones are assumed UTC). Unparseable input gives None.
    """
    if isinstance(value, datetime):
        dt = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
        return dt.astimezone(tz).date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    s = value.strip()
    if len(s) == 10:
        try:
            return date.fromisoformat(s)
        except ValueError:
            return None
    try:
        parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    return to_day(parsed, tz)


def current_streak(days_desc: list[date], today: date) -> int:
    """Consecutive days ending today: days_desc[i] must equal today - i."""
    streak = 0
    for i, day in enumerate(days_desc):
        if day != today - timedelta(days=i):
            break
        streak += 1
    return streak


def longest_streak(days_asc: list[date]) -> int:
    """Longest run of consecutive days in a sorted, de-duplicated list."""
    if not days_asc:
        return 0
    longest = 1
    running = 1
    for prev, cur in zip(days_asc, days_asc[1:]):
        if (cur - prev).days == 1:
            running += 1
        else:
            running = 1
        longest = max(longest, running)
    return longest


# ---------------------------------------------------------------------------
# Goal timing
# ---------------------------------------------------------------------------

def time_elapsed_pct(start: datetime, end: datetime, now: datetime) -> float:
    """Share of the goal window already elapsed, clamped to [0, 100]."""
    total = (end - start).total_seconds()
    if total <= 0:
        return 100.0 if now >= end else 0.0
    elapsed = (now - start).total_seconds()
    return clamp_pct(elapsed / total * 100.0)


def parse_hhmm(value: str) -> time | None:
    """Parse 'HH:MM' into datetime.time. Returns None when malformed."""
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except (AttributeError, TypeError, ValueError):
        return None
