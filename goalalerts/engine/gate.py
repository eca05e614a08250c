"""The one place preferences decide whether a notification surfaces."""

from __future__ import annotations

from datetime import datetime, time, timedelta

from goalalerts.engine.features import parse_hhmm
from goalalerts.engine.models import (
    Notification,
    NotificationPreferences,
    Priority,
    QuietHours,
)

TYPE_FLAGS: dict[str, str] = {
    "milestone": "enable_milestone_notifications",
    "deadline": "enable_deadline_reminders",
    "streak": "enable_streak_notifications",
    "summary": "enable_summary_notifications",
    "reminder": "enable_reminder_notifications",
}


def is_within_quiet_hours(quiet_hours: QuietHours, now: datetime | time) -> bool:
    """Minute-granularity window test; both ends inclusive.

    start > end is an overnight window (22:00–08:00) and wraps midnight.
    """
    if not quiet_hours.enabled:
        return False
    start = parse_hhmm(quiet_hours.start)
    end = parse_hhmm(quiet_hours.end)
    if start is None or end is None:
        return False

    current = time(now.hour, now.minute)
    if start > end:
        return current >= start or current <= end
    return start <= current <= end


def type_enabled(notification: Notification, preferences: NotificationPreferences) -> bool:
    flag = TYPE_FLAGS.get(notification.type)
    return flag is not None and bool(getattr(preferences, flag))


def should_show_notification(
    notification: Notification,
    preferences: NotificationPreferences,
    now: datetime,
) -> bool:
    """Type toggle first, then quiet hours (urgent notifications bypass them)."""
    if not type_enabled(notification, preferences):
        return False
    if notification.priority != Priority.urgent and is_within_quiet_hours(preferences.quiet_hours, now):
        return False
    return True


def next_reminder_time(
    preferences: NotificationPreferences,
    slot: str,
    now: datetime,
) -> datetime:
    """Next occurrence of the morning/evening reminder time after `now`."""
    at = parse_hhmm(getattr(preferences.reminder_times, slot)) or time(8, 0)
    candidate = now.replace(hour=at.hour, minute=at.minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate
