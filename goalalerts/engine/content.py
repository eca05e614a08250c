"""Notification text — pure functions, one per notification type."""

from __future__ import annotations

from dataclasses import dataclass

from goalalerts.engine.features import percent_of, round_half_up


@dataclass(frozen=True, slots=True)
class Content:
    title: str
    message: str
    icon: str


MILESTONE_ICONS: dict[int, str] = {25: "🌟", 50: "⭐", 75: "🔥", 100: "🏆"}
DEFAULT_MILESTONE_ICON = "📈"

# Ascending: the highest level not exceeding the streak wins
STREAK_ICONS: tuple[tuple[int, str], ...] = (
    (3, "🔥"),
    (7, "⚡"),
    (14, "💪"),
    (21, "🏃‍♂️"),
    (30, "🏆"),
)
DEFAULT_STREAK_ICON = "🔥"

STREAK_UNITS = {"daily": "day", "weekly": "week", "monthly": "month"}

REMINDERS: dict[str, Content] = {
    "goal_check_in": Content(
        title="🎯 Goal Check-in Time",
        message="How are your running goals progressing? Log a run or review your targets.",
        icon="🎯",
    ),
    "missed_run": Content(
        title="🏃‍♂️ Haven't seen you lately",
        message="It's been a while since your last run. Every step counts toward your goals!",
        icon="🏃‍♂️",
    ),
    "weekly_planning": Content(
        title="📅 Weekly Goal Planning",
        message="Time to plan your running week! Set or adjust your goals for maximum success.",
        icon="📅",
    ),
}
GENERIC_REMINDER = Content(
    title="💭 Reminder",
    message="Don't forget about your running goals!",
    icon="💭",
)


def format_number(value: float) -> str:
    """30.0 -> "30", 12.3456 -> "12.35"."""
    if float(value).is_integer():
        return str(int(value))
    return str(round(value, 2))


def milestone_content(
    goal_title: str,
    percentage: int,
    current: float,
    target: float,
    unit: str,
) -> Content:
    icon = MILESTONE_ICONS.get(percentage, DEFAULT_MILESTONE_ICON)
    return Content(
        title=f"{percentage}% Complete! {icon}",
        message=(
            f'You\'ve reached {percentage}% of your "{goal_title}" goal! '
            f"{format_number(current)}/{format_number(target)} {unit} completed."
        ),
        icon=icon,
    )


def deadline_content(
    goal_title: str,
    days_remaining: int,
    current: float,
    target: float,
    unit: str,
) -> Content:
    if days_remaining == 0:
        icon, title = "⏰", "⏰ Goal Deadline Today!"
    elif days_remaining == 1:
        icon, title = "📅", "📅 Goal Ends Tomorrow"
    elif days_remaining <= 3:
        icon, title = "⚠️", f"⚠️ {days_remaining} Days Left"
    else:
        icon, title = "📋", f"📋 {days_remaining} Days Remaining"

    pct = round_half_up(percent_of(current, target))
    message = (
        f'"{goal_title}" - {pct}% complete '
        f"({format_number(current)}/{format_number(target)} {unit}). Keep pushing!"
    )
    return Content(title=title, message=message, icon=icon)


def streak_content(count: int, streak_type: str, goal_title: str | None = None) -> Content:
    icon = DEFAULT_STREAK_ICON
    for level, level_icon in STREAK_ICONS:
        if count >= level:
            icon = level_icon

    unit = STREAK_UNITS.get(streak_type, "month")
    noun = f"{unit}s" if count > 1 else unit

    message = f"Amazing consistency! You've maintained your running streak for {count} {noun}."
    if goal_title:
        message += f' Keep it up with "{goal_title}"!'

    return Content(title=f"{icon} {count} {noun.capitalize()} Streak!", message=message, icon=icon)


def summary_content(
    period: str,
    goals_completed: int,
    total_goals: int,
    average_progress: float,
    top_goal: str | None = None,
) -> Content:
    label = "Week" if period == "weekly" else "Month"
    completion_rate = round_half_up(goals_completed / total_goals * 100) if total_goals > 0 else 0

    message = (
        f"{goals_completed}/{total_goals} goals completed ({completion_rate}%). "
        f"Average progress: {round_half_up(average_progress)}%."
    )
    if top_goal:
        message += f' Top performer: "{top_goal}".'

    return Content(title=f"📊 {label} Summary", message=message, icon="📊")


def reminder_content(reminder_type: str) -> Content:
    return REMINDERS.get(reminder_type, GENERIC_REMINDER)
