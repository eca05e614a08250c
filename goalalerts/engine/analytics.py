"""Goal analytics for periodic summary notifications. Recomputed on demand."""

from __future__ import annotations

from datetime import datetime

from goalalerts.engine import features
from goalalerts.engine.models import Goal, GoalProgress, GoalStats

STRUGGLING_PROGRESS_PCT = 25.0
STRUGGLING_ELAPSED_PCT = 50.0
BEHIND_SCHEDULE_MARGIN_PCT = 10.0
LOW_AVERAGE_PCT = 30.0
HIGH_AVERAGE_PCT = 80.0


def improvement_suggestions(
    active_goals: list[Goal],
    progress_by_goal: dict[str, GoalProgress],
    average_progress: float,
    now: datetime,
) -> list[str]:
    suggestions: list[str] = []

    behind = 0
    for goal in active_goals:
        progress = progress_by_goal.get(goal.id)
        if progress is None:
            continue
        elapsed = features.time_elapsed_pct(goal.start_date, goal.end_date, now)
        if progress.progress_percentage < elapsed - BEHIND_SCHEDULE_MARGIN_PCT:
            behind += 1
    if behind > 0:
        suggestions.append(
            f"{behind} goal(s) are behind schedule. "
            "Consider adjusting targets or increasing frequency."
        )

    if average_progress < LOW_AVERAGE_PCT:
        suggestions.append("Overall progress is low. Try setting smaller, more achievable milestones.")
    elif average_progress > HIGH_AVERAGE_PCT:
        suggestions.append("Great progress! Consider setting more challenging goals to keep growing.")

    if len({goal.type for goal in active_goals}) == 1:
        suggestions.append(
            "Consider diversifying your goals with different types (distance, time, frequency, pace)."
        )

    return suggestions


def calculate_goal_stats(
    goals: list[Goal],
    progresses: list[GoalProgress],
    now: datetime,
) -> GoalStats:
    """Summarize completion, average progress, leaders and laggards.

    total_goals counts every goal flagged active; averages, the top performer
    and struggling goals consider active goals that are not yet completed.
    Goals without a progress snapshot count as 0%.
    """
    progress_by_goal = {p.goal_id: p for p in progresses}
    active = [g for g in goals if g.is_active and not g.is_completed]

    values = [
        progress_by_goal[g.id].progress_percentage if g.id in progress_by_goal else 0.0
        for g in active
    ]
    average = sum(values) / len(values) if values else 0.0

    top: str | None = None
    highest = 0.0
    for goal in active:
        progress = progress_by_goal.get(goal.id)
        if progress is not None and progress.progress_percentage > highest:
            highest = progress.progress_percentage
            top = goal.title

    struggling = [
        goal.title
        for goal in active
        if goal.id in progress_by_goal
        and progress_by_goal[goal.id].progress_percentage < STRUGGLING_PROGRESS_PCT
        and features.time_elapsed_pct(goal.start_date, goal.end_date, now) > STRUGGLING_ELAPSED_PCT
    ]

    return GoalStats(
        goals_completed=sum(1 for g in goals if g.is_completed),
        total_goals=sum(1 for g in goals if g.is_active),
        average_progress=average,
        top_performing_goal=top,
        struggling_goals=struggling,
        improvement_suggestions=improvement_suggestions(active, progress_by_goal, average, now),
    )
