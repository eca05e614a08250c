"""Notification engine contract — Pydantic v2 models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_notification_id() -> str:
    return f"notification-{uuid.uuid4().hex[:12]}"


# ---------------------------------------------------------------------------
# Goals & progress (read model supplied by the tracker)
# ---------------------------------------------------------------------------


class GoalType(str, Enum):
    distance = "distance"
    pace = "pace"
    time = "time"
    frequency = "frequency"
    longest_run = "longest_run"


class GoalPeriod(str, Enum):
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"
    custom = "custom"


class Goal(BaseModel):
    id: str
    title: str
    type: GoalType
    period: GoalPeriod = GoalPeriod.custom
    target_value: float
    target_unit: str = ""
    start_date: datetime
    end_date: datetime
    current_value: float = Field(default=0.0, ge=0.0)
    is_active: bool = True
    is_completed: bool = False
    completed_at: datetime | None = None
    color: str | None = None
    icon: str | None = None

    # The tracker API sends upper-case enum names ("DISTANCE", "LONGEST_RUN")
    @field_validator("type", "period", mode="before")
    @classmethod
    def _lower_enum(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("start_date", "end_date", "completed_at")
    @classmethod
    def _assume_utc(cls, v):
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class GoalProgress(BaseModel):
    goal_id: str
    current_value: float = 0.0
    progress_percentage: float = 0.0  # unclamped; may exceed 100
    remaining_value: float = 0.0
    days_remaining: int = 0  # negative = overdue
    is_completed: bool = False

    @property
    def display_percentage(self) -> float:
        return min(100.0, max(0.0, self.progress_percentage))


# ---------------------------------------------------------------------------
# Notifications: closed union discriminated by `type`
# ---------------------------------------------------------------------------


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class StreakType(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class SummaryPeriod(str, Enum):
    weekly = "weekly"
    monthly = "monthly"


class ReminderType(str, Enum):
    goal_check_in = "goal_check_in"
    missed_run = "missed_run"
    weekly_planning = "weekly_planning"


class BaseNotification(BaseModel):
    id: str = Field(default_factory=_new_notification_id)
    priority: Priority
    title: str
    message: str
    timestamp: datetime = Field(default_factory=_utcnow)
    read: bool = False
    dismissed: bool = False
    goal_id: str | None = None
    action_url: str | None = None
    icon: str | None = None
    color: str | None = None


class MilestoneNotification(BaseNotification):
    type: Literal["milestone"] = "milestone"
    milestone_percentage: int
    current_progress: float
    target_value: float
    goal_title: str


class DeadlineNotification(BaseNotification):
    type: Literal["deadline"] = "deadline"
    days_remaining: int
    goal_title: str
    goal_end_date: datetime
    current_progress: float
    target_value: float


class StreakNotification(BaseNotification):
    type: Literal["streak"] = "streak"
    streak_count: int
    streak_type: StreakType = StreakType.daily
    goal_title: str | None = None


class SummaryNotification(BaseNotification):
    type: Literal["summary"] = "summary"
    summary_period: SummaryPeriod
    goals_completed: int
    total_goals: int
    average_progress: float
    top_performing_goal: str | None = None


class ReminderNotification(BaseNotification):
    type: Literal["reminder"] = "reminder"
    reminder_type: ReminderType
    scheduled_for: datetime


Notification = Annotated[
    Union[
        MilestoneNotification,
        DeadlineNotification,
        StreakNotification,
        SummaryNotification,
        ReminderNotification,
    ],
    Field(discriminator="type"),
]

NOTIFICATION_LIST = TypeAdapter(list[Notification])


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------

_HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class ReminderTimes(BaseModel):
    model_config = {"extra": "ignore"}

    morning: str = Field(default="08:00", pattern=_HHMM)
    evening: str = Field(default="18:00", pattern=_HHMM)


class QuietHours(BaseModel):
    model_config = {"extra": "ignore"}

    enabled: bool = True
    start: str = Field(default="22:00", pattern=_HHMM)
    end: str = Field(default="08:00", pattern=_HHMM)


class SummaryFrequency(str, Enum):
    weekly = "weekly"
    monthly = "monthly"
    both = "both"


class NotificationPreferences(BaseModel):
    model_config = {"extra": "ignore"}

    enable_browser_notifications: bool = False
    enable_milestone_notifications: bool = True
    enable_deadline_reminders: bool = True
    enable_streak_notifications: bool = True
    enable_summary_notifications: bool = True
    enable_reminder_notifications: bool = False
    deadline_reminder_days: list[int] = Field(default_factory=lambda: [7, 3, 1])
    reminder_times: ReminderTimes = Field(default_factory=ReminderTimes)
    summary_frequency: SummaryFrequency = SummaryFrequency.weekly
    enable_sounds: bool = True
    quiet_hours: QuietHours = Field(default_factory=QuietHours)


# ---------------------------------------------------------------------------
# Detector / analytics results
# ---------------------------------------------------------------------------


class MilestoneCheckResult(BaseModel):
    new_milestones: list[int] = Field(default_factory=list)
    has_new_milestones: bool = False
    next_milestone: int | None = None
    progress_to_next_milestone: float = 0.0


class DeadlineCheckResult(BaseModel):
    should_notify: bool
    days_remaining: int
    is_urgent: bool
    notification_level: Literal["info", "warning", "urgent"]


class StreakInfo(BaseModel):
    current_streak: int = 0
    longest_streak: int = 0
    streak_type: StreakType = StreakType.daily
    is_new_record: bool = False
    should_celebrate: bool = False


class GoalStats(BaseModel):
    goals_completed: int = 0
    total_goals: int = 0
    average_progress: float = 0.0
    top_performing_goal: str | None = None
    struggling_goals: list[str] = Field(default_factory=list)
    improvement_suggestions: list[str] = Field(default_factory=list)


class PermissionState(str, Enum):
    granted = "granted"
    denied = "denied"
    default = "default"


# ---------------------------------------------------------------------------
# HTTP payloads
# ---------------------------------------------------------------------------


class CheckRequest(BaseModel):
    goals: list[Goal] = Field(default_factory=list)
    progress: list[GoalProgress] = Field(default_factory=list)
    run_dates: list[str] = Field(default_factory=list)


class CheckResponse(BaseModel):
    notifications: list[Notification] = Field(default_factory=list)
    streak: StreakInfo | None = None


class SummaryRequest(BaseModel):
    goals: list[Goal] = Field(default_factory=list)
    progress: list[GoalProgress] = Field(default_factory=list)


class SummaryResponse(BaseModel):
    stats: GoalStats
    notification: Notification | None = None
