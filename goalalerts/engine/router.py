"""HTTP routes for the notification queue, preferences and detection triggers."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from goalalerts.auth import verify_api_key
from goalalerts.engine import gate
from goalalerts.engine.models import (
    CheckRequest,
    CheckResponse,
    Notification,
    NotificationPreferences,
    PermissionState,
    ReminderType,
    SummaryPeriod,
    SummaryRequest,
    SummaryResponse,
)
from goalalerts.engine.service import NotificationService, build_service

router = APIRouter(prefix="/notifications", tags=["notifications"], dependencies=[Depends(verify_api_key)])

_service: NotificationService | None = None


def get_service() -> NotificationService:
    global _service
    if _service is None:
        _service = build_service()
    return _service


# ---------------------------------------------------------------------------
# /notifications queue
# ---------------------------------------------------------------------------


@router.get("", response_model=list[Notification])
async def list_notifications(service: NotificationService = Depends(get_service)) -> list[Notification]:
    return await service.list_notifications()


@router.get("/unread-count")
async def unread_count(service: NotificationService = Depends(get_service)) -> dict[str, int]:
    return {"unread": await service.get_unread_count()}


@router.post("/{notification_id}/read")
async def mark_read(notification_id: str, service: NotificationService = Depends(get_service)) -> dict:
    if not await service.mark_as_read(notification_id):
        raise HTTPException(status_code=404, detail=f"Unknown notification: {notification_id}")
    return {"id": notification_id, "read": True}


@router.post("/{notification_id}/dismiss")
async def dismiss(notification_id: str, service: NotificationService = Depends(get_service)) -> dict:
    if not await service.dismiss_notification(notification_id):
        raise HTTPException(status_code=404, detail=f"Unknown notification: {notification_id}")
    return {"id": notification_id, "dismissed": True}


@router.delete("")
async def clear_all(service: NotificationService = Depends(get_service)) -> dict[str, int]:
    await service.clear_all_notifications()
    return {"unread": await service.get_unread_count()}


@router.get("/toasts")
async def active_toasts(service: NotificationService = Depends(get_service)) -> list[dict]:
    return [
        {
            "message": t.message,
            "severity": t.severity,
            "created_at": t.created_at.isoformat(),
            "expires_at": t.expires_at.isoformat(),
        }
        for t in service.toasts.active()
    ]


# ---------------------------------------------------------------------------
# /notifications/preferences & permission
# ---------------------------------------------------------------------------


@router.get("/preferences", response_model=NotificationPreferences)
async def get_preferences(service: NotificationService = Depends(get_service)) -> NotificationPreferences:
    return await service.get_preferences()


@router.patch("/preferences", response_model=NotificationPreferences)
async def update_preferences(
    partial: dict[str, Any] = Body(...),
    service: NotificationService = Depends(get_service),
) -> NotificationPreferences:
    try:
        return await service.update_preferences(partial)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False))


@router.post("/permission")
async def request_permission(service: NotificationService = Depends(get_service)) -> dict[str, PermissionState]:
    return {"permission": await service.request_permission()}


# ---------------------------------------------------------------------------
# Detection triggers
# ---------------------------------------------------------------------------


@router.post("/check", response_model=CheckResponse)
async def run_check(
    payload: CheckRequest,
    service: NotificationService = Depends(get_service),
) -> CheckResponse:
    """Goal/run refresh: milestone, deadline and streak detection in one pass."""
    notifications = await service.check_goals(payload.goals, payload.progress)
    streak = None
    if payload.run_dates:
        streak, sent = await service.check_streak(payload.run_dates)
        if sent is not None:
            notifications.append(sent)
    return CheckResponse(notifications=notifications, streak=streak)


@router.post("/summary/{period}", response_model=SummaryResponse)
async def send_summary(
    period: SummaryPeriod,
    payload: SummaryRequest,
    service: NotificationService = Depends(get_service),
) -> SummaryResponse:
    stats, notification = await service.send_summary(period, payload.goals, payload.progress)
    return SummaryResponse(stats=stats, notification=notification)


@router.get("/reminders/next")
async def next_reminders(service: NotificationService = Depends(get_service)) -> dict[str, str]:
    prefs = await service.get_preferences()
    now = service.clock.now()
    return {slot: gate.next_reminder_time(prefs, slot, now).isoformat() for slot in ("morning", "evening")}


@router.post("/reminders/{reminder_type}")
async def send_reminder(
    reminder_type: ReminderType,
    service: NotificationService = Depends(get_service),
) -> dict:
    notification = await service.notify_reminder(reminder_type)
    return {"queued": notification is not None, "id": notification.id if notification else None}


@router.delete("/goals/{goal_id}/state")
async def forget_goal(goal_id: str, service: NotificationService = Depends(get_service)) -> dict[str, str]:
    await service.forget_goal(goal_id)
    return {"goal_id": goal_id, "status": "cleared"}
