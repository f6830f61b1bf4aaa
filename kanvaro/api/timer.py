"""Time-tracking timer API router."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kanvaro.core.security import CurrentUser, RequirePermission
from kanvaro.db.session import get_db
from kanvaro.permissions.catalog import Permission
from kanvaro.schemas.schemas import ActiveTimerOut, TimeEntryOut, TimerAction, TimerStart, TimerUpdate
from kanvaro.services.notification_broadcaster import NotificationBroadcaster, get_broadcaster
from kanvaro.services.timer_service import timer_service, timer_to_dict

router = APIRouter(prefix="/time-tracking", tags=["time-tracking"])

can_track = RequirePermission(Permission.TIME_TRACKING_CREATE)


@router.get("/timer")
async def get_timer(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(can_track),
):
    """Caller's active timer with its live duration, or null."""
    timer = timer_service.get_active_timer(db, user.id, user.organization_id)
    if not timer:
        return {"active_timer": None}
    return {"active_timer": ActiveTimerOut(**timer_to_dict(timer))}


@router.post("/timer")
async def start_timer(
    body: TimerStart,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(can_track),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
):
    """Start a timer on a project."""
    timer = timer_service.start_timer(db, user.id, user.organization_id, body, broadcaster)
    return {
        "message": "Timer started successfully",
        "active_timer": ActiveTimerOut(**timer_to_dict(timer)),
    }


@router.put("/timer")
async def update_timer(
    body: TimerUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(can_track),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
):
    """Pause, resume, stop or edit the caller's timer."""
    if body.action is TimerAction.stop:
        result = timer_service.stop(
            db, user.id, user.organization_id,
            description=body.description, category=body.category, tags=body.tags,
            broadcaster=broadcaster,
        )
        entry = result["time_entry"]
        result["time_entry"] = TimeEntryOut.model_validate(entry) if entry else None
        return result

    if body.action is TimerAction.pause:
        timer = timer_service.pause(db, user.id, user.organization_id)
    elif body.action is TimerAction.resume:
        timer = timer_service.resume(db, user.id, user.organization_id)
    else:
        timer = timer_service.update(
            db, user.id, user.organization_id,
            description=body.description, category=body.category, tags=body.tags,
        )
    return {
        "message": "Timer updated successfully",
        "active_timer": ActiveTimerOut(**timer_to_dict(timer)),
    }
