"""Cron endpoints for external schedulers."""

from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from kanvaro.core.config import settings
from kanvaro.core.exceptions import unauthorized
from kanvaro.db.session import get_db
from kanvaro.services.notification_broadcaster import NotificationBroadcaster, get_broadcaster
from kanvaro.services.notification_service import notification_service
from kanvaro.services.timer_service import timer_service

router = APIRouter(prefix="/cron", tags=["cron"])


async def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Require ``Bearer <CRON_SECRET>`` when a secret is configured."""
    secret = settings.CRON_SECRET
    if secret and authorization != f"Bearer {secret}":
        raise unauthorized("Unauthorized")


@router.get("/timer-cleanup", dependencies=[Depends(verify_cron_secret)])
async def timer_cleanup(
    db: Session = Depends(get_db),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
):
    """Stop timers that exceeded their session cap."""
    result = timer_service.cleanup_expired_timers(db, broadcaster)
    return {
        "success": True,
        "message": (
            f"Timer cleanup completed. Stopped: {result['stopped']}, "
            f"Skipped: {result['skipped']}, Errors: {result['errors']}"
        ),
        "summary": {
            "total_checked": result["total_checked"],
            "stopped": result["stopped"],
            "skipped": result["skipped"],
            "errors": result["errors"],
        },
        "results": result["results"],
    }


@router.get("/notification-cleanup", dependencies=[Depends(verify_cron_secret)])
async def notification_cleanup(db: Session = Depends(get_db)):
    """Delete notifications past each organization's retention window."""
    details = notification_service.cleanup_expired(db)
    total = sum(d["deleted_count"] for d in details)
    return {
        "success": True,
        "message": (
            f"Notification cleanup completed. Deleted {total} old notifications "
            f"across {len(details)} organizations"
        ),
        "details": details,
    }
