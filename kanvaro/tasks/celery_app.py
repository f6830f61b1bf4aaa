"""Celery app and periodic cleanup tasks."""

from celery import Celery
from celery.schedules import crontab

from kanvaro.core.config import settings

celery_app = Celery(
    "kanvaro",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_soft_time_limit=300,
    task_time_limit=600,
)

celery_app.conf.beat_schedule = {
    "cleanup-expired-timers": {
        "task": "cleanup_expired_timers",
        "schedule": settings.TIMER_CLEANUP_INTERVAL_MINUTES * 60.0,
    },
    "cleanup-notifications": {
        "task": "cleanup_notifications",
        "schedule": crontab(hour=3, minute=0),
    },
}


@celery_app.task(name="cleanup_expired_timers")
def cleanup_expired_timers() -> dict:
    """Force-stop timers past their session cap.

    Workers have no SSE clients, so notifications are stored without a live push.
    """
    from kanvaro.db.session import SessionLocal
    from kanvaro.services.timer_service import timer_service

    db = SessionLocal()
    try:
        result = timer_service.cleanup_expired_timers(db)
        result.pop("results", None)
        return result
    finally:
        db.close()


@celery_app.task(name="cleanup_notifications")
def cleanup_notifications() -> dict:
    """Delete notifications past each organization's retention window."""
    from kanvaro.db.session import SessionLocal
    from kanvaro.services.notification_service import notification_service

    db = SessionLocal()
    try:
        details = notification_service.cleanup_expired(db)
        return {"deleted": sum(d["deleted_count"] for d in details), "details": details}
    finally:
        db.close()
