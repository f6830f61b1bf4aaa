"""Active timer lifecycle and the expired-timer sweep."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from kanvaro.core.exceptions import (
    AuthorizationError,
    ResourceConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from kanvaro.models.organization import Organization
from kanvaro.models.project import Project
from kanvaro.models.time_tracking import ActiveTimer, TimeEntry, TimeTrackingSettings
from kanvaro.models.user import User
from kanvaro.schemas.schemas import NotificationCreate, TimerStart
from kanvaro.services.audit_service import audit_service
from kanvaro.services.notification_broadcaster import NotificationBroadcaster
from kanvaro.services.notification_service import notification_service
from kanvaro.services.timer_math import (
    apply_rounding_rules,
    format_duration,
    pause_minutes,
    timer_duration,
    utcnow,
)

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = 60


@dataclass
class EffectiveSettings:
    """Time-tracking rules after project → organization fallback."""

    allow_time_tracking: bool = True
    require_approval: bool = False
    require_description: bool = False
    default_hourly_rate: Optional[float] = None
    max_session_hours: Optional[int] = 8
    max_daily_hours: int = 8
    max_weekly_hours: int = 40
    allow_overtime: bool = False
    rounding_enabled: bool = False
    rounding_increment: int = 15
    rounding_round_up: bool = True
    notify_on_timer_start: bool = False
    notify_on_timer_stop: bool = True
    notify_on_overtime: bool = True
    notify_on_approval_needed: bool = True
    notify_on_time_submitted: bool = True

    @classmethod
    def from_row(cls, row, organization: Optional[Organization]) -> "EffectiveSettings":
        fields = {
            name: getattr(row, name)
            for name in (
                "allow_time_tracking", "require_approval", "require_description",
                "default_hourly_rate", "max_session_hours", "max_daily_hours",
                "max_weekly_hours", "allow_overtime", "rounding_enabled",
                "rounding_increment", "rounding_round_up",
            )
        }
        if organization is not None:
            for flag in (
                "notify_on_timer_start", "notify_on_timer_stop", "notify_on_overtime",
                "notify_on_approval_needed", "notify_on_time_submitted",
            ):
                fields[flag] = getattr(organization, flag)
        return cls(**fields)

    def round(self, duration: float) -> int:
        return apply_rounding_rules(
            duration, self.rounding_enabled, self.rounding_increment, self.rounding_round_up
        )


def timer_to_dict(timer: ActiveTimer, now: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "id": timer.id,
        "user_id": timer.user_id,
        "project_id": timer.project_id,
        "task_id": timer.task_id,
        "description": timer.description,
        "start_time": timer.start_time,
        "paused_at": timer.paused_at,
        "total_paused_duration": timer.total_paused_duration,
        "category": timer.category,
        "tags": timer.tags,
        "is_billable": timer.is_billable,
        "hourly_rate": timer.hourly_rate,
        "max_session_hours": timer.max_session_hours,
        "current_duration": timer_duration(timer, now),
        "is_paused": timer.paused_at is not None,
    }


class TimerService:
    """Start, pause, resume, update and stop per-user timers."""

    @staticmethod
    def get_effective_settings(
        db: Session, organization_id: int, project_id: Optional[int] = None
    ) -> EffectiveSettings:
        organization = db.query(Organization).filter(Organization.id == organization_id).first()
        row = None
        if project_id is not None:
            row = (
                db.query(TimeTrackingSettings)
                .filter(
                    TimeTrackingSettings.organization_id == organization_id,
                    TimeTrackingSettings.project_id == project_id,
                )
                .first()
            )
        if row is None:
            row = (
                db.query(TimeTrackingSettings)
                .filter(
                    TimeTrackingSettings.organization_id == organization_id,
                    TimeTrackingSettings.project_id.is_(None),
                )
                .first()
            )
        if row is not None:
            return EffectiveSettings.from_row(row, organization)
        if organization is not None:
            return EffectiveSettings.from_row(organization, organization)
        return EffectiveSettings()

    @staticmethod
    def get_active_timer(db: Session, user_id: int, organization_id: int) -> Optional[ActiveTimer]:
        return (
            db.query(ActiveTimer)
            .filter(ActiveTimer.user_id == user_id, ActiveTimer.organization_id == organization_id)
            .first()
        )

    @staticmethod
    def _require_timer(db: Session, user_id: int, organization_id: int) -> ActiveTimer:
        timer = TimerService.get_active_timer(db, user_id, organization_id)
        if not timer:
            raise ResourceNotFoundError("No active timer found")
        return timer

    @staticmethod
    def _notify(
        db: Session,
        broadcaster: Optional[NotificationBroadcaster],
        timer_user_id: int,
        organization_id: int,
        title: str,
        message: str,
        entity_id: int,
        action: str,
        priority: str,
        url: str,
    ) -> None:
        notification_service.create_notification(
            db,
            timer_user_id,
            organization_id,
            NotificationCreate(
                type="time_tracking",
                title=title,
                message=message,
                data={
                    "entityType": "time_entry",
                    "entityId": str(entity_id),
                    "action": action,
                    "priority": priority,
                    "url": url,
                },
                # alerts that need action also go out by email
                send_email=priority != "low",
            ),
            broadcaster,
        )

    @staticmethod
    def start_timer(
        db: Session,
        user_id: int,
        organization_id: int,
        data: TimerStart,
        broadcaster: Optional[NotificationBroadcaster] = None,
        now: Optional[datetime] = None,
    ) -> ActiveTimer:
        """Start a timer on a project.

        Raises:
            ResourceConflictError: The user already has an active timer.
            AuthorizationError: Time tracking is disabled for the project.
            ValidationError: A description is required but missing.
        """
        if TimerService.get_active_timer(db, user_id, organization_id):
            raise ResourceConflictError("User already has an active timer")

        project = (
            db.query(Project)
            .filter(Project.id == data.project_id, Project.organization_id == organization_id)
            .first()
        )
        if not project or not project.allow_time_tracking:
            raise AuthorizationError("Time tracking not allowed for this project")

        settings = TimerService.get_effective_settings(db, organization_id, project.id)
        if not settings.allow_time_tracking:
            raise AuthorizationError("Time tracking not enabled")

        description = (data.description or "").strip()
        if settings.require_description and not description:
            raise ValidationError("Description is required for time entries")

        user = db.query(User).filter(User.id == user_id).first()
        hourly_rate = data.hourly_rate or (user.billing_rate if user else None) or settings.default_hourly_rate

        now = now or utcnow()
        timer = ActiveTimer(
            user_id=user_id,
            organization_id=organization_id,
            project_id=project.id,
            task_id=data.task_id,
            description=description,
            start_time=now,
            total_paused_duration=0,
            category=data.category,
            is_billable=data.is_billable,
            hourly_rate=hourly_rate,
            max_session_hours=settings.max_session_hours,
            last_activity=now,
        )
        timer.tags = data.tags
        db.add(timer)
        db.commit()
        db.refresh(timer)
        logger.info("Timer %s started by user %s on project %s", timer.id, user_id, project.id)

        if settings.notify_on_timer_start:
            suffix = f": {description}" if description else ""
            TimerService._notify(
                db, broadcaster, user_id, organization_id,
                "Timer Started", f'Timer started for project "{project.name}"{suffix}',
                timer.id, "created", "low", "/time-tracking/timer",
            )
        return timer

    @staticmethod
    def pause(db: Session, user_id: int, organization_id: int, now: Optional[datetime] = None) -> ActiveTimer:
        timer = TimerService._require_timer(db, user_id, organization_id)
        if timer.paused_at is not None:
            raise ValidationError("Timer is already paused")
        timer.paused_at = now or utcnow()
        timer.last_activity = timer.paused_at
        db.commit()
        return timer

    @staticmethod
    def resume(db: Session, user_id: int, organization_id: int, now: Optional[datetime] = None) -> ActiveTimer:
        timer = TimerService._require_timer(db, user_id, organization_id)
        if timer.paused_at is None:
            raise ValidationError("Timer is not paused")
        now = now or utcnow()
        timer.total_paused_duration = (timer.total_paused_duration or 0) + pause_minutes(timer.paused_at, now)
        timer.paused_at = None
        timer.last_activity = now
        db.commit()
        return timer

    @staticmethod
    def update(
        db: Session,
        user_id: int,
        organization_id: int,
        description: Optional[str] = None,
        category: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> ActiveTimer:
        timer = TimerService._require_timer(db, user_id, organization_id)
        if description:
            timer.description = description
        if category:
            timer.category = category
        if tags:
            timer.tags = tags
        timer.last_activity = utcnow()
        db.commit()
        return timer

    @staticmethod
    def stop(
        db: Session,
        user_id: int,
        organization_id: int,
        description: Optional[str] = None,
        category: Optional[str] = None,
        tags: Optional[List[str]] = None,
        broadcaster: Optional[NotificationBroadcaster] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Stop the timer and record a time entry.

        A stop that logs zero minutes deletes the timer without an entry.
        """
        timer = TimerService._require_timer(db, user_id, organization_id)
        settings = TimerService.get_effective_settings(db, organization_id, timer.project_id)
        now = now or utcnow()

        final_description = description or timer.description
        if settings.require_description and not (final_description or "").strip():
            raise ValidationError("Description is required for time entries")

        duration = timer_duration(timer, now)
        final_duration = settings.round(duration)
        notifications_sent = {
            "timer_stop": False,
            "overtime": False,
            "approval_needed": False,
            "time_submitted": False,
        }

        if final_duration <= 0:
            db.delete(timer)
            db.commit()
            return {
                "message": "Timer stopped. No time was logged (0 minutes).",
                "time_entry": None,
                "has_time_logged": False,
                "duration": 0,
                "notifications_sent": notifications_sent,
            }

        hours_logged = final_duration / MINUTES_PER_HOUR
        is_overtime = not settings.allow_overtime and (
            hours_logged > (settings.max_daily_hours or 8)
            or hours_logged > (settings.max_weekly_hours or 40)
        )
        project = db.query(Project).filter(Project.id == timer.project_id).first()
        requires_approval = settings.require_approval or bool(project and project.require_approval)

        entry = TimeEntry(
            user_id=timer.user_id,
            organization_id=timer.organization_id,
            project_id=timer.project_id,
            task_id=timer.task_id,
            description=final_description,
            start_time=timer.start_time,
            end_time=now,
            duration=final_duration,
            is_billable=timer.is_billable,
            hourly_rate=timer.hourly_rate,
            status="pending" if requires_approval else "completed",
            category=category or timer.category,
            tags_json=timer.tags_json,
            is_approved=not requires_approval,
        )
        if tags:
            entry.tags_json = json.dumps(tags)
        db.add(entry)
        db.delete(timer)
        db.commit()
        db.refresh(entry)
        logger.info("Timer stopped for user %s, logged %d minutes", user_id, final_duration)

        project_name = project.name if project else "Unknown Project"
        formatted = format_duration(final_duration)

        if settings.notify_on_timer_stop:
            TimerService._notify(
                db, broadcaster, user_id, organization_id,
                "Timer Stopped", f'Timer stopped for project "{project_name}". Logged {formatted}.',
                entry.id, "updated", "low", "/time-tracking/logs",
            )
            notifications_sent["timer_stop"] = True
        if is_overtime and settings.notify_on_overtime:
            TimerService._notify(
                db, broadcaster, user_id, organization_id,
                "Overtime Alert",
                f'Overtime detected: {formatted} logged for project "{project_name}". '
                "This exceeds the daily/weekly limit.",
                entry.id, "updated", "high", "/time-tracking/logs",
            )
            notifications_sent["overtime"] = True
        if requires_approval and settings.notify_on_approval_needed:
            TimerService._notify(
                db, broadcaster, user_id, organization_id,
                "Approval Required",
                f'Time entry for project "{project_name}" ({formatted}) requires approval.',
                entry.id, "updated", "medium", "/time-tracking/logs",
            )
            notifications_sent["approval_needed"] = True
        if not requires_approval and settings.notify_on_time_submitted:
            TimerService._notify(
                db, broadcaster, user_id, organization_id,
                "Time Submitted",
                f'Time entry for project "{project_name}" ({formatted}) has been submitted successfully.',
                entry.id, "created", "low", "/time-tracking/logs",
            )
            notifications_sent["time_submitted"] = True

        return {
            "message": "Timer stopped successfully",
            "time_entry": entry,
            "has_time_logged": True,
            "duration": final_duration,
            "notifications_sent": notifications_sent,
        }

    @staticmethod
    def _force_stop(
        db: Session,
        timer: ActiveTimer,
        settings: EffectiveSettings,
        broadcaster: Optional[NotificationBroadcaster],
        cap_hours: int,
    ) -> TimeEntry:
        user_id, organization_id, project_id = timer.user_id, timer.organization_id, timer.project_id
        cap_minutes = cap_hours * MINUTES_PER_HOUR
        end_time = timer.start_time + timedelta(
            minutes=cap_minutes + (timer.total_paused_duration or 0)
        )
        # rounding up must not push the entry past the cap
        final_duration = min(settings.round(cap_minutes), cap_minutes)

        project = db.query(Project).filter(Project.id == timer.project_id).first()
        requires_approval = settings.require_approval or bool(project and project.require_approval)

        entry = TimeEntry(
            user_id=timer.user_id,
            organization_id=timer.organization_id,
            project_id=timer.project_id,
            task_id=timer.task_id,
            description=timer.description or "Auto-stopped timer",
            start_time=timer.start_time,
            end_time=end_time,
            duration=final_duration,
            is_billable=timer.is_billable,
            hourly_rate=timer.hourly_rate,
            status="pending" if requires_approval else "completed",
            category=timer.category,
            tags_json=timer.tags_json,
            is_approved=not requires_approval,
        )
        db.add(entry)
        db.delete(timer)
        audit_service.record(
            db, organization_id, "timer.force_stopped", "active_timer", timer.id,
            after={"user_id": user_id, "duration": final_duration, "end_time": end_time},
            commit=False,
        )
        db.commit()
        db.refresh(entry)

        if final_duration > 0:
            project_name = project.name if project else "Unknown Project"
            formatted = format_duration(final_duration)
            url = f"/projects/{project_id}"
            if settings.notify_on_timer_stop:
                TimerService._notify(
                    db, broadcaster, user_id, organization_id,
                    "Timer Auto-Stopped",
                    f'Timer auto-stopped for project "{project_name}" after reaching the '
                    f"session limit. Logged {formatted}.",
                    entry.id, "created", "medium", url,
                )
            if requires_approval and settings.notify_on_approval_needed:
                TimerService._notify(
                    db, broadcaster, user_id, organization_id,
                    "Time Entry Requires Approval",
                    f'Your time entry for "{project_name}" ({formatted}) requires approval.',
                    entry.id, "updated", "medium", url,
                )
        return entry

    @staticmethod
    def cleanup_expired_timers(
        db: Session,
        broadcaster: Optional[NotificationBroadcaster] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Force-stop timers that ran past their session cap.

        Only timers whose settings disallow overtime are enforced. The cap is
        the ``max_session_hours`` stored on the timer at start, falling back
        to the current effective setting. Failures are reported per timer.
        """
        now = now or utcnow()
        timers = db.query(ActiveTimer).all()
        results = []
        stopped = skipped = errors = 0

        for timer in timers:
            timer_id = timer.id
            try:
                settings = TimerService.get_effective_settings(
                    db, timer.organization_id, timer.project_id
                )
                # the cap in force when the timer started wins over later changes
                cap_hours = timer.max_session_hours or settings.max_session_hours
                if settings.allow_overtime or not cap_hours:
                    skipped += 1
                    continue
                if timer_duration(timer, now) < cap_hours * MINUTES_PER_HOUR:
                    skipped += 1
                    continue

                user_id = timer.user_id
                project_id = timer.project_id
                entry = TimerService._force_stop(db, timer, settings, broadcaster, cap_hours)
                stopped += 1
                results.append({
                    "timer_id": timer_id,
                    "user_id": user_id,
                    "project_id": project_id,
                    "time_entry_id": entry.id,
                    "duration": entry.duration,
                    "status": "stopped",
                })
            except Exception as e:
                db.rollback()
                errors += 1
                logger.exception("Failed to stop expired timer %s", timer_id)
                results.append({"timer_id": timer_id, "error": str(e), "status": "error"})

        logger.info(
            "Timer cleanup: checked=%d stopped=%d skipped=%d errors=%d",
            len(timers), stopped, skipped, errors,
        )
        return {
            "total_checked": len(timers),
            "stopped": stopped,
            "skipped": skipped,
            "errors": errors,
            "results": results,
        }


timer_service = TimerService()
