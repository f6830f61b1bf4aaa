"""Notification service: persistence, live push and email delivery."""

import json
import logging
from datetime import timedelta
from html import escape
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from kanvaro.core.config import settings
from kanvaro.models.notification import Notification
from kanvaro.models.organization import Organization
from kanvaro.models.user import User
from kanvaro.schemas.schemas import NotificationCreate
from kanvaro.services.email_service import email_service
from kanvaro.services.notification_broadcaster import NotificationBroadcaster
from kanvaro.services.timer_math import utcnow

logger = logging.getLogger(__name__)


def notification_to_dict(notification: Notification) -> Dict[str, Any]:
    return {
        "id": notification.id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "data": notification.data,
        "isRead": notification.is_read,
        "readAt": notification.read_at.isoformat() if notification.read_at else None,
        "createdAt": notification.created_at.isoformat() if notification.created_at else None,
    }


def email_body(data: NotificationCreate) -> Tuple[str, str]:
    """HTML and plain-text bodies; a relative ``url`` in the payload becomes a link."""
    message = escape(data.message)
    link = (data.data or {}).get("url")
    if not link:
        return f"<p>{message}</p>", data.message
    target = f"{settings.FRONTEND_URL.rstrip('/')}{link}"
    return (
        f'<p>{message}</p><p><a href="{escape(target)}">Open in Kanvaro</a></p>',
        f"{data.message}\n\n{target}",
    )


class NotificationService:
    """Creates notifications and pushes them to connected clients."""

    @staticmethod
    def create_notification(
        db: Session,
        user_id: int,
        organization_id: int,
        data: NotificationCreate,
        broadcaster: Optional[NotificationBroadcaster] = None,
    ) -> Optional[Notification]:
        """Persist a notification honoring the user's delivery preferences.

        Returns None when the user does not exist.
        """
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            logger.error("Notification target user %s not found", user_id)
            return None

        wants_email = user.notify_email and data.send_email
        notification = Notification(
            organization_id=organization_id,
            user_id=user_id,
            type=data.type,
            title=data.title,
            message=data.message,
            data_json=json.dumps(data.data, default=str) if data.data else None,
            sent_in_app=user.notify_in_app,
            sent_email=wants_email,
            sent_push=user.notify_push and data.send_push,
        )
        db.add(notification)
        db.commit()
        db.refresh(notification)

        if broadcaster is not None and user.notify_in_app:
            broadcaster.send(user_id, notification_to_dict(notification))

        if wants_email:
            html, text = email_body(data)
            delivered = email_service.send_email(
                user.email,
                data.title,
                html,
                text=text,
                db=db,
                organization_id=organization_id,
            )
            if delivered:
                notification.email_sent_at = utcnow()
                db.commit()

        return notification

    @staticmethod
    def create_bulk_notifications(
        db: Session,
        user_ids: Iterable[int],
        organization_id: int,
        data: NotificationCreate,
        broadcaster: Optional[NotificationBroadcaster] = None,
    ) -> List[Notification]:
        created = []
        for user_id in user_ids:
            notification = NotificationService.create_notification(
                db, user_id, organization_id, data, broadcaster
            )
            if notification:
                created.append(notification)
        return created

    @staticmethod
    def get_user_notifications(
        db: Session,
        user_id: int,
        limit: int = 20,
        offset: int = 0,
        unread_only: bool = False,
        type: Optional[str] = None,
    ) -> Dict[str, Any]:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read == False)  # noqa: E712
        if type:
            query = query.filter(Notification.type == type)

        total = query.count()
        notifications = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        unread_count = (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
            .count()
        )
        return {"notifications": notifications, "total": total, "unread_count": unread_count}

    @staticmethod
    def mark_as_read(db: Session, notification_id: int, user_id: int) -> bool:
        updated = (
            db.query(Notification)
            .filter(
                Notification.id == notification_id,
                Notification.user_id == user_id,
                Notification.is_read == False,  # noqa: E712
            )
            .update({"is_read": True, "read_at": utcnow()}, synchronize_session=False)
        )
        db.commit()
        return updated > 0

    @staticmethod
    def mark_all_as_read(db: Session, user_id: int) -> bool:
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
            .update({"is_read": True, "read_at": utcnow()}, synchronize_session=False)
        )
        db.commit()
        return updated > 0

    @staticmethod
    def delete_notification(db: Session, notification_id: int, user_id: int) -> bool:
        deleted = (
            db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted > 0

    @staticmethod
    def cleanup_expired(db: Session, organization_id: Optional[int] = None, now=None) -> List[Dict[str, Any]]:
        """Delete notifications past each organization's retention window."""
        now = now or utcnow()
        orgs = db.query(Organization).filter(Organization.notification_auto_cleanup == True)  # noqa: E712
        if organization_id is not None:
            orgs = orgs.filter(Organization.id == organization_id)

        results = []
        for org in orgs.all():
            retention_days = org.notification_retention_days or 30
            cutoff = now - timedelta(days=retention_days)
            deleted = (
                db.query(Notification)
                .filter(Notification.organization_id == org.id, Notification.created_at < cutoff)
                .delete(synchronize_session=False)
            )
            if deleted:
                results.append({
                    "organization": org.name,
                    "deleted_count": deleted,
                    "retention_days": retention_days,
                })
        db.commit()
        total = sum(r["deleted_count"] for r in results)
        logger.info("Notification cleanup deleted %d rows across %d organizations", total, len(results))
        return results


notification_service = NotificationService()
