"""Audit service: insert-only record of who changed what in an organization."""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from kanvaro.core.security import CurrentUser
from kanvaro.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def _to_json(value: Any) -> Optional[str]:
    if value is None or value == {}:
        return None
    return json.dumps(value, default=str, sort_keys=True)


def client_ip(request: Request) -> Optional[str]:
    """First hop of X-Forwarded-For when behind a proxy, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()[:45]
    return request.client.host if request.client else None


class AuditService:
    """Writes and searches audit rows."""

    @staticmethod
    def record(
        db: Session,
        organization_id: Optional[int],
        action: str,
        resource_type: str,
        resource_id: Any = None,
        actor: Optional[CurrentUser] = None,
        before: Any = None,
        after: Any = None,
        ip_address: Optional[str] = None,
        commit: bool = True,
    ) -> AuditLog:
        """Add an audit row.

        ``actor`` is None for changes made by cron jobs and workers. Pass
        ``commit=False`` to make the row part of the caller's transaction.
        """
        entry = AuditLog(
            organization_id=organization_id,
            actor_id=actor.id if actor else None,
            actor_email=actor.email if actor else None,
            action=action,
            resource_type=resource_type,
            resource_id=None if resource_id is None else str(resource_id),
            before_json=_to_json(before),
            after_json=_to_json(after),
            ip_address=ip_address,
        )
        db.add(entry)
        if commit:
            db.commit()
        logger.debug(
            "audit %s on %s:%s by %s", action, resource_type, entry.resource_id,
            actor.id if actor else "system",
        )
        return entry

    @staticmethod
    def record_request(
        db: Session,
        request: Request,
        actor: CurrentUser,
        action: str,
        resource_type: str,
        resource_id: Any = None,
        before: Any = None,
        after: Any = None,
    ) -> AuditLog:
        return AuditService.record(
            db,
            actor.organization_id,
            action,
            resource_type,
            resource_id,
            actor=actor,
            before=before,
            after=after,
            ip_address=client_ip(request),
        )

    @staticmethod
    def search(
        db: Session,
        organization_id: int,
        actor_id: Optional[int] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Dict[str, Any]:
        """Newest-first page of one organization's audit rows.

        ``action`` matches as a substring, so "role" finds "role.created"
        and "user.role_changed".
        """
        query = db.query(AuditLog).filter(AuditLog.organization_id == organization_id)
        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)
        if action:
            query = query.filter(AuditLog.action.ilike(f"%{action}%"))
        if resource_type:
            query = query.filter(AuditLog.resource_type == resource_type)

        total = query.count()
        rows = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"logs": rows, "total": total, "page": page, "page_size": page_size}


audit_service = AuditService()
