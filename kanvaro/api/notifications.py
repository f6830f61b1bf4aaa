"""Notifications API router: list, actions, cleanup and the live stream."""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from kanvaro.core.config import settings
from kanvaro.core.exceptions import bad_request, not_found, unauthorized
from kanvaro.core.security import (
    CurrentUser, RequirePermission, decode_token, get_current_user, security_scheme,
    user_from_payload,
)
from kanvaro.db.session import get_db
from kanvaro.permissions.catalog import Permission
from kanvaro.schemas.schemas import (
    NotificationAction, NotificationActionRequest, NotificationListOut, NotificationOut,
)
from kanvaro.services.notification_broadcaster import (
    FRAME_CONNECTED, FRAME_HEARTBEAT, NotificationBroadcaster, SSEStream, StreamClosedError,
    encode_frame, get_broadcaster,
)
from kanvaro.services.notification_service import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def get_stream_user(
    access_token: Optional[str] = Query(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> CurrentUser:
    """Bearer header, or ``?access_token=`` for browser EventSource clients."""
    token = credentials.credentials if credentials else access_token
    if not token:
        raise unauthorized()
    return user_from_payload(decode_token(token))


async def event_stream(
    request: Request,
    broadcaster: NotificationBroadcaster,
    user_id: int,
    heartbeat_seconds: float,
):
    """Yield SSE frames for one client until it disconnects."""
    stream = SSEStream()
    broadcaster.register(user_id, stream)
    logger.info("SSE stream opened for user %s (%d open)", user_id, broadcaster.connection_count(user_id))
    try:
        yield encode_frame(FRAME_CONNECTED, user_id=user_id)
        while True:
            if await request.is_disconnected():
                break
            try:
                frame = await asyncio.wait_for(stream.get(), timeout=heartbeat_seconds)
            except asyncio.TimeoutError:
                # this connection only
                try:
                    stream.write(encode_frame(FRAME_HEARTBEAT))
                except StreamClosedError:
                    break
                continue
            if frame is None:
                break
            yield frame
    finally:
        broadcaster.unregister(user_id, stream)
        stream.close()
        logger.info("SSE stream closed for user %s", user_id)


@router.get("/stream")
async def stream_notifications(
    request: Request,
    user: CurrentUser = Depends(get_stream_user),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
):
    """Server-Sent-Events stream of the caller's notifications."""
    return StreamingResponse(
        event_stream(request, broadcaster, user.id, settings.SSE_HEARTBEAT_SECONDS),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("", response_model=NotificationListOut)
async def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unread_only: bool = Query(False, alias="unreadOnly"),
    type: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """List the caller's notifications with unread count."""
    return notification_service.get_user_notifications(
        db, user.id, limit=limit, offset=offset, unread_only=unread_only, type=type
    )


@router.post("")
async def notification_action(
    body: NotificationActionRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Mark one or all notifications read, or delete one."""
    if body.action is NotificationAction.mark_all_read:
        notification_service.mark_all_as_read(db, user.id)
        return {"success": True, "message": "All notifications marked as read"}

    if body.notification_id is None:
        raise bad_request("notification_id is required")

    if body.action is NotificationAction.mark_as_read:
        if not notification_service.mark_as_read(db, body.notification_id, user.id):
            raise not_found("Notification not found or already read")
        return {"success": True, "message": "Notification marked as read"}

    if not notification_service.delete_notification(db, body.notification_id, user.id):
        raise not_found("Notification not found")
    return {"success": True, "message": "Notification deleted"}


@router.delete("")
async def cleanup_notifications(
    action: str = Query(...),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(RequirePermission(Permission.ORGANIZATION_MANAGE_SETTINGS)),
):
    """Purge the caller's organization's notifications past retention."""
    if action != "cleanup":
        raise HTTPException(status_code=400, detail="Invalid action")
    results = notification_service.cleanup_expired(db, organization_id=user.organization_id)
    deleted = sum(r["deleted_count"] for r in results)
    return {"success": True, "deleted_count": deleted, "details": results}
