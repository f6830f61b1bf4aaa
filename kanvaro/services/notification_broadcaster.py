"""Server-Sent-Events connection registry and broadcaster.

One broadcaster lives per process. It keeps the open stream handles of every
connected user (a user may have several tabs open) and writes SSE frames to
them. A handle that fails on write is dropped and closed, and delivery
continues with the remaining handles.
"""

import asyncio
import json
import logging
import threading
import time
from typing import Any, Dict, Iterable, List, Optional, Set

from fastapi import Request

logger = logging.getLogger(__name__)

FRAME_CONNECTED = "connected"
FRAME_HEARTBEAT = "heartbeat"
FRAME_NOTIFICATION = "notification"
FRAME_TASK_UPDATE = "task_update"


class StreamClosedError(Exception):
    """Raised when writing to a stream whose client has gone away."""


def encode_frame(frame_type: str, data: Any = None, user_id: Optional[int] = None) -> str:
    """Encode one SSE ``data:`` frame."""
    message: Dict[str, Any] = {"type": frame_type}
    if data is not None:
        message["data"] = data
    if user_id is not None:
        message["userId"] = str(user_id)
    message["timestamp"] = int(time.time() * 1000)
    return f"data: {json.dumps(message, default=str)}\n\n"


class SSEStream:
    """Output handle for one open event-stream response.

    Frames are queued and drained by the response generator. ``write`` may be
    called from worker threads; the frame is handed to the owning event loop.
    """

    def __init__(self, maxsize: int = 256, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue(maxsize=maxsize)
        self._loop = loop or asyncio.get_running_loop()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _in_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def write(self, frame: str) -> None:
        if self._closed or self._loop.is_closed():
            raise StreamClosedError("stream is closed")
        if self._queue.full():
            raise StreamClosedError("client is not reading")
        if self._in_loop_thread():
            self._queue.put_nowait(frame)
        else:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, frame)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._loop.is_closed():
            return
        if self._in_loop_thread():
            self._wake_reader()
        else:
            self._loop.call_soon_threadsafe(self._wake_reader)

    def _wake_reader(self) -> None:
        # A full queue needs no sentinel: get() returns None once it drains
        if not self._queue.full():
            self._queue.put_nowait(None)

    async def get(self) -> Optional[str]:
        """Next queued frame, or ``None`` once the stream is closed."""
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()


class NotificationBroadcaster:
    """Registry of live SSE handles keyed by user id."""

    def __init__(self):
        self._connections: Dict[int, Set[Any]] = {}
        self._lock = threading.Lock()

    # ── Registry ──

    def register(self, user_id: int, stream) -> None:
        with self._lock:
            self._connections.setdefault(user_id, set()).add(stream)
        logger.debug("SSE handle registered for user %s", user_id)

    def unregister(self, user_id: int, stream) -> None:
        with self._lock:
            handles = self._connections.get(user_id)
            if handles is None:
                return
            handles.discard(stream)
            if not handles:
                del self._connections[user_id]
        logger.debug("SSE handle unregistered for user %s", user_id)

    def connection_count(self, user_id: int) -> int:
        with self._lock:
            return len(self._connections.get(user_id, ()))

    def total_connections(self) -> int:
        with self._lock:
            return sum(len(handles) for handles in self._connections.values())

    def has_active_connection(self, user_id: int) -> bool:
        return self.connection_count(user_id) > 0

    def connected_user_ids(self) -> List[int]:
        with self._lock:
            return list(self._connections.keys())

    def close(self) -> None:
        """Close every handle and empty the registry."""
        with self._lock:
            handles = [h for group in self._connections.values() for h in group]
            self._connections.clear()
        for handle in handles:
            closer = getattr(handle, "close", None)
            if closer is not None:
                closer()
        logger.info("Notification broadcaster closed (%d handles)", len(handles))

    # ── Delivery ──

    def _deliver(self, user_id: int, frame: str) -> bool:
        with self._lock:
            handles = list(self._connections.get(user_id, ()))
        if not handles:
            return False

        sent = False
        dead = []
        for handle in handles:
            try:
                handle.write(frame)
                sent = True
            except Exception as e:
                logger.debug("Dropping SSE handle for user %s: %s", user_id, e)
                dead.append(handle)

        for handle in dead:
            self.unregister(user_id, handle)
            # Ends the response so the client reconnects
            try:
                closer = getattr(handle, "close", None)
                if closer is not None:
                    closer()
            except Exception as e:
                logger.debug("Closing dropped SSE handle for user %s failed: %s", user_id, e)
        return sent

    def send(self, user_id: int, payload: Any) -> bool:
        """Push a notification frame to all of a user's open streams."""
        return self._deliver(user_id, encode_frame(FRAME_NOTIFICATION, payload))

    def send_task_update(self, user_id: int, payload: Any) -> bool:
        return self._deliver(user_id, encode_frame(FRAME_TASK_UPDATE, payload))

    def heartbeat(self, user_id: int) -> bool:
        return self._deliver(user_id, encode_frame(FRAME_HEARTBEAT))

    def broadcast_to_users(self, user_ids: Iterable[int], payload: Any) -> int:
        """Send to several users; returns how many had at least one live stream."""
        return sum(1 for uid in user_ids if self.send(uid, payload))


def get_broadcaster(request: Request) -> NotificationBroadcaster:
    """FastAPI dependency returning the process broadcaster."""
    return request.app.state.broadcaster
