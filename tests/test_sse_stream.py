"""Tests for the event-stream handle and the SSE response generator."""

import json

import anyio
import anyio.to_thread
import pytest

from kanvaro.api.notifications import event_stream
from kanvaro.services.notification_broadcaster import (
    NotificationBroadcaster,
    SSEStream,
    StreamClosedError,
)


class FakeRequest:
    """Request stub whose disconnect state the test controls."""

    def __init__(self, disconnect_after: int = None):
        self.checks = 0
        self.disconnect_after = disconnect_after

    async def is_disconnected(self) -> bool:
        self.checks += 1
        return self.disconnect_after is not None and self.checks > self.disconnect_after


def _message(frame: str) -> dict:
    return json.loads(frame[len("data: "):])


@pytest.mark.anyio
class TestSSEStream:
    """Tests for SSEStream."""

    async def test_write_then_get(self) -> None:
        stream = SSEStream()
        stream.write("data: {}\n\n")
        assert await stream.get() == "data: {}\n\n"

    async def test_close_wakes_reader(self) -> None:
        stream = SSEStream()
        stream.close()
        assert stream.closed
        assert await stream.get() is None

    async def test_write_after_close_raises(self) -> None:
        stream = SSEStream()
        stream.close()
        with pytest.raises(StreamClosedError):
            stream.write("data: {}\n\n")

    async def test_full_queue_raises(self) -> None:
        """A client that stops reading is treated as gone."""
        stream = SSEStream(maxsize=1)
        stream.write("data: 1\n\n")
        with pytest.raises(StreamClosedError):
            stream.write("data: 2\n\n")

    async def test_write_from_worker_thread(self) -> None:
        stream = SSEStream()
        await anyio.to_thread.run_sync(stream.write, "data: threaded\n\n")
        with anyio.fail_after(1):
            assert await stream.get() == "data: threaded\n\n"


@pytest.mark.anyio
class TestEventStream:
    """Tests for the per-connection event_stream generator."""

    async def test_connected_then_notification(self) -> None:
        broadcaster = NotificationBroadcaster()
        gen = event_stream(FakeRequest(), broadcaster, 1, heartbeat_seconds=5)

        connected = _message(await gen.__anext__())
        assert connected["type"] == "connected"
        assert connected["userId"] == "1"
        assert broadcaster.connection_count(1) == 1

        assert broadcaster.send(1, {"title": "Timer Stopped"})
        with anyio.fail_after(1):
            notification = _message(await gen.__anext__())
        assert notification["type"] == "notification"
        assert notification["data"]["title"] == "Timer Stopped"

        broadcaster.close()
        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()

    async def test_heartbeat_when_idle(self) -> None:
        broadcaster = NotificationBroadcaster()
        gen = event_stream(FakeRequest(), broadcaster, 1, heartbeat_seconds=0.01)

        await gen.__anext__()
        with anyio.fail_after(1):
            heartbeat = _message(await gen.__anext__())
        assert heartbeat["type"] == "heartbeat"
        await gen.aclose()
        assert broadcaster.connection_count(1) == 0

    async def test_disconnect_unregisters(self) -> None:
        """The handle is removed once the client goes away."""
        broadcaster = NotificationBroadcaster()
        gen = event_stream(FakeRequest(disconnect_after=0), broadcaster, 1, heartbeat_seconds=5)

        await gen.__anext__()
        assert broadcaster.connection_count(1) == 1
        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()
        assert broadcaster.connection_count(1) == 0

    async def test_overflowed_stream_ends_after_backlog(self) -> None:
        """A client that stops reading is cut off so it can reconnect."""
        broadcaster = NotificationBroadcaster()
        gen = event_stream(FakeRequest(), broadcaster, 1, heartbeat_seconds=5)
        await gen.__anext__()

        for n in range(256):
            assert broadcaster.send(1, {"n": n})
        assert broadcaster.send(1, {"n": "overflow"}) is False
        assert broadcaster.connection_count(1) == 0

        with anyio.fail_after(1):
            backlog = [_message(await gen.__anext__()) for _ in range(256)]
            with pytest.raises(StopAsyncIteration):
                await gen.__anext__()
        assert backlog[-1]["data"] == {"n": 255}

    async def test_heartbeat_goes_to_idle_tab_only(self) -> None:
        broadcaster = NotificationBroadcaster()
        idle_tab = event_stream(FakeRequest(), broadcaster, 1, heartbeat_seconds=0.01)
        busy_tab = event_stream(FakeRequest(), broadcaster, 1, heartbeat_seconds=5)
        await idle_tab.__anext__()
        await busy_tab.__anext__()

        with anyio.fail_after(1):
            assert _message(await idle_tab.__anext__())["type"] == "heartbeat"
            assert _message(await idle_tab.__anext__())["type"] == "heartbeat"
            broadcaster.send(1, {"title": "Hi"})
            assert _message(await busy_tab.__anext__())["type"] == "notification"

        await idle_tab.aclose()
        await busy_tab.aclose()
