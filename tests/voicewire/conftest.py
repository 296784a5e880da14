"""
Fakes and fixtures for voicewire tests.

FakeWebSocket stands in for a websockets client connection and FakeTransport
stands in for WebSocketTransport, so no test touches the network.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

from voicewire.config.models import ApplicationConfig, TransportConfig
from voicewire.exceptions import RealtimeConnectionError
from voicewire.models.conversation import ConnectionState, ConversationState
from voicewire.realtime.session import RealtimeSession

_DROP = object()


class FakeWebSocket:
    """Minimal websockets connection: ping/pong, send, async iteration."""

    def __init__(self, answer_pings: bool = True):
        self.answer_pings = answer_pings
        self.sent: List[str] = []
        self.ping_count = 0
        self.closed = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def ping(self):
        self.ping_count += 1
        pong_waiter = asyncio.get_running_loop().create_future()
        if self.answer_pings:
            pong_waiter.set_result(0.0)
        return pong_waiter

    async def send(self, data):
        if self.closed:
            raise ConnectionError("socket is closed")
        self.sent.append(data)

    async def close(self):
        self.closed = True

    def feed(self, message) -> None:
        """Queue an inbound frame."""
        self._incoming.put_nowait(message)

    def drop(self) -> None:
        """Make the connection fail as if the network went away."""
        self._incoming.put_nowait(_DROP)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is _DROP:
            raise ConnectionError("connection dropped")
        return item


class FakeTransport:
    """In-memory transport recording every outbound event.

    Event ids are split off into ``event_ids`` so ``sent`` can be compared
    against literal payloads.
    """

    def __init__(self):
        self.state = ConnectionState.DISCONNECTED
        self.sent: List[Dict[str, Any]] = []
        self.event_ids: List[Optional[str]] = []
        self.connect_calls: List[tuple] = []
        self.fail_connect: Optional[Exception] = None
        self.disconnect_count = 0
        self._listeners = []
        self._queue: asyncio.Queue = asyncio.Queue()

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def add_state_listener(self, listener) -> None:
        self._listeners.append(listener)

    def set_state(self, state: ConnectionState) -> None:
        self.state = state
        for listener in self._listeners:
            listener(state)

    async def connect(self, url: str, headers: Dict[str, str]) -> None:
        self.connect_calls.append((url, headers))
        self.set_state(ConnectionState.CONNECTING)
        if self.fail_connect is not None:
            self.set_state(ConnectionState.ERROR)
            raise self.fail_connect
        self._queue = asyncio.Queue()
        self.set_state(ConnectionState.CONNECTED)

    async def send(self, data) -> None:
        if not self.is_connected:
            raise RealtimeConnectionError("Cannot send: transport is not connected")
        payload = json.loads(data)
        self.event_ids.append(payload.pop("event_id", None))
        self.sent.append(payload)

    async def receive(self):
        queue = self._queue
        while True:
            item = await queue.get()
            if item is None:
                queue.put_nowait(None)
                return
            if isinstance(item, Exception):
                queue.put_nowait(None)
                raise item
            yield item

    async def disconnect(self) -> None:
        self.disconnect_count += 1
        self._queue.put_nowait(None)
        self.set_state(ConnectionState.DISCONNECTED)

    def push(self, event: Dict[str, Any]) -> None:
        """Deliver a server event to the session."""
        self._queue.put_nowait(json.dumps(event))

    def push_raw(self, frame: str) -> None:
        self._queue.put_nowait(frame)

    def fail(self, error: Exception) -> None:
        """End the inbound stream with a terminal error."""
        self._queue.put_nowait(error)

    def sent_types(self) -> List[str]:
        return [event["type"] for event in self.sent]


async def _settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle():
    """Awaitable that lets background tasks run until queued work is processed."""
    return _settle


@pytest.fixture
def make_websocket():
    """Factory for fake websocket connections."""
    return FakeWebSocket


@pytest.fixture
def fast_transport_config():
    """Transport settings with short timers for tests."""
    return TransportConfig(
        max_reconnect_attempts=5,
        reconnect_base_delay=1.0,
        reconnect_max_delay=30.0,
        heartbeat_interval=30.0,
        probe_timeout=0.05,
        open_timeout=1.0,
    )


@pytest.fixture
def app_config():
    config = ApplicationConfig()
    config.openai.api_key = "test-key"
    return config


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def session(app_config, fake_transport):
    return RealtimeSession(config=app_config, transport=fake_transport)


@pytest_asyncio.fixture
async def started_session(session, fake_transport):
    await session.start(voice="nova")
    yield session
    if session.state != ConversationState.IDLE:
        await session.end()
