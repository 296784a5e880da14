"""
WebSocket transport for the Realtime API.

The transport owns exactly one live connection at a time. It opens the socket,
confirms it with a liveness probe, pumps inbound frames into a queue, probes
the connection on a fixed heartbeat, and redials with exponential backoff when
the connection drops unexpectedly.

Inbound frames are consumed with ``receive()``. The queue behind it survives
reconnects, so a consumer keeps iterating while the transport redials. When
redialing is exhausted the iterator raises one ``RealtimeConnectionError`` and
ends; after ``disconnect()`` it simply ends.
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Union
from urllib.parse import urlparse

import websockets

from voicewire.config.logging_config import configure_logging
from voicewire.config.models import TransportConfig
from voicewire.exceptions import RealtimeConnectionError
from voicewire.models.conversation import ConnectionState
from voicewire.utils.retry_utils import RetryUtils

logger = configure_logging("transport")

StateListener = Callable[[ConnectionState], None]

# Marks the end of the inbound sequence
_CLOSED = object()


class _TerminalError:
    """Queue item carrying the error that ended the inbound sequence."""

    def __init__(self, error: RealtimeConnectionError):
        self.error = error


class WebSocketTransport:
    """Single WebSocket connection with heartbeat and automatic reconnection.

    Args:
        config: Heartbeat, probe and reconnection settings
        sleep: Awaitable used for the delay before each reconnection attempt
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or TransportConfig()
        self._sleep = sleep

        self.url: Optional[str] = None
        self.headers: Dict[str, str] = {}
        self.state = ConnectionState.DISCONNECTED
        self.reconnect_attempt = 0
        self.last_error: Optional[Exception] = None

        self._ws = None
        self._inbound: asyncio.Queue = asyncio.Queue()
        self._reader_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._closing = False
        self._state_listeners: List[StateListener] = []

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED and self._ws is not None

    def add_state_listener(self, listener: StateListener) -> None:
        """Register a callback invoked on every connection state change."""
        self._state_listeners.append(listener)

    async def connect(self, url: str, headers: Optional[Dict[str, str]] = None) -> None:
        """Open a new connection, replacing any existing one.

        Returns only after the liveness probe on the new connection succeeds.

        Raises:
            RealtimeConnectionError: if the address or headers are invalid, the
                socket cannot be opened, or the probe fails
        """
        await self.disconnect()

        headers = headers or {}
        self._validate_target(url, headers)

        self.url = url
        self.headers = dict(headers)
        self._inbound = asyncio.Queue()
        self._closing = False
        self.last_error = None
        self._set_state(ConnectionState.CONNECTING)

        try:
            await self._open()
        except RealtimeConnectionError as e:
            self.last_error = e
            self._set_state(ConnectionState.ERROR)
            raise

        self._start_loops()
        self._set_state(ConnectionState.CONNECTED)
        logger.info(f"Connected to {self._redacted_url()}")

    async def send(self, data: Union[bytes, str]) -> None:
        """Send one frame; bytes are sent as a UTF-8 text frame.

        Raises:
            RealtimeConnectionError: if not connected or the socket rejects the frame
        """
        if not self.is_connected:
            raise RealtimeConnectionError("Cannot send: transport is not connected")

        if isinstance(data, bytes):
            data = data.decode("utf-8")

        try:
            await self._ws.send(data)
        except Exception as e:
            raise RealtimeConnectionError(f"Failed to send frame: {e}", cause=e) from e

    async def receive(self) -> AsyncIterator[str]:
        """Iterate over inbound frames until disconnect or terminal failure."""
        queue = self._inbound
        while True:
            item = await queue.get()
            if item is _CLOSED:
                # Leave the marker for any later iterator over this queue
                queue.put_nowait(_CLOSED)
                return
            if isinstance(item, _TerminalError):
                queue.put_nowait(_CLOSED)
                raise item.error
            yield item

    async def disconnect(self) -> None:
        """Close the connection and stop all background tasks."""
        self._closing = True

        await self._cancel_task(self._reconnect_task)
        self._reconnect_task = None
        await self._stop_loops()
        await self._close_socket()

        self._inbound.put_nowait(_CLOSED)
        self.reconnect_attempt = 0
        if self.state != ConnectionState.DISCONNECTED:
            self._set_state(ConnectionState.DISCONNECTED)
            logger.info("Disconnected")

    # Connection management

    @staticmethod
    def _validate_target(url: str, headers: Dict[str, str]) -> None:
        parsed = urlparse(url or "")
        if parsed.scheme not in ("ws", "wss") or not parsed.hostname:
            raise RealtimeConnectionError(f"Invalid WebSocket address: '{url}'")

        for key, value in headers.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise RealtimeConnectionError(
                    f"Invalid header {key!r}: header names and values must be strings"
                )

    async def _open(self) -> None:
        try:
            ws = await websockets.connect(
                self.url,
                additional_headers=self.headers,
                open_timeout=self.config.open_timeout,
                ping_interval=None,
                max_size=self.config.max_frame_size,
            )
        except Exception as e:
            raise RealtimeConnectionError(
                f"Failed to connect to {self._redacted_url()}: {e}", cause=e
            ) from e

        try:
            await self._probe(ws)
        except RealtimeConnectionError:
            await self._close_quietly(ws)
            raise

        self._ws = ws

    async def _probe(self, ws) -> None:
        """Send a ping and wait for its pong."""
        try:
            pong_waiter = await ws.ping()
            await asyncio.wait_for(pong_waiter, timeout=self.config.probe_timeout)
        except asyncio.TimeoutError as e:
            raise RealtimeConnectionError(
                f"Liveness probe timed out after {self.config.probe_timeout}s", cause=e
            ) from e
        except Exception as e:
            raise RealtimeConnectionError(f"Liveness probe failed: {e}", cause=e) from e

    async def _close_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await self._close_quietly(ws)

    @staticmethod
    async def _close_quietly(ws) -> None:
        try:
            await ws.close()
        except Exception as e:
            logger.debug(f"Error closing socket: {e}")

    def _start_loops(self) -> None:
        self._reader_task = asyncio.create_task(self._reader_loop(self._ws))
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop(self._ws))

    async def _stop_loops(self) -> None:
        await self._cancel_task(self._reader_task)
        await self._cancel_task(self._heartbeat_task)
        self._reader_task = None
        self._heartbeat_task = None

    @staticmethod
    async def _cancel_task(task: Optional[asyncio.Task]) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        # wait() leaves a cancellation aimed at the caller intact
        await asyncio.wait({task})

    # Background loops

    async def _reader_loop(self, ws) -> None:
        error: Optional[Exception] = None
        try:
            async for message in ws:
                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                self._inbound.put_nowait(message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = e

        if ws is self._ws:
            reason = f": {error}" if error else ""
            logger.warning(f"Connection lost{reason}")
            self._handle_connection_lost(
                RealtimeConnectionError(f"Connection lost{reason}", cause=error)
            )

    async def _heartbeat_loop(self, ws) -> None:
        while True:
            await asyncio.sleep(self.config.heartbeat_interval)
            try:
                await self._probe(ws)
            except RealtimeConnectionError as e:
                logger.warning(f"Heartbeat failed: {e}")
                if ws is self._ws:
                    self._handle_connection_lost(e)
                return
            logger.debug("Heartbeat ok")

    def _handle_connection_lost(self, error: RealtimeConnectionError) -> None:
        if self._closing or self.state != ConnectionState.CONNECTED:
            return

        self.last_error = error
        self._set_state(ConnectionState.RECONNECTING)
        self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        await self._stop_loops()
        await self._close_socket()
        if self._closing:
            return

        max_attempts = self.config.max_reconnect_attempts
        while self.reconnect_attempt < max_attempts:
            self.reconnect_attempt += 1
            delay = RetryUtils.calculate_backoff_delay(
                self.reconnect_attempt - 1,
                base_delay=self.config.reconnect_base_delay,
                max_delay=self.config.reconnect_max_delay,
            )
            logger.info(
                f"Reconnection attempt {self.reconnect_attempt}/{max_attempts} in {delay:.1f}s"
            )
            await self._sleep(delay)
            if self._closing:
                return

            try:
                await self._open()
            except RealtimeConnectionError as e:
                self.last_error = e
                logger.warning(
                    f"Reconnection attempt {self.reconnect_attempt}/{max_attempts} failed: {e}"
                )
                continue

            if self._closing:
                await self._close_socket()
                return

            logger.info(f"Reconnected after {self.reconnect_attempt} attempt(s)")
            self.reconnect_attempt = 0
            self._start_loops()
            self._set_state(ConnectionState.CONNECTED)
            return

        logger.error(f"Giving up after {max_attempts} reconnection attempts")
        self._set_state(ConnectionState.ERROR)
        self._inbound.put_nowait(
            _TerminalError(
                RealtimeConnectionError(
                    f"Reconnection failed after {max_attempts} attempts",
                    cause=self.last_error,
                )
            )
        )

    def _set_state(self, state: ConnectionState) -> None:
        if state == self.state:
            return
        previous, self.state = self.state, state
        logger.debug(f"Connection state {previous.value} -> {state.value}")
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"Error in connection state listener: {e}")

    def _redacted_url(self) -> str:
        parsed = urlparse(self.url or "")
        return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
