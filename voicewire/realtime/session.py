"""
Realtime conversation session.

``RealtimeSession`` is the client-facing controller. It composes the
transport, the codec, the audio buffer and the tool bridge, keeps the ordered
list of conversation items, and drives the conversation state machine from
both local commands and server events.

All mutation of the item list and of the session configuration happens while
holding the session lock: inbound events are applied one at a time under it,
and so are commands and tool results.

Usage Example:
    ```python
    session = RealtimeSession(api_key="sk-...")
    await session.register_tool("get_time", lambda args: {"time": "12:00"})
    await session.start(voice="nova", instructions="Be brief.")

    updates = session.transcript_updates.subscribe()
    await session.send_text("What time is it?")
    response = await session.wait_for_response(timeout=30)

    await session.end()
    ```
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Union
from urllib.parse import urlparse

from voicewire.config.logging_config import configure_logging
from voicewire.config.models import ApplicationConfig
from voicewire.config.settings import get_config
from voicewire.exceptions import (
    ConfigurationError,
    ProtocolError,
    RealtimeConnectionError,
    RealtimeError,
    TurnCancelledError,
)
from voicewire.handlers.event_router import EventRouter
from voicewire.models.conversation import (
    ConnectionState,
    ConversationState,
    can_transition,
)
from voicewire.models.openai_api import (
    ClientEvent,
    ContentPart,
    ConversationItem,
    ConversationItemCreatedEvent,
    ConversationItemCreateEvent,
    ConversationItemDeletedEvent,
    ConversationItemDeleteEvent,
    ConversationItemTruncatedEvent,
    ConversationItemTruncateEvent,
    ConversationItemType,
    ErrorDetails,
    ErrorEvent,
    InputAudioTranscriptionCompletedEvent,
    InputAudioTranscriptionFailedEvent,
    MessageRole,
    RateLimit,
    RateLimitsUpdatedEvent,
    ResponseAudioDeltaEvent,
    ResponseAudioTranscriptDeltaEvent,
    ResponseAudioTranscriptDoneEvent,
    ResponseCancelEvent,
    ResponseCreateOptions,
    ResponseCreatedEvent,
    ResponseCreateEvent,
    ResponseDoneEvent,
    ResponseFunctionCallArgumentsDoneEvent,
    ResponseObject,
    ResponseOutputItemAddedEvent,
    ResponseOutputItemDoneEvent,
    ResponseTextDeltaEvent,
    ResponseTextDoneEvent,
    ServerEvent,
    ServerEventType,
    SessionConfig,
    SessionUpdateEvent,
    TurnDetection,
)
from voicewire.models.tool_models import OpenAITool
from voicewire.realtime.audio_buffer import AudioBufferManager
from voicewire.realtime.codec import EventCodec, generate_item_id
from voicewire.realtime.feeds import EventFeed
from voicewire.realtime.tool_bridge import ToolBridge, ToolExecutor
from voicewire.realtime.transport import WebSocketTransport
from voicewire.transcript_manager import TranscriptManager
from voicewire.utils.audio_utils import AudioUtils

logger = configure_logging("realtime_session")

ToolSpec = Union[OpenAITool, Dict[str, Any]]

# States in which the server connection is expected to be usable
_ACTIVE_STATES = {
    ConversationState.READY,
    ConversationState.LISTENING,
    ConversationState.PROCESSING,
    ConversationState.SPEAKING,
}

# Distinguishes "not given" from an explicit None (manual turn detection)
_UNSET: Any = object()


class RealtimeSession:
    """Controller for one realtime conversation.

    Args:
        config: Application configuration; defaults to the global configuration
        api_key: Credential overriding ``config.openai.api_key``
        transport: Transport to use; a ``WebSocketTransport`` is created if omitted
        codec: Event codec to use
    """

    def __init__(
        self,
        config: Optional[ApplicationConfig] = None,
        api_key: Optional[str] = None,
        transport: Optional[WebSocketTransport] = None,
        codec: Optional[EventCodec] = None,
    ):
        self.config = config or get_config()
        self.api_key = api_key if api_key is not None else self.config.openai.api_key
        self.transport = transport or WebSocketTransport(self.config.transport)
        self.codec = codec or EventCodec()

        self.state = ConversationState.IDLE
        self.session_config = SessionConfig()
        self.server_session: Optional[SessionConfig] = None
        self.rate_limits: List[RateLimit] = []
        self.last_server_error: Optional[ErrorDetails] = None
        self.is_listening = False

        self._items: List[ConversationItem] = []
        self._lock = asyncio.Lock()
        self._receive_task: Optional[asyncio.Task] = None
        self._restore_task: Optional[asyncio.Task] = None
        self._response_waiters: List[asyncio.Future] = []
        self._current_response_id: Optional[str] = None

        self.audio_buffer = AudioBufferManager(
            self._send_event,
            chunk_size=self.config.audio.chunk_size,
            level_callback=self._publish_level,
        )
        self.tool_bridge = ToolBridge(
            self._send_event,
            on_output_item=self._add_local_item,
            timeout=self.config.session.tool_timeout,
        )
        self.transcripts = TranscriptManager()

        self.router = EventRouter()
        self._register_handlers()
        self._create_feeds()
        self.transport.add_state_listener(self._on_connection_state)

    # Public surface

    @property
    def items(self) -> List[ConversationItem]:
        """Conversation items in arrival order."""
        return list(self._items)

    @property
    def transcript_updates(self) -> EventFeed:
        """Assistant text and audio transcript deltas."""
        return self._transcript_updates

    @property
    def audio_levels(self) -> EventFeed:
        """Input level in [0, 1] for every audio chunk sent."""
        return self._audio_levels

    @property
    def state_changes(self) -> EventFeed:
        """Every ConversationState the session moves to."""
        return self._state_changes

    @property
    def audio_output(self) -> EventFeed:
        """Decoded assistant audio chunks."""
        return self._audio_output

    async def start(
        self,
        model: Optional[str] = None,
        voice: Optional[str] = None,
        instructions: Optional[str] = None,
        tools: Optional[Sequence[ToolSpec]] = None,
        turn_detection: Optional[Union[TurnDetection, Dict[str, Any]]] = _UNSET,
        preset: Optional[SessionConfig] = None,
        **session_options: Any,
    ) -> None:
        """Connect and push the initial session configuration.

        Settings are layered: configured defaults, then ``preset``, then the
        explicit arguments. ``turn_detection=None`` disables server VAD so
        turns end with ``stop_listening``; omitting it keeps server VAD.

        Raises:
            ConfigurationError: if there is no API key or the endpoint is invalid
            RealtimeConnectionError: if the connection cannot be established
        """
        if self.state not in (ConversationState.IDLE, ConversationState.ERROR):
            raise RealtimeError(f"Cannot start a session in state '{self.state.value}'")

        if not self.api_key:
            raise ConfigurationError(
                "OpenAI API key is required; set OPENAI_API_KEY or pass api_key"
            )

        openai_cfg = self.config.openai
        model = model or (preset.model if preset is not None else None) or openai_cfg.model
        url = openai_cfg.get_websocket_url(model)
        parsed = urlparse(url)
        if parsed.scheme not in ("ws", "wss") or not parsed.hostname:
            raise ConfigurationError(f"Invalid realtime endpoint: '{openai_cfg.base_url}'")

        headers = openai_cfg.get_headers(self.api_key)

        if self._state_changes.closed:
            self._create_feeds()

        self.session_config = self._build_session_config(
            model,
            voice,
            instructions,
            tools,
            turn_detection,
            preset,
            session_options,
        )
        self._set_state(ConversationState.CONNECTING)

        try:
            await self.transport.connect(url, headers)
            self._receive_task = asyncio.create_task(self._receive_loop())
            await self._send_event(SessionUpdateEvent(session=self.session_config))
        except RealtimeConnectionError as e:
            logger.error(f"Failed to start session: {e}")
            await self.transport.disconnect()
            await self._cancel_task(self._receive_task)
            self._receive_task = None
            self._set_state(ConversationState.ERROR)
            raise

        self._set_state(ConversationState.READY)
        logger.info(
            f"Session started (model={self.session_config.model}, voice={self.session_config.voice})"
        )

    async def end(self) -> None:
        """Close the connection and finish every notification feed."""
        logger.info("Ending session")
        self._set_state(ConversationState.DISCONNECTING)
        self.is_listening = False
        self.tool_bridge.cancel_pending()
        self._fail_waiters(TurnCancelledError("Session ended"))

        await self.transport.disconnect()
        await self._cancel_task(self._restore_task)
        await self._cancel_task(self._receive_task)
        self._restore_task = None
        self._receive_task = None
        self.audio_buffer.reset()
        self._current_response_id = None

        self._set_state(ConversationState.IDLE)
        self._close_feeds()

    async def send_text(self, text: str) -> ConversationItem:
        """Add a user message and request a response."""
        self._require_active()
        async with self._lock:
            item = ConversationItem(
                id=generate_item_id(),
                type=ConversationItemType.MESSAGE,
                role=MessageRole.USER,
                content=[ContentPart(type="input_text", text=text)],
            )
            self._items.append(item)
            await self._send_event(ConversationItemCreateEvent(item=item))
            await self._send_event(ResponseCreateEvent())
            self._set_state(ConversationState.PROCESSING)
        return item

    async def create_response(self, **options: Any) -> None:
        """Ask for a response, optionally overriding settings for this response only.

        Args:
            **options: ``ResponseCreateOptions`` fields such as ``modalities``,
                ``instructions`` or ``voice``
        """
        self._require_active()
        async with self._lock:
            response = ResponseCreateOptions.model_validate(options) if options else None
            await self._send_event(ResponseCreateEvent(response=response))
            self._set_state(ConversationState.PROCESSING)

    async def update_modalities(self, modalities: Sequence[str]) -> SessionConfig:
        """Switch the session between text and audio output."""
        return await self.update_configuration(modalities=list(modalities))

    async def start_listening(self) -> None:
        """Begin accepting microphone audio through ``send_audio``."""
        self._require_active()
        async with self._lock:
            self.is_listening = True
            self._set_state(ConversationState.LISTENING)

    async def stop_listening(self) -> None:
        """Stop accepting audio and commit what was sent.

        Without server-side turn detection a response is requested explicitly.
        With nothing to commit the turn ends without a response.
        """
        if not self.is_listening:
            return
        self.is_listening = False

        async with self._lock:
            committed = await self.audio_buffer.commit()
            if not committed:
                if self.state == ConversationState.LISTENING:
                    self._set_state(ConversationState.READY)
                return
            if self.session_config.turn_detection is None:
                await self._send_event(ResponseCreateEvent())
            self._set_state(ConversationState.PROCESSING)

    async def send_audio(self, data: bytes) -> None:
        """Forward PCM16 microphone audio; ignored unless listening."""
        if not self.is_listening:
            logger.debug("Ignoring audio while not listening")
            return
        await self.audio_buffer.append_audio(data)

    async def interrupt(self) -> bool:
        """Cancel the in-flight response, keeping the connection open.

        Returns:
            False if there was no response to interrupt
        """
        async with self._lock:
            if self.state not in (ConversationState.PROCESSING, ConversationState.SPEAKING):
                logger.debug(f"Nothing to interrupt in state '{self.state.value}'")
                return False

            await self._send_event(ResponseCancelEvent(response_id=self._current_response_id))
            self.tool_bridge.cancel_pending()
            self._fail_waiters(TurnCancelledError("Response interrupted"))
            self._current_response_id = None
            self._set_state(ConversationState.READY)
        logger.info("Response interrupted")
        return True

    async def register_tool(
        self,
        name: str,
        executor: ToolExecutor,
        description: str = "",
        parameters: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Register a tool the model may call.

        A registration under an existing name replaces it. If the session is
        live the updated tool list is pushed to the server.
        """
        descriptor = OpenAITool.from_schema(name, description, parameters)
        self.tool_bridge.register(name, executor, descriptor)
        if self.state in _ACTIVE_STATES:
            await self.update_configuration(tools=self._merge_tools(self.session_config.tools))

    async def update_configuration(self, **changes: Any) -> SessionConfig:
        """Change session settings and send them as session.update.

        Raises:
            pydantic.ValidationError: if a change does not fit the session schema
        """
        self._require_active()
        async with self._lock:
            update = SessionConfig.model_validate(changes)
            merged = self.session_config.to_payload()
            merged.update(update.to_payload())
            self.session_config = SessionConfig.model_validate(merged)
            await self._send_event(SessionUpdateEvent(session=update))
        return self.session_config

    async def delete_item(self, item_id: str) -> None:
        """Ask the server to delete an item; removed locally on confirmation."""
        self._require_active()
        await self._send_event(ConversationItemDeleteEvent(item_id=item_id))

    async def truncate_item(self, item_id: str, content_index: int, audio_end_ms: int) -> None:
        """Ask the server to truncate an assistant audio item."""
        self._require_active()
        await self._send_event(
            ConversationItemTruncateEvent(
                item_id=item_id, content_index=content_index, audio_end_ms=audio_end_ms
            )
        )

    async def clear_audio_buffer(self) -> None:
        self._require_active()
        await self.audio_buffer.clear()

    async def wait_for_response(self, timeout: Optional[float] = None) -> ResponseObject:
        """Wait for the next completed response that does not end in a tool call.

        Raises:
            asyncio.TimeoutError: if no response completes in time
            TurnCancelledError: if the turn is interrupted or the session ends
            RealtimeConnectionError: if the connection is lost
        """
        waiter = asyncio.get_running_loop().create_future()
        self._response_waiters.append(waiter)
        try:
            return await asyncio.wait_for(waiter, timeout=timeout)
        finally:
            if waiter in self._response_waiters:
                self._response_waiters.remove(waiter)

    async def clear_history(self) -> None:
        """Forget local items, transcripts and tool history."""
        async with self._lock:
            self._items.clear()
            self.transcripts.reset()
            self.tool_bridge.history.clear()

    def export_as_text(self) -> str:
        """Render the conversation as ``role: content`` lines."""
        lines = []
        for item in self._items:
            if item.type == ConversationItemType.MESSAGE:
                role = item.role.value if item.role else "unknown"
                lines.append(f"{role}: {item.text}")
            elif item.type == ConversationItemType.FUNCTION_CALL:
                lines.append(f"function_call: {item.name}({item.arguments or ''})")
            else:
                lines.append(f"function_call_output: {item.output}")
        return "\n".join(lines)

    # Internals

    def _require_active(self) -> None:
        if self.state not in _ACTIVE_STATES or not self.transport.is_connected:
            raise RealtimeConnectionError(
                f"Session is not connected (state '{self.state.value}')"
            )

    async def _send_event(self, event: ClientEvent) -> None:
        await self.transport.send(self.codec.encode(event))
        logger.debug(f"Sent event: {event.type}")

    def _set_state(self, state: ConversationState) -> bool:
        if state == self.state:
            return False
        if not can_transition(self.state, state):
            logger.debug(f"Ignoring transition {self.state.value} -> {state.value}")
            return False
        previous, self.state = self.state, state
        logger.info(f"State {previous.value} -> {state.value}")
        self._state_changes.publish(state)
        return True

    def _create_feeds(self) -> None:
        self._transcript_updates: EventFeed = EventFeed("transcript_updates")
        self._audio_levels: EventFeed = EventFeed("audio_levels")
        self._state_changes: EventFeed = EventFeed("state_changes")
        self._audio_output: EventFeed = EventFeed("audio_output")

    def _close_feeds(self) -> None:
        for feed in (
            self._transcript_updates,
            self._audio_levels,
            self._state_changes,
            self._audio_output,
        ):
            feed.close()

    def _publish_level(self, level: float) -> None:
        self._audio_levels.publish(level)

    def _build_session_config(
        self,
        model: str,
        voice: Optional[str],
        instructions: Optional[str],
        tools: Optional[Sequence[ToolSpec]],
        turn_detection: Optional[Union[TurnDetection, Dict[str, Any]]],
        preset: Optional[SessionConfig],
        options: Dict[str, Any],
    ) -> SessionConfig:
        defaults = self.config.session
        values: Dict[str, Any] = {
            "modalities": ["text", "audio"],
            "voice": defaults.voice,
            "instructions": defaults.instructions,
            "input_audio_format": self.config.audio.input_format,
            "output_audio_format": self.config.audio.output_format,
            "turn_detection": TurnDetection.server_vad(),
            "temperature": defaults.temperature,
        }
        values = {key: value for key, value in values.items() if value is not None}
        if preset is not None:
            values.update(preset.to_payload())

        values["model"] = model
        if voice:
            values["voice"] = voice
        if instructions:
            values["instructions"] = instructions
        if turn_detection is not _UNSET:
            if isinstance(turn_detection, dict):
                turn_detection = TurnDetection.model_validate(turn_detection)
            values["turn_detection"] = turn_detection

        preset_tools = values.pop("tools", None) or []
        merged_tools = self._merge_tools(list(preset_tools) + list(tools or []))
        if merged_tools:
            values["tools"] = merged_tools
        values.update(options)
        return SessionConfig.model_validate(values)

    def _merge_tools(self, tools: Optional[Sequence[ToolSpec]]) -> List[Dict[str, Any]]:
        """Combine explicit tool descriptors with registered ones, by name."""
        merged: Dict[str, Dict[str, Any]] = {}
        for tool in tools or []:
            descriptor = tool.model_dump() if isinstance(tool, OpenAITool) else dict(tool)
            merged[descriptor.get("name", "")] = descriptor
        for descriptor in self.tool_bridge.get_descriptors():
            merged[descriptor["name"]] = descriptor
        return list(merged.values())

    def _fail_waiters(self, error: Exception) -> None:
        waiters, self._response_waiters = self._response_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_exception(error)

    def _resolve_waiters(self, response: ResponseObject) -> None:
        waiters, self._response_waiters = self._response_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(response)

    @staticmethod
    async def _cancel_task(task: Optional[asyncio.Task]) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        # wait() leaves a cancellation aimed at the caller intact
        await asyncio.wait({task})

    def _find_item_index(self, item_id: Optional[str]) -> Optional[int]:
        if item_id is None:
            return None
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None

    def _upsert_item(self, item: ConversationItem) -> None:
        index = self._find_item_index(item.id)
        if index is None:
            self._items.append(item)
        else:
            self._items[index] = item

    def _update_content_part(self, item_id: Optional[str], content_index: int, **fields: Any) -> None:
        index = self._find_item_index(item_id)
        if index is None:
            return
        item = self._items[index]
        content = list(item.content or [])
        while len(content) <= content_index:
            content.append(ContentPart(type="text"))
        content[content_index] = content[content_index].model_copy(update=fields)
        self._items[index] = item.model_copy(update={"content": content})

    async def _add_local_item(self, item: ConversationItem) -> None:
        async with self._lock:
            self._upsert_item(item)

    # Connection monitoring

    def _on_connection_state(self, state: ConnectionState) -> None:
        if state == ConnectionState.RECONNECTING:
            if self._set_state(ConversationState.RECONNECTING):
                self.audio_buffer.reset()
                self.tool_bridge.cancel_pending()
                self._fail_waiters(
                    RealtimeConnectionError("Connection lost during response")
                )
        elif state == ConnectionState.CONNECTED:
            if self.state == ConversationState.RECONNECTING:
                self._set_state(ConversationState.READY)
                self._restore_task = asyncio.create_task(self._restore_session())
        elif state == ConnectionState.ERROR:
            if self.state not in (ConversationState.CONNECTING, ConversationState.IDLE):
                self._set_state(ConversationState.ERROR)

    async def _restore_session(self) -> None:
        """Push the session configuration to the new server session."""
        try:
            await self._send_event(SessionUpdateEvent(session=self.session_config))
        except RealtimeConnectionError as e:
            logger.error(f"Could not restore session configuration: {e}")
            return
        logger.info("Session configuration restored after reconnect")

    async def _receive_loop(self) -> None:
        try:
            async for frame in self.transport.receive():
                try:
                    event = self.codec.decode(frame)
                except ProtocolError as e:
                    logger.warning(f"Dropping malformed frame: {e}")
                    continue
                async with self._lock:
                    await self.router.dispatch(event)
        except RealtimeConnectionError as e:
            logger.error(f"Connection failed permanently: {e}")
            self._set_state(ConversationState.ERROR)
            self._fail_waiters(e)

    # Server event handlers

    def _register_handlers(self) -> None:
        handlers = {
            ServerEventType.ERROR: self._on_error,
            ServerEventType.SESSION_CREATED: self._on_session,
            ServerEventType.SESSION_UPDATED: self._on_session,
            ServerEventType.CONVERSATION_ITEM_CREATED: self._on_item_created,
            ServerEventType.CONVERSATION_ITEM_DELETED: self._on_item_deleted,
            ServerEventType.CONVERSATION_ITEM_TRUNCATED: self._on_item_truncated,
            ServerEventType.CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_COMPLETED: self._on_input_transcription,
            ServerEventType.CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_FAILED: self._on_input_transcription_failed,
            ServerEventType.INPUT_AUDIO_BUFFER_SPEECH_STARTED: self._on_speech_started,
            ServerEventType.INPUT_AUDIO_BUFFER_SPEECH_STOPPED: self._on_input_committed,
            ServerEventType.INPUT_AUDIO_BUFFER_COMMITTED: self._on_input_committed,
            ServerEventType.RESPONSE_CREATED: self._on_response_created,
            ServerEventType.RESPONSE_OUTPUT_ITEM_ADDED: self._on_output_item,
            ServerEventType.RESPONSE_OUTPUT_ITEM_DONE: self._on_output_item,
            ServerEventType.RESPONSE_TEXT_DELTA: self._on_transcript_delta,
            ServerEventType.RESPONSE_AUDIO_TRANSCRIPT_DELTA: self._on_transcript_delta,
            ServerEventType.RESPONSE_TEXT_DONE: self._on_text_done,
            ServerEventType.RESPONSE_AUDIO_TRANSCRIPT_DONE: self._on_audio_transcript_done,
            ServerEventType.RESPONSE_AUDIO_DELTA: self._on_audio_delta,
            ServerEventType.RESPONSE_AUDIO_DONE: self._on_audio_done,
            ServerEventType.RESPONSE_DONE: self._on_response_done,
            ServerEventType.RESPONSE_FUNCTION_CALL_ARGUMENTS_DELTA: self.tool_bridge.handle_arguments_delta,
            ServerEventType.RESPONSE_FUNCTION_CALL_ARGUMENTS_DONE: self._on_function_call_done,
            ServerEventType.RATE_LIMITS_UPDATED: self._on_rate_limits,
        }
        for event_type, handler in handlers.items():
            self.router.register_handler(event_type.value, handler)

    def _on_error(self, event: ErrorEvent) -> None:
        self.last_server_error = event.error

    def _on_session(self, event: ServerEvent) -> None:
        self.server_session = event.session

    def _on_item_created(self, event: ConversationItemCreatedEvent) -> None:
        self._upsert_item(event.item)

    def _on_item_deleted(self, event: ConversationItemDeletedEvent) -> None:
        index = self._find_item_index(event.item_id)
        if index is not None:
            del self._items[index]

    def _on_item_truncated(self, event: ConversationItemTruncatedEvent) -> None:
        index = self._find_item_index(event.item_id)
        if index is None:
            return
        item = self._items[index]
        content = list(item.content or [])[: event.content_index + 1]
        self._items[index] = item.model_copy(update={"content": content})

    def _on_input_transcription(self, event: InputAudioTranscriptionCompletedEvent) -> None:
        self._update_content_part(
            event.item_id, event.content_index, transcript=event.transcript
        )
        self.transcripts.handle_input_completed(event.transcript)

    def _on_input_transcription_failed(self, event: InputAudioTranscriptionFailedEvent) -> None:
        logger.warning(f"Input transcription failed for {event.item_id}: {event.error.message}")

    def _on_speech_started(self, event: ServerEvent) -> None:
        self._set_state(ConversationState.LISTENING)

    def _on_input_committed(self, event: ServerEvent) -> None:
        if self.state == ConversationState.LISTENING:
            self._set_state(ConversationState.PROCESSING)

    def _on_response_created(self, event: ResponseCreatedEvent) -> None:
        self._current_response_id = event.response.id
        if self.state in (ConversationState.READY, ConversationState.LISTENING):
            self._set_state(ConversationState.PROCESSING)

    def _on_output_item(
        self, event: Union[ResponseOutputItemAddedEvent, ResponseOutputItemDoneEvent]
    ) -> None:
        self._upsert_item(event.item)
        self.tool_bridge.note_function_call_item(event.item)

    def _on_transcript_delta(
        self, event: Union[ResponseTextDeltaEvent, ResponseAudioTranscriptDeltaEvent]
    ) -> None:
        self.transcripts.handle_output_delta(event.item_id, event.delta)
        self._transcript_updates.publish(event.delta)

    def _on_text_done(self, event: ResponseTextDoneEvent) -> None:
        text = self.transcripts.handle_output_completed(event.item_id, event.text)
        self._update_content_part(event.item_id, event.content_index, type="text", text=text)

    def _on_audio_transcript_done(self, event: ResponseAudioTranscriptDoneEvent) -> None:
        transcript = self.transcripts.handle_output_completed(event.item_id, event.transcript)
        self._update_content_part(
            event.item_id, event.content_index, type="audio", transcript=transcript
        )

    def _on_audio_delta(self, event: ResponseAudioDeltaEvent) -> None:
        if self.state == ConversationState.PROCESSING:
            self._set_state(ConversationState.SPEAKING)
        audio = AudioUtils.convert_from_base64(event.delta)
        if audio:
            self._audio_output.publish(audio)

    def _on_audio_done(self, event: ServerEvent) -> None:
        if self.state == ConversationState.SPEAKING:
            self._set_state(ConversationState.READY)

    def _on_response_done(self, event: ResponseDoneEvent) -> None:
        self._current_response_id = None
        calls_tool = any(
            output.get("type") == ConversationItemType.FUNCTION_CALL.value
            for output in event.response.output
        )
        tools_running = any(not task.done() for task in self.tool_bridge.pending)

        # The turn continues with the tool output, so it stays interruptible
        if calls_tool or tools_running:
            if self.state == ConversationState.SPEAKING:
                self._set_state(ConversationState.PROCESSING)
            return

        if self.state in (ConversationState.PROCESSING, ConversationState.SPEAKING):
            self._set_state(ConversationState.READY)
        self._resolve_waiters(event.response)

    def _on_function_call_done(self, event: ResponseFunctionCallArgumentsDoneEvent) -> None:
        # The execution task re-enters the session lock, so it must not be awaited here
        self.tool_bridge.handle_arguments_done(event)

    def _on_rate_limits(self, event: RateLimitsUpdatedEvent) -> None:
        self.rate_limits = list(event.rate_limits)
