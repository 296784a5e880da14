"""
Pydantic models for OpenAI Realtime API message structures.

This module provides type-safe models for the messages exchanged with the
Realtime API, covering both the events a client sends (outbound) and the
events the server emits (inbound).

Every event carries a string ``type`` discriminator. Each concrete event model
pins that discriminator with a ``Literal`` default, so the discriminator alone
identifies the payload shape. Unknown inbound discriminators are represented by
``UnknownEvent`` rather than rejected.

All event models allow extra fields so that payload fields this client does not
model explicitly survive a decode/encode round trip.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from voicewire.config.constants import (
    DEFAULT_REALTIME_MODEL,
    DEFAULT_VAD_PREFIX_PADDING_MS,
    DEFAULT_VAD_SILENCE_DURATION_MS,
    DEFAULT_VAD_THRESHOLD,
    VOICE,
)


class MessageRole(str, Enum):
    """Role of a participant in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ConversationItemType(str, Enum):
    """Type of conversation item."""

    MESSAGE = "message"
    FUNCTION_CALL = "function_call"
    FUNCTION_CALL_OUTPUT = "function_call_output"


class ConversationItemStatus(str, Enum):
    """Status of a conversation item."""

    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    INCOMPLETE = "incomplete"


class ClientEventType(str, Enum):
    """Types of events that can be sent to the server."""

    SESSION_UPDATE = "session.update"
    INPUT_AUDIO_BUFFER_APPEND = "input_audio_buffer.append"
    INPUT_AUDIO_BUFFER_COMMIT = "input_audio_buffer.commit"
    INPUT_AUDIO_BUFFER_CLEAR = "input_audio_buffer.clear"
    CONVERSATION_ITEM_CREATE = "conversation.item.create"
    CONVERSATION_ITEM_TRUNCATE = "conversation.item.truncate"
    CONVERSATION_ITEM_DELETE = "conversation.item.delete"
    RESPONSE_CREATE = "response.create"
    RESPONSE_CANCEL = "response.cancel"


class ServerEventType(str, Enum):
    """Types of events received from the server."""

    ERROR = "error"
    SESSION_CREATED = "session.created"
    SESSION_UPDATED = "session.updated"
    CONVERSATION_CREATED = "conversation.created"
    CONVERSATION_ITEM_CREATED = "conversation.item.created"
    CONVERSATION_ITEM_TRUNCATED = "conversation.item.truncated"
    CONVERSATION_ITEM_DELETED = "conversation.item.deleted"
    CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_COMPLETED = (
        "conversation.item.input_audio_transcription.completed"
    )
    CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_FAILED = (
        "conversation.item.input_audio_transcription.failed"
    )
    INPUT_AUDIO_BUFFER_COMMITTED = "input_audio_buffer.committed"
    INPUT_AUDIO_BUFFER_CLEARED = "input_audio_buffer.cleared"
    INPUT_AUDIO_BUFFER_SPEECH_STARTED = "input_audio_buffer.speech_started"
    INPUT_AUDIO_BUFFER_SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
    RESPONSE_CREATED = "response.created"
    RESPONSE_DONE = "response.done"
    RESPONSE_OUTPUT_ITEM_ADDED = "response.output_item.added"
    RESPONSE_OUTPUT_ITEM_DONE = "response.output_item.done"
    RESPONSE_CONTENT_PART_ADDED = "response.content_part.added"
    RESPONSE_CONTENT_PART_DONE = "response.content_part.done"
    RESPONSE_TEXT_DELTA = "response.text.delta"
    RESPONSE_TEXT_DONE = "response.text.done"
    RESPONSE_AUDIO_TRANSCRIPT_DELTA = "response.audio_transcript.delta"
    RESPONSE_AUDIO_TRANSCRIPT_DONE = "response.audio_transcript.done"
    RESPONSE_AUDIO_DELTA = "response.audio.delta"
    RESPONSE_AUDIO_DONE = "response.audio.done"
    RESPONSE_FUNCTION_CALL_ARGUMENTS_DELTA = "response.function_call_arguments.delta"
    RESPONSE_FUNCTION_CALL_ARGUMENTS_DONE = "response.function_call_arguments.done"
    RATE_LIMITS_UPDATED = "rate_limits.updated"


# Session-related models


class TurnDetection(BaseModel):
    """Server-side voice activity detection parameters."""

    model_config = ConfigDict(extra="allow")

    type: str = "server_vad"
    threshold: Optional[float] = None
    prefix_padding_ms: Optional[int] = None
    silence_duration_ms: Optional[int] = None

    @classmethod
    def server_vad(cls) -> "TurnDetection":
        """Server VAD with the default threshold, padding and silence window."""
        return cls(
            type="server_vad",
            threshold=DEFAULT_VAD_THRESHOLD,
            prefix_padding_ms=DEFAULT_VAD_PREFIX_PADDING_MS,
            silence_duration_ms=DEFAULT_VAD_SILENCE_DURATION_MS,
        )


class SessionConfig(BaseModel):
    """Configuration for a Realtime API Session.

    This object defines the configuration for a new or updated session, including
    modalities, model selection, audio formats, VAD settings, and tools.
    """

    model_config = ConfigDict(extra="allow")

    modalities: Optional[List[str]] = None  # e.g. ["text", "audio"]
    model: Optional[str] = None
    instructions: Optional[str] = None
    voice: Optional[str] = None
    input_audio_format: Optional[str] = None  # "pcm16", "g711_ulaw", "g711_alaw"
    output_audio_format: Optional[str] = None
    input_audio_transcription: Optional[Dict[str, Any]] = None  # {"model": "whisper-1"}
    turn_detection: Optional[TurnDetection] = None
    tools: Optional[List[Dict[str, Any]]] = None
    tool_choice: Optional[str] = None
    temperature: Optional[float] = None
    max_response_output_tokens: Optional[Union[int, str]] = None

    def to_payload(self) -> Dict[str, Any]:
        """Dump for the wire.

        Unset fields are omitted. A field explicitly set to None is sent as
        null, which is how turn detection is switched off.
        """
        payload = self.model_dump(mode="json", exclude_none=True)
        for name in self.model_fields_set:
            if getattr(self, name, None) is None:
                payload[name] = None
        return payload

    @classmethod
    def voice_conversation(
        cls, model: str = DEFAULT_REALTIME_MODEL, voice: str = VOICE
    ) -> "SessionConfig":
        """Spoken conversation with server VAD."""
        return cls(
            modalities=["text", "audio"],
            model=model,
            voice=voice,
            turn_detection=TurnDetection.server_vad(),
        )

    @classmethod
    def text_only(cls, model: str = DEFAULT_REALTIME_MODEL) -> "SessionConfig":
        """Text in, text out, no voice activity detection."""
        return cls(
            modalities=["text"],
            model=model,
            voice=VOICE,
            turn_detection=None,
        )

    @classmethod
    def with_tools(
        cls,
        tools: List[Dict[str, Any]],
        model: str = DEFAULT_REALTIME_MODEL,
        voice: str = VOICE,
    ) -> "SessionConfig":
        """Spoken conversation where the model may call the given tools."""
        return cls(
            modalities=["text", "audio"],
            model=model,
            voice=voice,
            turn_detection=TurnDetection.server_vad(),
            tools=list(tools),
            tool_choice="auto",
        )


# Conversation-related models


class ContentPart(BaseModel):
    """One ordered content part of a conversation item."""

    model_config = ConfigDict(extra="allow")

    type: str  # "input_text", "input_audio", "text", "audio"
    text: Optional[str] = None
    audio: Optional[str] = None  # Base64 encoded audio
    transcript: Optional[str] = None


class ConversationItem(BaseModel):
    """An item in the conversation.

    Function items carry ``call_id``; ``function_call`` items also carry ``name``
    and ``arguments`` while ``function_call_output`` items carry ``output``.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    object: Optional[str] = None
    type: ConversationItemType
    status: Optional[ConversationItemStatus] = None
    role: Optional[MessageRole] = None
    content: Optional[List[ContentPart]] = None
    call_id: Optional[str] = None
    name: Optional[str] = None
    arguments: Optional[str] = None
    output: Optional[str] = None

    @property
    def text(self) -> str:
        """Concatenated text and transcript of all content parts."""
        parts = []
        for part in self.content or []:
            if part.text:
                parts.append(part.text)
            elif part.transcript:
                parts.append(part.transcript)
        return "".join(parts)


class ResponseCreateOptions(BaseModel):
    """Per-response overrides sent with response.create."""

    model_config = ConfigDict(extra="allow")

    modalities: Optional[List[str]] = None
    instructions: Optional[str] = None
    voice: Optional[str] = None
    output_audio_format: Optional[str] = None
    tools: Optional[List[Dict[str, Any]]] = None
    tool_choice: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[Union[int, str]] = None


class ResponseObject(BaseModel):
    """Response resource carried by response.created and response.done."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    object: Optional[str] = None
    status: Optional[str] = None
    status_details: Optional[Dict[str, Any]] = None
    output: List[Dict[str, Any]] = Field(default_factory=list)
    usage: Optional[Dict[str, Any]] = None


class ErrorDetails(BaseModel):
    """Error payload carried by error events."""

    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    code: Optional[str] = None
    message: str = ""
    param: Optional[str] = None
    event_id: Optional[str] = None


class RateLimit(BaseModel):
    """One rate limit bucket reported by rate_limits.updated."""

    model_config = ConfigDict(extra="allow")

    name: str
    limit: int
    remaining: int
    reset_seconds: float


# Event models for client-server communication


class RealtimeEvent(BaseModel):
    """Base model for every event frame."""

    model_config = ConfigDict(extra="allow")

    type: str
    event_id: Optional[str] = None


class ClientEvent(RealtimeEvent):
    """Base model for events sent to the server."""


class ServerEvent(RealtimeEvent):
    """Base model for events received from the server."""


# Outbound (client) events


class SessionUpdateEvent(ClientEvent):
    type: Literal["session.update"] = "session.update"
    session: SessionConfig

    @field_serializer("session")
    def _serialize_session(self, session: SessionConfig) -> Dict[str, Any]:
        return session.to_payload()


class InputAudioBufferAppendEvent(ClientEvent):
    type: Literal["input_audio_buffer.append"] = "input_audio_buffer.append"
    audio: str = Field(repr=False)  # Base64 encoded audio bytes


class InputAudioBufferCommitEvent(ClientEvent):
    type: Literal["input_audio_buffer.commit"] = "input_audio_buffer.commit"


class InputAudioBufferClearEvent(ClientEvent):
    type: Literal["input_audio_buffer.clear"] = "input_audio_buffer.clear"


class ConversationItemCreateEvent(ClientEvent):
    type: Literal["conversation.item.create"] = "conversation.item.create"
    previous_item_id: Optional[str] = None
    item: ConversationItem


class ConversationItemTruncateEvent(ClientEvent):
    type: Literal["conversation.item.truncate"] = "conversation.item.truncate"
    item_id: str
    content_index: int
    audio_end_ms: int


class ConversationItemDeleteEvent(ClientEvent):
    type: Literal["conversation.item.delete"] = "conversation.item.delete"
    item_id: str


class ResponseCreateEvent(ClientEvent):
    type: Literal["response.create"] = "response.create"
    response: Optional[ResponseCreateOptions] = None


class ResponseCancelEvent(ClientEvent):
    type: Literal["response.cancel"] = "response.cancel"
    response_id: Optional[str] = None


# Inbound (server) events


class ErrorEvent(ServerEvent):
    type: Literal["error"] = "error"
    error: ErrorDetails


class SessionCreatedEvent(ServerEvent):
    type: Literal["session.created"] = "session.created"
    session: SessionConfig


class SessionUpdatedEvent(ServerEvent):
    type: Literal["session.updated"] = "session.updated"
    session: SessionConfig


class ConversationCreatedEvent(ServerEvent):
    type: Literal["conversation.created"] = "conversation.created"
    conversation: Dict[str, Any] = Field(default_factory=dict)


class ConversationItemCreatedEvent(ServerEvent):
    type: Literal["conversation.item.created"] = "conversation.item.created"
    previous_item_id: Optional[str] = None
    item: ConversationItem


class ConversationItemTruncatedEvent(ServerEvent):
    type: Literal["conversation.item.truncated"] = "conversation.item.truncated"
    item_id: str
    content_index: int = 0
    audio_end_ms: int = 0


class ConversationItemDeletedEvent(ServerEvent):
    type: Literal["conversation.item.deleted"] = "conversation.item.deleted"
    item_id: str


class InputAudioTranscriptionCompletedEvent(ServerEvent):
    type: Literal["conversation.item.input_audio_transcription.completed"] = (
        "conversation.item.input_audio_transcription.completed"
    )
    item_id: str
    content_index: int = 0
    transcript: str = ""


class InputAudioTranscriptionFailedEvent(ServerEvent):
    type: Literal["conversation.item.input_audio_transcription.failed"] = (
        "conversation.item.input_audio_transcription.failed"
    )
    item_id: str
    content_index: int = 0
    error: ErrorDetails


class InputAudioBufferCommittedEvent(ServerEvent):
    type: Literal["input_audio_buffer.committed"] = "input_audio_buffer.committed"
    previous_item_id: Optional[str] = None
    item_id: Optional[str] = None


class InputAudioBufferClearedEvent(ServerEvent):
    type: Literal["input_audio_buffer.cleared"] = "input_audio_buffer.cleared"


class InputAudioBufferSpeechStartedEvent(ServerEvent):
    type: Literal["input_audio_buffer.speech_started"] = (
        "input_audio_buffer.speech_started"
    )
    audio_start_ms: Optional[int] = None
    item_id: Optional[str] = None


class InputAudioBufferSpeechStoppedEvent(ServerEvent):
    type: Literal["input_audio_buffer.speech_stopped"] = (
        "input_audio_buffer.speech_stopped"
    )
    audio_end_ms: Optional[int] = None
    item_id: Optional[str] = None


class ResponseCreatedEvent(ServerEvent):
    type: Literal["response.created"] = "response.created"
    response: ResponseObject


class ResponseDoneEvent(ServerEvent):
    type: Literal["response.done"] = "response.done"
    response: ResponseObject


class ResponseOutputItemAddedEvent(ServerEvent):
    type: Literal["response.output_item.added"] = "response.output_item.added"
    response_id: Optional[str] = None
    output_index: int = 0
    item: ConversationItem


class ResponseOutputItemDoneEvent(ServerEvent):
    type: Literal["response.output_item.done"] = "response.output_item.done"
    response_id: Optional[str] = None
    output_index: int = 0
    item: ConversationItem


class ResponseContentPartAddedEvent(ServerEvent):
    type: Literal["response.content_part.added"] = "response.content_part.added"
    response_id: Optional[str] = None
    item_id: Optional[str] = None
    output_index: int = 0
    content_index: int = 0
    part: ContentPart


class ResponseContentPartDoneEvent(ServerEvent):
    type: Literal["response.content_part.done"] = "response.content_part.done"
    response_id: Optional[str] = None
    item_id: Optional[str] = None
    output_index: int = 0
    content_index: int = 0
    part: ContentPart


class ResponseTextDeltaEvent(ServerEvent):
    type: Literal["response.text.delta"] = "response.text.delta"
    response_id: Optional[str] = None
    item_id: Optional[str] = None
    output_index: int = 0
    content_index: int = 0
    delta: str


class ResponseTextDoneEvent(ServerEvent):
    type: Literal["response.text.done"] = "response.text.done"
    response_id: Optional[str] = None
    item_id: Optional[str] = None
    output_index: int = 0
    content_index: int = 0
    text: str


class ResponseAudioTranscriptDeltaEvent(ServerEvent):
    type: Literal["response.audio_transcript.delta"] = "response.audio_transcript.delta"
    response_id: Optional[str] = None
    item_id: Optional[str] = None
    output_index: int = 0
    content_index: int = 0
    delta: str


class ResponseAudioTranscriptDoneEvent(ServerEvent):
    type: Literal["response.audio_transcript.done"] = "response.audio_transcript.done"
    response_id: Optional[str] = None
    item_id: Optional[str] = None
    output_index: int = 0
    content_index: int = 0
    transcript: str


class ResponseAudioDeltaEvent(ServerEvent):
    type: Literal["response.audio.delta"] = "response.audio.delta"
    response_id: Optional[str] = None
    item_id: Optional[str] = None
    output_index: int = 0
    content_index: int = 0
    delta: str = Field(repr=False)  # Base64 encoded audio


class ResponseAudioDoneEvent(ServerEvent):
    type: Literal["response.audio.done"] = "response.audio.done"
    response_id: Optional[str] = None
    item_id: Optional[str] = None
    output_index: int = 0
    content_index: int = 0


class ResponseFunctionCallArgumentsDeltaEvent(ServerEvent):
    type: Literal["response.function_call_arguments.delta"] = (
        "response.function_call_arguments.delta"
    )
    response_id: Optional[str] = None
    item_id: Optional[str] = None
    output_index: int = 0
    call_id: str
    delta: str


class ResponseFunctionCallArgumentsDoneEvent(ServerEvent):
    type: Literal["response.function_call_arguments.done"] = (
        "response.function_call_arguments.done"
    )
    response_id: Optional[str] = None
    item_id: Optional[str] = None
    output_index: int = 0
    call_id: str
    name: Optional[str] = None
    arguments: str = ""


class RateLimitsUpdatedEvent(ServerEvent):
    type: Literal["rate_limits.updated"] = "rate_limits.updated"
    rate_limits: List[RateLimit] = Field(default_factory=list)


class UnknownEvent(ServerEvent):
    """An inbound event whose discriminator this client does not recognize.

    The raw payload is preserved as extra fields.
    """


CLIENT_EVENT_CLASSES: List[Type[ClientEvent]] = [
    SessionUpdateEvent,
    InputAudioBufferAppendEvent,
    InputAudioBufferCommitEvent,
    InputAudioBufferClearEvent,
    ConversationItemCreateEvent,
    ConversationItemTruncateEvent,
    ConversationItemDeleteEvent,
    ResponseCreateEvent,
    ResponseCancelEvent,
]

SERVER_EVENT_CLASSES: List[Type[ServerEvent]] = [
    ErrorEvent,
    SessionCreatedEvent,
    SessionUpdatedEvent,
    ConversationCreatedEvent,
    ConversationItemCreatedEvent,
    ConversationItemTruncatedEvent,
    ConversationItemDeletedEvent,
    InputAudioTranscriptionCompletedEvent,
    InputAudioTranscriptionFailedEvent,
    InputAudioBufferCommittedEvent,
    InputAudioBufferClearedEvent,
    InputAudioBufferSpeechStartedEvent,
    InputAudioBufferSpeechStoppedEvent,
    ResponseCreatedEvent,
    ResponseDoneEvent,
    ResponseOutputItemAddedEvent,
    ResponseOutputItemDoneEvent,
    ResponseContentPartAddedEvent,
    ResponseContentPartDoneEvent,
    ResponseTextDeltaEvent,
    ResponseTextDoneEvent,
    ResponseAudioTranscriptDeltaEvent,
    ResponseAudioTranscriptDoneEvent,
    ResponseAudioDeltaEvent,
    ResponseAudioDoneEvent,
    ResponseFunctionCallArgumentsDeltaEvent,
    ResponseFunctionCallArgumentsDoneEvent,
    RateLimitsUpdatedEvent,
]


def event_type_of(event_class: Type[RealtimeEvent]) -> str:
    """Return the discriminator pinned by an event class."""
    return event_class.model_fields["type"].default
