import json

import pytest

from voicewire.exceptions import ProtocolError
from voicewire.models.openai_api import (
    ContentPart,
    ConversationItem,
    ConversationItemCreateEvent,
    ConversationItemDeleteEvent,
    ConversationItemTruncateEvent,
    ErrorEvent,
    InputAudioBufferAppendEvent,
    InputAudioBufferClearEvent,
    InputAudioBufferCommitEvent,
    ResponseCancelEvent,
    ResponseCreateEvent,
    ResponseCreateOptions,
    ResponseTextDeltaEvent,
    SessionConfig,
    SessionUpdateEvent,
    TurnDetection,
    UnknownEvent,
)
from voicewire.realtime.codec import EventCodec, generate_item_id


@pytest.fixture
def codec():
    return EventCodec()


CLIENT_EVENTS = [
    SessionUpdateEvent(
        session=SessionConfig(
            voice="nova",
            modalities=["text", "audio"],
            turn_detection=TurnDetection(threshold=0.5, silence_duration_ms=200),
            tools=[{"type": "function", "name": "lookup", "parameters": {}}],
        )
    ),
    InputAudioBufferAppendEvent(audio="AAECAw=="),
    InputAudioBufferCommitEvent(),
    InputAudioBufferClearEvent(),
    ConversationItemCreateEvent(
        item=ConversationItem(
            id="item_1",
            type="message",
            role="user",
            content=[ContentPart(type="input_text", text="Hello")],
        )
    ),
    ConversationItemTruncateEvent(item_id="item_2", content_index=0, audio_end_ms=1500),
    ConversationItemDeleteEvent(item_id="item_3"),
    ResponseCreateEvent(response=ResponseCreateOptions(modalities=["text"])),
    ResponseCancelEvent(response_id="resp_1"),
]


SERVER_FRAMES = [
    {"type": "error", "event_id": "e1", "error": {"type": "invalid_request_error", "message": "bad"}},
    {"type": "session.created", "event_id": "e2", "session": {"id": "sess_1", "voice": "alloy"}},
    {"type": "session.updated", "event_id": "e3", "session": {"voice": "nova"}},
    {"type": "conversation.created", "event_id": "e4", "conversation": {"id": "conv_1"}},
    {
        "type": "conversation.item.created",
        "event_id": "e5",
        "previous_item_id": "item_0",
        "item": {"id": "item_1", "type": "message", "role": "user", "content": [{"type": "input_text", "text": "Hi"}]},
    },
    {"type": "conversation.item.truncated", "event_id": "e6", "item_id": "item_1", "content_index": 0, "audio_end_ms": 10},
    {"type": "conversation.item.deleted", "event_id": "e7", "item_id": "item_1"},
    {"type": "conversation.item.input_audio_transcription.completed", "event_id": "e8", "item_id": "item_1", "content_index": 0, "transcript": "Hi"},
    {"type": "conversation.item.input_audio_transcription.failed", "event_id": "e9", "item_id": "item_1", "content_index": 0, "error": {"message": "nope"}},
    {"type": "input_audio_buffer.committed", "event_id": "e10", "item_id": "item_2"},
    {"type": "input_audio_buffer.cleared", "event_id": "e11"},
    {"type": "input_audio_buffer.speech_started", "event_id": "e12", "audio_start_ms": 100, "item_id": "item_3"},
    {"type": "input_audio_buffer.speech_stopped", "event_id": "e13", "audio_end_ms": 900, "item_id": "item_3"},
    {"type": "response.created", "event_id": "e14", "response": {"id": "resp_1", "status": "in_progress", "output": []}},
    {"type": "response.done", "event_id": "e15", "response": {"id": "resp_1", "status": "completed", "output": [{"type": "message"}]}},
    {"type": "response.output_item.added", "event_id": "e16", "response_id": "resp_1", "output_index": 0, "item": {"id": "item_4", "type": "message", "role": "assistant", "content": []}},
    {"type": "response.output_item.done", "event_id": "e17", "response_id": "resp_1", "output_index": 0, "item": {"id": "item_4", "type": "message", "role": "assistant", "content": []}},
    {"type": "response.content_part.added", "event_id": "e18", "response_id": "resp_1", "item_id": "item_4", "output_index": 0, "content_index": 0, "part": {"type": "text", "text": ""}},
    {"type": "response.content_part.done", "event_id": "e19", "response_id": "resp_1", "item_id": "item_4", "output_index": 0, "content_index": 0, "part": {"type": "text", "text": "Hi"}},
    {"type": "response.text.delta", "event_id": "e20", "response_id": "resp_1", "item_id": "item_4", "output_index": 0, "content_index": 0, "delta": "Hi"},
    {"type": "response.text.done", "event_id": "e21", "response_id": "resp_1", "item_id": "item_4", "output_index": 0, "content_index": 0, "text": "Hi"},
    {"type": "response.audio_transcript.delta", "event_id": "e22", "response_id": "resp_1", "item_id": "item_4", "output_index": 0, "content_index": 0, "delta": "Hi"},
    {"type": "response.audio_transcript.done", "event_id": "e23", "response_id": "resp_1", "item_id": "item_4", "output_index": 0, "content_index": 0, "transcript": "Hi"},
    {"type": "response.audio.delta", "event_id": "e24", "response_id": "resp_1", "item_id": "item_4", "output_index": 0, "content_index": 0, "delta": "AAA="},
    {"type": "response.audio.done", "event_id": "e25", "response_id": "resp_1", "item_id": "item_4", "output_index": 0, "content_index": 0},
    {"type": "response.function_call_arguments.delta", "event_id": "e26", "response_id": "resp_1", "item_id": "item_5", "output_index": 1, "call_id": "call_1", "delta": "{\"a\""},
    {"type": "response.function_call_arguments.done", "event_id": "e27", "response_id": "resp_1", "item_id": "item_5", "output_index": 1, "call_id": "call_1", "name": "lookup", "arguments": "{\"a\": 1}"},
    {"type": "rate_limits.updated", "event_id": "e28", "rate_limits": [{"name": "requests", "limit": 100, "remaining": 99, "reset_seconds": 1.5}]},
]


class TestEncode:
    def test_encode_is_compact_json_without_nulls(self, codec):
        data = codec.encode(ResponseCancelEvent())
        payload = json.loads(data)

        assert isinstance(data, bytes)
        assert b" " not in data
        assert payload["type"] == "response.cancel"
        assert "response_id" not in payload

    def test_encode_assigns_event_id(self, codec):
        event = InputAudioBufferCommitEvent()
        payload = json.loads(codec.encode(event))
        assert payload["event_id"].startswith("event_")

    def test_encode_leaves_event_unchanged(self, codec):
        event = InputAudioBufferCommitEvent()
        payload = json.loads(codec.encode(event))

        assert payload["event_id"].startswith("event_")
        assert event.event_id is None

    def test_encode_keeps_existing_event_id(self, codec):
        payload = json.loads(codec.encode(InputAudioBufferCommitEvent(event_id="mine")))
        assert payload["event_id"] == "mine"

    def test_event_ids_can_be_disabled(self):
        payload = json.loads(EventCodec(assign_event_ids=False).encode(InputAudioBufferCommitEvent()))
        assert "event_id" not in payload


class TestRoundTrip:
    @pytest.mark.parametrize("event", CLIENT_EVENTS, ids=lambda e: e.type)
    def test_client_events(self, codec, event):
        decoded = codec.decode_client_event(codec.encode(event))

        assert type(decoded) is type(event)
        assert decoded.model_dump(exclude_none=True) == event.model_dump(exclude_none=True)

    @pytest.mark.parametrize("frame", SERVER_FRAMES, ids=lambda f: f["type"])
    def test_server_events(self, codec, frame):
        event = codec.decode(json.dumps(frame))
        assert event.type == frame["type"]
        assert not isinstance(event, UnknownEvent)

        again = codec.decode(codec.encode(event))
        assert type(again) is type(event)
        assert again.model_dump(exclude_none=True) == event.model_dump(exclude_none=True)

    def test_server_frames_cover_every_event_type(self):
        from voicewire.models.openai_api import ServerEventType

        assert {frame["type"] for frame in SERVER_FRAMES} == {t.value for t in ServerEventType}


class TestDecode:
    def test_typed_payload(self, codec):
        event = codec.decode(
            '{"type": "response.text.delta", "item_id": "item_1", "delta": "Hel"}'
        )
        assert isinstance(event, ResponseTextDeltaEvent)
        assert event.delta == "Hel"

    def test_error_event(self, codec):
        event = codec.decode('{"type": "error", "error": {"code": "bad", "message": "Oops"}}')
        assert isinstance(event, ErrorEvent)
        assert event.error.message == "Oops"

    def test_unknown_type_is_preserved(self, codec):
        event = codec.decode(b'{"type": "future.event", "payload": {"x": 1}}')
        assert isinstance(event, UnknownEvent)
        assert event.type == "future.event"
        assert event.model_dump()["payload"] == {"x": 1}

    @pytest.mark.parametrize(
        "frame",
        [
            "not json",
            "[1, 2, 3]",
            '{"no_type": true}',
            '{"type": 7}',
            b"\x80\x81",
        ],
    )
    def test_malformed_frames(self, codec, frame):
        with pytest.raises(ProtocolError):
            codec.decode(frame)

    def test_schema_violation(self, codec):
        with pytest.raises(ProtocolError) as exc_info:
            codec.decode('{"type": "response.text.delta"}')
        assert exc_info.value.frame == '{"type": "response.text.delta"}'

    def test_unknown_client_event(self, codec):
        with pytest.raises(ProtocolError):
            codec.decode_client_event('{"type": "session.created"}')


def test_item_ids_fit_server_limit():
    item_id = generate_item_id()
    assert item_id.startswith("item_")
    assert len(item_id) <= 32
