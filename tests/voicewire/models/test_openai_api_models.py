import pytest
from pydantic import ValidationError

from voicewire.models.openai_api import (
    CLIENT_EVENT_CLASSES,
    SERVER_EVENT_CLASSES,
    ClientEventType,
    ContentPart,
    ConversationItem,
    ConversationItemType,
    InputAudioBufferAppendEvent,
    MessageRole,
    ResponseCreateEvent,
    ServerEventType,
    SessionConfig,
    SessionUpdateEvent,
    TurnDetection,
    UnknownEvent,
    event_type_of,
)


class TestEventClasses:
    def test_every_client_event_type_has_a_model(self):
        modelled = {event_type_of(cls) for cls in CLIENT_EVENT_CLASSES}
        assert modelled == {t.value for t in ClientEventType}

    def test_every_server_event_type_has_a_model(self):
        modelled = {event_type_of(cls) for cls in SERVER_EVENT_CLASSES}
        assert modelled == {t.value for t in ServerEventType}

    def test_discriminators_are_unique(self):
        types = [event_type_of(cls) for cls in SERVER_EVENT_CLASSES + CLIENT_EVENT_CLASSES]
        assert len(types) == len(set(types))

    def test_discriminator_is_fixed(self):
        with pytest.raises(ValidationError):
            ResponseCreateEvent(type="response.cancel")


class TestSessionConfig:
    def test_unset_fields_are_omitted(self):
        event = SessionUpdateEvent(
            session=SessionConfig(
                voice="nova",
                turn_detection=TurnDetection(threshold=0.5),
            )
        )
        data = event.model_dump(exclude_none=True)
        assert data == {
            "type": "session.update",
            "session": {
                "voice": "nova",
                "turn_detection": {"type": "server_vad", "threshold": 0.5},
            },
        }

    def test_server_echo_fields_are_kept(self):
        config = SessionConfig.model_validate(
            {"id": "sess_1", "object": "realtime.session", "voice": "alloy"}
        )
        assert config.model_dump(exclude_none=True)["id"] == "sess_1"

    def test_explicit_none_is_sent_as_null(self):
        event = SessionUpdateEvent(session=SessionConfig(turn_detection=None))
        assert event.model_dump(exclude_none=True) == {
            "type": "session.update",
            "session": {"turn_detection": None},
        }

    def test_payload_survives_revalidation(self):
        config = SessionConfig.model_validate(SessionConfig(voice="echo", turn_detection=None).to_payload())
        assert config.to_payload() == {"voice": "echo", "turn_detection": None}


class TestPresets:
    def test_voice_conversation(self):
        payload = SessionConfig.voice_conversation(voice="shimmer").to_payload()
        assert payload["modalities"] == ["text", "audio"]
        assert payload["voice"] == "shimmer"
        assert payload["turn_detection"]["type"] == "server_vad"
        assert payload["turn_detection"]["threshold"] == 0.5

    def test_text_only_disables_turn_detection(self):
        payload = SessionConfig.text_only().to_payload()
        assert payload["modalities"] == ["text"]
        assert "turn_detection" in payload
        assert payload["turn_detection"] is None

    def test_with_tools(self):
        tool = {"type": "function", "name": "lookup", "parameters": {"type": "object"}}
        config = SessionConfig.with_tools([tool])

        assert config.tools == [tool]
        assert config.tool_choice == "auto"
        assert config.turn_detection.type == "server_vad"


class TestConversationItem:
    def test_text_joins_text_and_transcripts(self):
        item = ConversationItem(
            type=ConversationItemType.MESSAGE,
            role=MessageRole.ASSISTANT,
            content=[
                ContentPart(type="text", text="Hello "),
                ContentPart(type="audio", transcript="there"),
            ],
        )
        assert item.text == "Hello there"

    def test_function_call_output(self):
        item = ConversationItem(type="function_call_output", call_id="call_1", output="{}")
        assert item.type == ConversationItemType.FUNCTION_CALL_OUTPUT
        assert item.content is None

    def test_invalid_item_type(self):
        with pytest.raises(ValidationError):
            ConversationItem(type="bogus")


def test_audio_is_hidden_from_repr():
    event = InputAudioBufferAppendEvent(audio="QUJD")
    assert "QUJD" not in repr(event)


def test_unknown_event_keeps_payload():
    event = UnknownEvent.model_validate({"type": "brand.new", "value": 3})
    assert event.type == "brand.new"
    assert event.model_dump(exclude_none=True) == {"type": "brand.new", "value": 3}
