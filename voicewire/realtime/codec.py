"""
JSON codec for Realtime API events.

Frames are JSON objects carrying a string ``type`` discriminator. Decoding is
driven by a single table from discriminator to model class; discriminators
that are not in the table decode to ``UnknownEvent`` so that new server events
never break an open session.
"""

import json
import uuid
from typing import Any, Dict, Type, Union

from pydantic import ValidationError

from voicewire.exceptions import ProtocolError
from voicewire.models.openai_api import (
    CLIENT_EVENT_CLASSES,
    SERVER_EVENT_CLASSES,
    ClientEvent,
    RealtimeEvent,
    ServerEvent,
    UnknownEvent,
    event_type_of,
)

SERVER_EVENT_MAP: Dict[str, Type[ServerEvent]] = {
    event_type_of(cls): cls for cls in SERVER_EVENT_CLASSES
}
CLIENT_EVENT_MAP: Dict[str, Type[ClientEvent]] = {
    event_type_of(cls): cls for cls in CLIENT_EVENT_CLASSES
}


def generate_event_id() -> str:
    """Create a client-side correlation id for an outbound event."""
    return f"event_{uuid.uuid4().hex}"


def generate_item_id() -> str:
    """Create a client-side conversation item id (at most 32 characters)."""
    return f"item_{uuid.uuid4().hex[:24]}"


class EventCodec:
    """Encode outbound events to frames and decode inbound frames to events."""

    def __init__(self, assign_event_ids: bool = True):
        self.assign_event_ids = assign_event_ids

    def encode(self, event: RealtimeEvent) -> bytes:
        """Serialize an event to compact UTF-8 JSON, omitting unset fields.

        The caller's event is left unchanged; a generated id goes on a copy.
        """
        if self.assign_event_ids and event.event_id is None:
            event = event.model_copy(update={"event_id": generate_event_id()})
        return event.model_dump_json(exclude_none=True).encode("utf-8")

    def decode(self, data: Union[str, bytes]) -> ServerEvent:
        """Parse an inbound frame into its server event model.

        Raises:
            ProtocolError: if the frame is not a JSON object with a string
                ``type`` or does not match the schema for its discriminator
        """
        payload = self._parse(data)
        event_class = SERVER_EVENT_MAP.get(payload["type"], UnknownEvent)
        return self._validate(event_class, payload, data)

    def decode_client_event(self, data: Union[str, bytes]) -> ClientEvent:
        """Parse an outbound frame back into its client event model."""
        payload = self._parse(data)
        event_class = CLIENT_EVENT_MAP.get(payload["type"])
        if event_class is None:
            raise ProtocolError(f"Unknown client event type: {payload['type']}", data)
        return self._validate(event_class, payload, data)

    @staticmethod
    def _parse(data: Union[str, bytes]) -> Dict[str, Any]:
        try:
            payload = json.loads(data)
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"Frame is not valid JSON: {e}", data) from e

        if not isinstance(payload, dict):
            raise ProtocolError("Frame is not a JSON object", data)
        if not isinstance(payload.get("type"), str):
            raise ProtocolError("Frame has no string 'type' field", data)
        return payload

    @staticmethod
    def _validate(event_class, payload: Dict[str, Any], data: Union[str, bytes]):
        try:
            return event_class.model_validate(payload)
        except ValidationError as e:
            raise ProtocolError(
                f"Invalid '{payload['type']}' event: {e.error_count()} validation error(s)",
                data,
            ) from e
