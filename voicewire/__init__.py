"""
voicewire - an asyncio client for streaming, bidirectional voice conversations
with the OpenAI Realtime API.
"""

__version__ = "0.1.0"

from voicewire.exceptions import (
    ConfigurationError,
    FeedError,
    ProtocolError,
    RealtimeConnectionError,
    RealtimeError,
    ToolExecutionError,
    TurnCancelledError,
)
from voicewire.models.conversation import ConnectionState, ConversationState
from voicewire.realtime.session import RealtimeSession

__all__ = [
    "RealtimeSession",
    "ConnectionState",
    "ConversationState",
    "RealtimeError",
    "RealtimeConnectionError",
    "ProtocolError",
    "ConfigurationError",
    "ToolExecutionError",
    "TurnCancelledError",
    "FeedError",
]
