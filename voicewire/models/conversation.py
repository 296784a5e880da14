"""
Connection and conversation lifecycle states.

``ConversationState`` transitions are constrained by ``CONVERSATION_TRANSITIONS``;
the session ignores any transition not listed there.
"""

from enum import Enum
from typing import Dict, FrozenSet


class ConnectionState(str, Enum):
    """Lifecycle of the single live connection owned by the transport."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"


class ConversationState(str, Enum):
    """Lifecycle of a conversation session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    LISTENING = "listening"
    PROCESSING = "processing"
    SPEAKING = "speaking"
    RECONNECTING = "reconnecting"
    DISCONNECTING = "disconnecting"
    ERROR = "error"


_S = ConversationState

CONVERSATION_TRANSITIONS: Dict[ConversationState, FrozenSet[ConversationState]] = {
    _S.IDLE: frozenset({_S.CONNECTING, _S.DISCONNECTING}),
    _S.CONNECTING: frozenset({_S.READY, _S.ERROR, _S.RECONNECTING, _S.DISCONNECTING}),
    _S.READY: frozenset(
        {_S.LISTENING, _S.PROCESSING, _S.RECONNECTING, _S.ERROR, _S.DISCONNECTING}
    ),
    _S.LISTENING: frozenset(
        {_S.PROCESSING, _S.READY, _S.RECONNECTING, _S.ERROR, _S.DISCONNECTING}
    ),
    _S.PROCESSING: frozenset(
        {_S.SPEAKING, _S.READY, _S.LISTENING, _S.RECONNECTING, _S.ERROR, _S.DISCONNECTING}
    ),
    _S.SPEAKING: frozenset(
        {_S.READY, _S.LISTENING, _S.PROCESSING, _S.RECONNECTING, _S.ERROR, _S.DISCONNECTING}
    ),
    _S.RECONNECTING: frozenset({_S.READY, _S.ERROR, _S.DISCONNECTING}),
    _S.DISCONNECTING: frozenset({_S.IDLE}),
    _S.ERROR: frozenset({_S.CONNECTING, _S.DISCONNECTING}),
}


def can_transition(current: ConversationState, target: ConversationState) -> bool:
    """Return True if ``current`` may move to ``target``."""
    return target in CONVERSATION_TRANSITIONS.get(current, frozenset())
