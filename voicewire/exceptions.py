"""
Exception hierarchy for the realtime client.

Errors are grouped by how the session reacts to them:

- RealtimeConnectionError: network level; retried by the transport up to the
  reconnection budget, then surfaced once as a terminal error.
- ProtocolError: a malformed or schema-violating frame; logged and dropped.
- ConfigurationError: missing credential or invalid target; raised at start.
- ToolExecutionError: a tool executor failed; converted into an
  error-bearing function_call_output.
- TurnCancelledError: the current turn was interrupted or the session ended.
- FeedError: a notification feed was used against its declared multiplicity.
"""

from typing import Any, Optional


class RealtimeError(Exception):
    """Base class for all voicewire errors."""


class RealtimeConnectionError(RealtimeError):
    """The connection could not be opened, was lost, or is not available."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ProtocolError(RealtimeError):
    """A frame could not be parsed into a known event shape."""

    def __init__(self, message: str, frame: Any = None):
        super().__init__(message)
        self.frame = frame


class ConfigurationError(RealtimeError):
    """The session cannot start with the given configuration."""


class ToolExecutionError(RealtimeError):
    """A registered tool raised or timed out while handling a call."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name


class TurnCancelledError(RealtimeError):
    """The in-flight turn was cancelled before the response completed."""


class FeedError(RealtimeError):
    """A notification feed was misused."""
