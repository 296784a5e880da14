"""Event router for inbound Realtime API events.

This module dispatches decoded server events to the handlers registered for
their discriminator. Handlers run in priority order and a failing handler
never prevents the others from running.
"""

import inspect
from typing import Any, Callable, Dict, List, Tuple

from voicewire.config.logging_config import configure_logging
from voicewire.models.openai_api import (
    ErrorEvent,
    ResponseDoneEvent,
    ServerEvent,
    ServerEventType,
    UnknownEvent,
)

logger = configure_logging("event_router")

Handler = Callable[[ServerEvent], Any]

# High-frequency events that are only logged at debug level
QUIET_EVENT_TYPES = {
    ServerEventType.RESPONSE_AUDIO_DELTA.value,
    ServerEventType.RESPONSE_AUDIO_TRANSCRIPT_DELTA.value,
    ServerEventType.RESPONSE_TEXT_DELTA.value,
    ServerEventType.RESPONSE_FUNCTION_CALL_ARGUMENTS_DELTA.value,
}


class EventRouter:
    """Router for events received from the Realtime API.

    Features:
    - Multiple handlers per event type with priority ordering
    - Error isolation to prevent handler failures from affecting other handlers

    Attributes:
        handlers (Dict[str, List[Tuple[int, Callable]]]): Priority-ordered handlers by event type
    """

    def __init__(self):
        self.handlers: Dict[str, List[Tuple[int, Handler]]] = {}

    def register_handler(self, event_type: str, handler: Handler, priority: int = 0) -> None:
        """Register a handler for an event type.

        Args:
            event_type: The event discriminator to handle
            handler: Sync or async callable taking the decoded event
            priority: Handler priority (higher numbers execute first)
        """
        event_type = getattr(event_type, "value", event_type)
        handlers = self.handlers.setdefault(event_type, [])
        handlers.append((priority, handler))
        handlers.sort(key=lambda x: x[0], reverse=True)
        logger.debug(f"Registered handler for event type: {event_type} (priority: {priority})")

    async def dispatch(self, event: ServerEvent) -> None:
        """Route one decoded event to its handlers."""
        if event.type in QUIET_EVENT_TYPES:
            logger.debug(f"Received event: {event.type}")
        else:
            logger.info(f"Received event: {event.type}")

        self._log_event(event)

        handlers = self.handlers.get(event.type, [])
        if handlers:
            await self._execute_handlers(handlers, event)
        elif isinstance(event, UnknownEvent):
            logger.warning(f"Unknown event type: {event.type}")
        else:
            logger.debug(f"No handler for event type: {event.type}")

    def _log_event(self, event: ServerEvent) -> None:
        if isinstance(event, ErrorEvent):
            error = event.error
            logger.error(
                f"Server error: type={error.type}, code={error.code}, message='{error.message}'"
            )
        elif isinstance(event, ResponseDoneEvent) and event.response.status == "failed":
            error_info = (event.response.status_details or {}).get("error", {})
            logger.error(
                f"Response failed: {error_info.get('message', 'Unknown error')} "
                f"(type={error_info.get('type')}, code={error_info.get('code')})"
            )

    async def _execute_handlers(
        self, handlers: List[Tuple[int, Handler]], event: ServerEvent
    ) -> None:
        """Execute handlers with error isolation."""
        for priority, handler in list(handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"Error in {event.type} handler (priority {priority}): {e}",
                    exc_info=True,
                )
