from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from voicewire.handlers.event_router import EventRouter
from voicewire.models.openai_api import (
    ErrorEvent,
    ResponseTextDeltaEvent,
    ServerEventType,
    UnknownEvent,
)
from voicewire.realtime.codec import EventCodec


@pytest.fixture
def router():
    return EventRouter()


def text_delta(delta="hi"):
    return ResponseTextDeltaEvent(item_id="item_1", delta=delta)


class TestDispatch:
    @pytest.mark.asyncio
    async def test_sync_and_async_handlers(self, router):
        sync_handler = MagicMock()
        async_handler = AsyncMock()
        router.register_handler("response.text.delta", sync_handler)
        router.register_handler(ServerEventType.RESPONSE_TEXT_DELTA, async_handler)

        event = text_delta()
        await router.dispatch(event)

        sync_handler.assert_called_once_with(event)
        async_handler.assert_awaited_once_with(event)

    @pytest.mark.asyncio
    async def test_priority_order(self, router):
        calls = []
        router.register_handler("response.text.delta", lambda e: calls.append("low"), priority=1)
        router.register_handler("response.text.delta", lambda e: calls.append("high"), priority=5)

        await router.dispatch(text_delta())

        assert calls == ["high", "low"]

    @pytest.mark.asyncio
    async def test_failing_handler_is_isolated(self, router):
        after = MagicMock()
        router.register_handler("response.text.delta", MagicMock(side_effect=RuntimeError("boom")), priority=1)
        router.register_handler("response.text.delta", after)

        await router.dispatch(text_delta())

        after.assert_called_once()

    @pytest.mark.asyncio
    async def test_unknown_event_without_handler(self, router):
        event = EventCodec().decode('{"type": "response.future_feature", "x": 1}')
        assert isinstance(event, UnknownEvent)

        with patch("voicewire.handlers.event_router.logger") as logger:
            await router.dispatch(event)

        logger.warning.assert_called_once_with("Unknown event type: response.future_feature")

    @pytest.mark.asyncio
    async def test_error_event_is_logged(self, router):
        event = ErrorEvent(error={"type": "invalid_request_error", "message": "bad"})
        with patch("voicewire.handlers.event_router.logger") as logger:
            await router.dispatch(event)
        assert "Server error" in logger.error.call_args.args[0]

