import asyncio
import base64
import struct
from unittest.mock import AsyncMock, MagicMock

import pytest

from voicewire.models.openai_api import (
    InputAudioBufferAppendEvent,
    InputAudioBufferClearEvent,
    InputAudioBufferCommitEvent,
)
from voicewire.realtime.audio_buffer import AudioBufferManager

CHUNK = 4096


@pytest.fixture
def send_event():
    return AsyncMock()


@pytest.fixture
def levels():
    return MagicMock()


@pytest.fixture
def buffer(send_event, levels):
    return AudioBufferManager(send_event, chunk_size=CHUNK, level_callback=levels)


def sent_events(send_event):
    return [call.args[0] for call in send_event.await_args_list]


def appended_sizes(send_event):
    return [
        len(base64.b64decode(event.audio))
        for event in sent_events(send_event)
        if isinstance(event, InputAudioBufferAppendEvent)
    ]


class TestChunking:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("k,r", [(0, 100), (1, 0), (2, 17), (3, 4095)])
    async def test_full_chunks_then_remainder_on_commit(self, buffer, send_event, k, r):
        await buffer.append_audio(b"\x01" * (CHUNK * k + r))
        assert appended_sizes(send_event) == [CHUNK] * k

        await buffer.commit()

        expected = [CHUNK] * k + ([r] if r else [])
        assert appended_sizes(send_event) == expected
        assert isinstance(sent_events(send_event)[-1], InputAudioBufferCommitEvent)

    @pytest.mark.asyncio
    async def test_small_appends_accumulate(self, buffer, send_event):
        for _ in range(8):
            await buffer.append_audio(b"\x00" * 1024)

        assert appended_sizes(send_event) == [CHUNK, CHUNK]
        assert buffer.buffered_bytes == 0

    @pytest.mark.asyncio
    async def test_chunks_preserve_byte_order(self, buffer, send_event):
        data = bytes(i % 251 for i in range(CHUNK * 2 + 10))
        await buffer.append_audio(data)
        await buffer.commit()

        payload = b"".join(
            base64.b64decode(event.audio)
            for event in sent_events(send_event)
            if isinstance(event, InputAudioBufferAppendEvent)
        )
        assert payload == data

    @pytest.mark.asyncio
    async def test_concurrent_appends_are_serialized(self, buffer, send_event):
        pieces = [bytes([n]) * 3000 for n in range(1, 6)]
        await asyncio.gather(*(buffer.append_audio(piece) for piece in pieces))
        await buffer.commit()

        payload = b"".join(
            base64.b64decode(event.audio)
            for event in sent_events(send_event)
            if isinstance(event, InputAudioBufferAppendEvent)
        )
        assert payload == b"".join(pieces)

    def test_rejects_non_positive_chunk_size(self, send_event):
        with pytest.raises(ValueError):
            AudioBufferManager(send_event, chunk_size=0)


class TestCommit:
    @pytest.mark.asyncio
    async def test_commit_without_audio_is_noop(self, buffer, send_event):
        assert await buffer.commit() is False
        send_event.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_second_commit_is_noop(self, buffer, send_event):
        await buffer.append_audio(b"\x00" * 10)
        assert await buffer.commit() is True
        assert await buffer.commit() is False
        assert send_event.await_count == 2

    @pytest.mark.asyncio
    async def test_commit_after_exact_chunks_sends_only_commit(self, buffer, send_event):
        await buffer.append_audio(b"\x00" * CHUNK)
        send_event.reset_mock()

        await buffer.commit()

        events = sent_events(send_event)
        assert len(events) == 1
        assert isinstance(events[0], InputAudioBufferCommitEvent)


class TestLevels:
    @pytest.mark.asyncio
    async def test_one_level_per_chunk(self, buffer, levels):
        await buffer.append_audio(b"\x00" * (CHUNK * 3))
        assert levels.call_count == 3
        assert all(call.args[0] == 0.0 for call in levels.call_args_list)

    @pytest.mark.asyncio
    async def test_level_reflects_signal(self, buffer, levels):
        loud = struct.pack("<h", 16384) * (CHUNK // 2)
        await buffer.append_audio(loud)
        assert levels.call_args.args[0] == pytest.approx(0.5)


class TestClear:
    @pytest.mark.asyncio
    async def test_clear_drops_local_audio(self, buffer, send_event):
        await buffer.append_audio(b"\x00" * 100)
        await buffer.clear()

        assert buffer.buffered_bytes == 0
        assert isinstance(sent_events(send_event)[-1], InputAudioBufferClearEvent)
        assert await buffer.commit() is False

    def test_reset_is_local(self, buffer, send_event):
        buffer._buffer.extend(b"\x00" * 10)
        buffer.reset()
        assert buffer.buffered_bytes == 0
        send_event.assert_not_called()
