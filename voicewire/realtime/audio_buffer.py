"""
Outbound audio buffering.

Microphone audio arrives in arbitrarily sized pieces. The buffer accumulates
it and forwards fixed-size chunks as ``input_audio_buffer.append`` events so
the server receives a steady stream regardless of capture granularity. Each
forwarded chunk also produces one level sample for UI meters.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from voicewire.config.constants import DEFAULT_AUDIO_CHUNK_SIZE
from voicewire.config.logging_config import configure_logging
from voicewire.models.openai_api import (
    ClientEvent,
    InputAudioBufferAppendEvent,
    InputAudioBufferClearEvent,
    InputAudioBufferCommitEvent,
)
from voicewire.utils.audio_utils import AudioUtils

logger = configure_logging("audio_buffer")

SendEvent = Callable[[ClientEvent], Awaitable[None]]
LevelCallback = Callable[[float], None]


class AudioBufferManager:
    """Chunk outbound PCM16 audio into input_audio_buffer events.

    Args:
        send_event: Coroutine used to deliver each outbound event
        chunk_size: Bytes per append event
        level_callback: Called with the RMS level of every chunk sent
    """

    def __init__(
        self,
        send_event: SendEvent,
        chunk_size: int = DEFAULT_AUDIO_CHUNK_SIZE,
        level_callback: Optional[LevelCallback] = None,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

        self.send_event = send_event
        self.chunk_size = chunk_size
        self.level_callback = level_callback

        self._buffer = bytearray()
        self._uncommitted = False
        self._lock = asyncio.Lock()

        self.chunks_sent = 0
        self.bytes_sent = 0

    @property
    def buffered_bytes(self) -> int:
        return len(self._buffer)

    @property
    def has_uncommitted_audio(self) -> bool:
        return self._uncommitted

    async def append_audio(self, data: bytes) -> int:
        """Buffer audio and send every complete chunk.

        Returns:
            Number of chunks sent by this call
        """
        if not data:
            return 0

        sent = 0
        async with self._lock:
            self._buffer.extend(data)
            self._uncommitted = True
            while len(self._buffer) >= self.chunk_size:
                chunk = bytes(self._buffer[: self.chunk_size])
                await self._send_chunk(chunk)
                del self._buffer[: self.chunk_size]
                sent += 1
        return sent

    async def commit(self) -> bool:
        """Flush any remainder and commit the server-side input buffer.

        Returns:
            False if nothing was appended since the last commit
        """
        async with self._lock:
            if not self._uncommitted:
                logger.debug("Commit skipped: no audio appended since last commit")
                return False

            if self._buffer:
                await self._send_chunk(bytes(self._buffer))
                self._buffer.clear()

            await self.send_event(InputAudioBufferCommitEvent())
            self._uncommitted = False
            logger.debug(f"Committed audio buffer ({self.bytes_sent} bytes sent so far)")
            return True

    async def clear(self) -> None:
        """Drop buffered audio locally and on the server."""
        async with self._lock:
            self.reset()
            await self.send_event(InputAudioBufferClearEvent())

    def reset(self) -> None:
        """Drop buffered audio locally without notifying the server."""
        self._buffer.clear()
        self._uncommitted = False

    async def _send_chunk(self, chunk: bytes) -> None:
        await self.send_event(
            InputAudioBufferAppendEvent(audio=AudioUtils.convert_to_base64(chunk))
        )
        self.chunks_sent += 1
        self.bytes_sent += len(chunk)

        if self.level_callback:
            self.level_callback(AudioUtils.calculate_audio_level(chunk))
