"""
Shared audio utilities.

Helpers for the base64 transport encoding used by the Realtime API and for
measuring the level of 16-bit little-endian PCM audio.
"""

import base64
import logging

import numpy as np

logger = logging.getLogger(__name__)

PCM16_MAX = 32768.0


class AudioUtils:
    """Shared audio utility functions."""

    @staticmethod
    def convert_to_base64(audio_data: bytes) -> str:
        """
        Convert audio data to base64 string.

        Args:
            audio_data (bytes): Raw audio data

        Returns:
            str: Base64 encoded string
        """
        return base64.b64encode(audio_data).decode("utf-8")

    @staticmethod
    def convert_from_base64(base64_data: str) -> bytes:
        """
        Convert base64 string back to audio data.

        Args:
            base64_data (str): Base64 encoded audio data

        Returns:
            bytes: Raw audio data, or empty bytes if the input is not valid base64
        """
        try:
            return base64.b64decode(base64_data, validate=True)
        except ValueError as e:
            logger.error(f"Error decoding base64 audio: {e}")
            return b""

    @staticmethod
    def calculate_audio_level(audio_data: bytes) -> float:
        """
        Measure the RMS level of PCM16 little-endian audio.

        Args:
            audio_data (bytes): PCM16 audio data; a trailing odd byte is ignored

        Returns:
            float: Level normalized to [0.0, 1.0]
        """
        usable = len(audio_data) - (len(audio_data) % 2)
        if usable == 0:
            return 0.0

        samples = np.frombuffer(audio_data[:usable], dtype="<i2").astype(np.float64)
        rms = float(np.sqrt(np.mean(np.square(samples))))
        return min(1.0, rms / PCM16_MAX)
