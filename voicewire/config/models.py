"""
Configuration models for voicewire.

This module defines dataclasses for the different configuration domains,
providing type safety and validation for all client settings.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlencode, urlparse

from voicewire.config.constants import (
    DEFAULT_AUDIO_CHUNK_SIZE,
    DEFAULT_AUDIO_FORMAT,
    DEFAULT_BETA_HEADER,
    DEFAULT_HEARTBEAT_INTERVAL,
    DEFAULT_MAX_FRAME_SIZE,
    DEFAULT_MAX_RECONNECT_ATTEMPTS,
    DEFAULT_OPEN_TIMEOUT,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_URL,
    DEFAULT_RECONNECT_BASE_DELAY,
    DEFAULT_RECONNECT_MAX_DELAY,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_TOOL_TIMEOUT,
    SUPPORTED_AUDIO_FORMATS,
    VOICE,
)


class LogLevel(Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class OpenAIConfig:
    """Realtime endpoint and credential settings."""

    api_key: Optional[str] = None
    model: str = DEFAULT_REALTIME_MODEL
    base_url: str = DEFAULT_REALTIME_URL
    beta_header: str = DEFAULT_BETA_HEADER

    def get_websocket_url(self, model: Optional[str] = None) -> str:
        """Get the Realtime WebSocket URL for a model."""
        return f"{self.base_url}?{urlencode({'model': model or self.model})}"

    def get_headers(self, api_key: Optional[str] = None) -> Dict[str, str]:
        """Get headers for Realtime API authentication.

        Args:
            api_key: Credential to use instead of the configured one
        """
        key = api_key or self.api_key
        if not key:
            raise ValueError("OpenAI API key is required")
        return {
            "Authorization": f"Bearer {key}",
            "OpenAI-Beta": self.beta_header,
        }


@dataclass
class TransportConfig:
    """WebSocket transport, heartbeat and reconnection settings."""

    max_reconnect_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS
    reconnect_base_delay: float = DEFAULT_RECONNECT_BASE_DELAY
    reconnect_max_delay: float = DEFAULT_RECONNECT_MAX_DELAY
    heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    open_timeout: float = DEFAULT_OPEN_TIMEOUT
    max_frame_size: int = DEFAULT_MAX_FRAME_SIZE


@dataclass
class AudioConfig:
    """Outbound audio buffering configuration."""

    chunk_size: int = DEFAULT_AUDIO_CHUNK_SIZE
    sample_rate: int = DEFAULT_SAMPLE_RATE
    input_format: str = DEFAULT_AUDIO_FORMAT
    output_format: str = DEFAULT_AUDIO_FORMAT
    supported_formats: List[str] = field(
        default_factory=lambda: list(SUPPORTED_AUDIO_FORMATS)
    )


@dataclass
class SessionDefaults:
    """Defaults applied to a new conversation session."""

    voice: str = VOICE
    instructions: Optional[str] = None
    temperature: Optional[float] = None
    tool_timeout: float = DEFAULT_TOOL_TIMEOUT


@dataclass
class LoggingConfig:
    """Logging configuration settings."""

    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_dir: Path = field(default_factory=lambda: Path("logs"))
    log_filename: str = "voicewire.log"
    max_log_size: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    console_output: bool = True
    file_output: bool = True


@dataclass
class ApplicationConfig:
    """Master configuration containing all domain configs."""

    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    session: SessionDefaults = field(default_factory=SessionDefaults)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors.

        A missing API key is not reported here; the session refuses to start
        without one.
        """
        errors = []

        parsed = urlparse(self.openai.base_url)
        if parsed.scheme not in ("ws", "wss") or not parsed.netloc:
            errors.append(
                f"Realtime URL must be a ws:// or wss:// address, got '{self.openai.base_url}'"
            )

        if self.transport.max_reconnect_attempts < 0:
            errors.append("Max reconnect attempts cannot be negative")

        if self.transport.reconnect_base_delay <= 0:
            errors.append("Reconnect base delay must be positive")

        if self.transport.reconnect_max_delay < self.transport.reconnect_base_delay:
            errors.append("Reconnect max delay must not be below the base delay")

        if self.transport.heartbeat_interval <= 0:
            errors.append("Heartbeat interval must be positive")

        if self.audio.chunk_size <= 0:
            errors.append("Audio chunk size must be positive")

        for audio_format in (self.audio.input_format, self.audio.output_format):
            if audio_format not in self.audio.supported_formats:
                errors.append(f"Unsupported audio format: {audio_format}")

        return errors
