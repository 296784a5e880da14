"""
Constants and default values used throughout voicewire.

This module keeps the protocol and tuning defaults in one place so the
transport, the audio buffer and the session controller agree on them.
"""

# Logger name used throughout the application
LOGGER_NAME = "voicewire"

# Realtime endpoint defaults
DEFAULT_REALTIME_URL = "wss://api.openai.com/v1/realtime"
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview"
DEFAULT_BETA_HEADER = "realtime=v1"

# Default voice for assistant responses
VOICE = "alloy"

# Audio constants
DEFAULT_AUDIO_CHUNK_SIZE = 4096  # bytes per input_audio_buffer.append
DEFAULT_SAMPLE_RATE = 24000  # 24kHz pcm16 for the Realtime API
DEFAULT_AUDIO_FORMAT = "pcm16"
SUPPORTED_AUDIO_FORMATS = ("pcm16", "g711_ulaw", "g711_alaw")

# Reconnection and heartbeat
DEFAULT_MAX_RECONNECT_ATTEMPTS = 5
DEFAULT_RECONNECT_BASE_DELAY = 1.0  # seconds
DEFAULT_RECONNECT_MAX_DELAY = 30.0  # seconds
DEFAULT_HEARTBEAT_INTERVAL = 30.0  # seconds
DEFAULT_PROBE_TIMEOUT = 10.0  # seconds to wait for a pong
DEFAULT_OPEN_TIMEOUT = 10.0  # seconds for the opening handshake
DEFAULT_MAX_FRAME_SIZE = 16 * 1024 * 1024  # 16MB

# Tool execution
DEFAULT_TOOL_TIMEOUT = 30.0  # seconds
TOOL_HISTORY_SIZE = 100

# Turn detection defaults (server VAD)
DEFAULT_VAD_THRESHOLD = 0.5
DEFAULT_VAD_PREFIX_PADDING_MS = 300
DEFAULT_VAD_SILENCE_DURATION_MS = 200
