"""
Environment variable loader for voicewire configuration.

This module handles loading configuration from environment variables,
with type conversion, validation, and fallback to defaults. A `.env` file is
read through python-dotenv the first time configuration is requested.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar, cast

from dotenv import load_dotenv

from .constants import (
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
    VOICE,
)
from .models import (
    ApplicationConfig,
    AudioConfig,
    LoggingConfig,
    LogLevel,
    OpenAIConfig,
    SessionDefaults,
    TransportConfig,
)

# Track if environment variables have been loaded
_env_loaded = False


def load_env_file(env_file: Optional[str] = None) -> None:
    """Load environment variables from a .env file.

    Args:
        env_file: Path to the .env file. If None, uses default behavior.
    """
    global _env_loaded
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()
    _env_loaded = True


def _ensure_env_loaded() -> None:
    if not _env_loaded:
        load_env_file()


T = TypeVar("T")


def safe_convert(value: Optional[str], target_type: Type[T], default: T) -> T:
    """Safely convert environment variable string to target type."""
    if value is None:
        return default

    try:
        if target_type == bool:
            return cast(T, value.strip().lower() in ("true", "1", "yes"))
        elif target_type == int:
            return cast(T, int(value))
        elif target_type == float:
            return cast(T, float(value))
        elif target_type == str:
            return cast(T, value)
        elif target_type == Path:
            return cast(T, Path(value))
        elif callable(target_type):
            return cast(T, target_type(value))  # type: ignore
        else:
            return default
    except (ValueError, TypeError):
        return default


def safe_string_or_none(value: Optional[str]) -> Optional[str]:
    """Convert environment variable to string or None if empty."""
    if value is None or value.strip() == "":
        return None
    return value.strip()


def load_openai_config() -> OpenAIConfig:
    """Load Realtime endpoint configuration from environment variables."""
    _ensure_env_loaded()

    return OpenAIConfig(
        api_key=safe_string_or_none(os.getenv("OPENAI_API_KEY")),
        model=os.getenv("OPENAI_REALTIME_MODEL", DEFAULT_REALTIME_MODEL),
        base_url=os.getenv("OPENAI_REALTIME_URL", DEFAULT_REALTIME_URL),
        beta_header=os.getenv("OPENAI_BETA_HEADER", DEFAULT_BETA_HEADER),
    )


def load_transport_config() -> TransportConfig:
    """Load transport configuration from environment variables."""
    _ensure_env_loaded()

    return TransportConfig(
        max_reconnect_attempts=safe_convert(
            os.getenv("VOICEWIRE_MAX_RECONNECT_ATTEMPTS"),
            int,
            DEFAULT_MAX_RECONNECT_ATTEMPTS,
        ),
        reconnect_base_delay=safe_convert(
            os.getenv("VOICEWIRE_RECONNECT_BASE_DELAY"),
            float,
            DEFAULT_RECONNECT_BASE_DELAY,
        ),
        reconnect_max_delay=safe_convert(
            os.getenv("VOICEWIRE_RECONNECT_MAX_DELAY"),
            float,
            DEFAULT_RECONNECT_MAX_DELAY,
        ),
        heartbeat_interval=safe_convert(
            os.getenv("VOICEWIRE_HEARTBEAT_INTERVAL"),
            float,
            DEFAULT_HEARTBEAT_INTERVAL,
        ),
        probe_timeout=safe_convert(
            os.getenv("VOICEWIRE_PROBE_TIMEOUT"), float, DEFAULT_PROBE_TIMEOUT
        ),
        open_timeout=safe_convert(
            os.getenv("VOICEWIRE_OPEN_TIMEOUT"), float, DEFAULT_OPEN_TIMEOUT
        ),
        max_frame_size=safe_convert(
            os.getenv("VOICEWIRE_MAX_FRAME_SIZE"), int, DEFAULT_MAX_FRAME_SIZE
        ),
    )


def load_audio_config() -> AudioConfig:
    """Load audio configuration from environment variables."""
    _ensure_env_loaded()

    return AudioConfig(
        chunk_size=safe_convert(
            os.getenv("VOICEWIRE_AUDIO_CHUNK_SIZE"), int, DEFAULT_AUDIO_CHUNK_SIZE
        ),
        sample_rate=safe_convert(
            os.getenv("VOICEWIRE_SAMPLE_RATE"), int, DEFAULT_SAMPLE_RATE
        ),
        input_format=os.getenv("VOICEWIRE_INPUT_AUDIO_FORMAT", DEFAULT_AUDIO_FORMAT),
        output_format=os.getenv("VOICEWIRE_OUTPUT_AUDIO_FORMAT", DEFAULT_AUDIO_FORMAT),
    )


def load_session_defaults() -> SessionDefaults:
    """Load session defaults from environment variables."""
    _ensure_env_loaded()

    temperature = safe_string_or_none(os.getenv("VOICEWIRE_TEMPERATURE"))
    return SessionDefaults(
        voice=os.getenv("VOICEWIRE_VOICE", VOICE),
        instructions=safe_string_or_none(os.getenv("VOICEWIRE_INSTRUCTIONS")),
        temperature=safe_convert(temperature, float, None),  # type: ignore[arg-type]
        tool_timeout=safe_convert(
            os.getenv("VOICEWIRE_TOOL_TIMEOUT"), float, DEFAULT_TOOL_TIMEOUT
        ),
    )


def load_logging_config() -> LoggingConfig:
    """Load logging configuration from environment variables."""
    _ensure_env_loaded()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = LogLevel.INFO
    try:
        log_level = LogLevel(log_level_str)
    except ValueError:
        pass

    return LoggingConfig(
        level=log_level,
        format=os.getenv(
            "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ),
        log_dir=Path(os.getenv("LOG_DIR", "logs")),
        log_filename=os.getenv("LOG_FILENAME", "voicewire.log"),
        max_log_size=safe_convert(os.getenv("LOG_MAX_SIZE"), int, 10 * 1024 * 1024),
        backup_count=safe_convert(os.getenv("LOG_BACKUP_COUNT"), int, 5),
        console_output=safe_convert(os.getenv("LOG_CONSOLE_OUTPUT"), bool, True),
        file_output=safe_convert(os.getenv("LOG_TO_FILE"), bool, True),
    )


def load_application_config() -> ApplicationConfig:
    """Load complete configuration from environment variables."""
    _ensure_env_loaded()

    config = ApplicationConfig(
        openai=load_openai_config(),
        transport=load_transport_config(),
        audio=load_audio_config(),
        session=load_session_defaults(),
        logging=load_logging_config(),
    )

    validation_errors = config.validate()
    if validation_errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(
            f"  - {error}" for error in validation_errors
        )
        raise ValueError(error_msg)

    return config


def get_environment_info() -> Dict[str, Any]:
    """Get information about current environment variables for debugging."""
    _ensure_env_loaded()

    return {
        "environment_variables_loaded": len(
            [
                k
                for k in os.environ.keys()
                if k.startswith(("OPENAI_", "VOICEWIRE_", "LOG_"))
            ]
        ),
        "dotenv_loaded": Path(".env").exists(),
        "openai_api_key_set": bool(os.getenv("OPENAI_API_KEY")),
    }
