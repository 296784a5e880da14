"""
Centralized configuration settings for voicewire.

This module provides singleton access to the application configuration.
"""

from typing import List, Optional

from .env_loader import load_application_config
from .models import (
    ApplicationConfig,
    AudioConfig,
    LoggingConfig,
    OpenAIConfig,
    SessionDefaults,
    TransportConfig,
)

# Global configuration instance
_config: Optional[ApplicationConfig] = None


def get_config() -> ApplicationConfig:
    """Get the global application configuration instance."""
    global _config
    if _config is None:
        _config = load_application_config()
    return _config


def reload_config() -> ApplicationConfig:
    """Reload configuration from environment variables."""
    global _config
    _config = load_application_config()
    return _config


def set_config(config: ApplicationConfig) -> None:
    """Set a custom configuration instance (useful for testing)."""
    global _config
    _config = config


def validate_configuration() -> List[str]:
    """Validate the current configuration and return any errors."""
    return get_config().validate()


# Convenience aliases for common configurations
def openai_config() -> OpenAIConfig:
    """Get Realtime endpoint configuration."""
    return get_config().openai


def transport_config() -> TransportConfig:
    """Get transport configuration."""
    return get_config().transport


def audio_config() -> AudioConfig:
    """Get audio configuration."""
    return get_config().audio


def session_defaults() -> SessionDefaults:
    """Get session defaults."""
    return get_config().session


def logging_config() -> LoggingConfig:
    """Get logging configuration."""
    return get_config().logging
