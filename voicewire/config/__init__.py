"""
Configuration module for voicewire.

Provides type-safe configuration models organized by domain, environment
variable loading (python-dotenv), singleton access, and logging setup.

```python
from voicewire.config import get_config, openai_config
config = get_config()
print(config.openai.get_websocket_url())

from voicewire.config.logging_config import configure_logging
logger = configure_logging("my_module")
```
"""

from .constants import *
from .logging_config import configure_logging
from .models import (
    ApplicationConfig,
    AudioConfig,
    LoggingConfig,
    LogLevel,
    OpenAIConfig,
    SessionDefaults,
    TransportConfig,
)
from .settings import (
    audio_config,
    get_config,
    logging_config,
    openai_config,
    reload_config,
    session_defaults,
    set_config,
    transport_config,
    validate_configuration,
)

__all__ = [
    "get_config",
    "reload_config",
    "set_config",
    "validate_configuration",
    "openai_config",
    "transport_config",
    "audio_config",
    "session_defaults",
    "logging_config",
    "ApplicationConfig",
    "OpenAIConfig",
    "TransportConfig",
    "AudioConfig",
    "SessionDefaults",
    "LoggingConfig",
    "LogLevel",
    "configure_logging",
]
