"""
Configuration module for the call-media bridge.

This module provides centralized configuration management for the entire application,
including constants, logging setup, and environment-based settings.

Key components:
- constants: Defines application-wide constants used across modules, including
  Telnyx and OpenAI Realtime event names, audio formats, and defaults.
- logging_config: Provides a consistent logging infrastructure with support for
  console and file-based logging with rotation capabilities.
- settings: Loads provider credentials, the public domain and tuning knobs from
  the environment (and an optional .env file).

Usage examples:
```python
from voicebridge.config.settings import get_settings
from voicebridge.config.logging_config import configure_logging

settings = get_settings()
logger = configure_logging(settings.log_level)
logger.info(f"Media endpoint: {settings.media_url}")
```
"""

# Config module initialization
