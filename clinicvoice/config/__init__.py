"""
Configuration module for the clinic call bridge.

This module provides centralized configuration management for the entire application,
including constants, logging setup, and environment-based settings.

Key components:
- constants: Defines application-wide constants used across modules, including
  protocol event names, the booking tool name and the spoken fallback text.
- logging_config: Provides a consistent logging infrastructure with support for
  console and file-based logging with rotation capabilities.
- settings: Validated, environment-driven runtime settings (API key, timeouts,
  audio format, database URL).

Usage examples:
```python
from clinicvoice.config.constants import LOGGER_NAME, BOOKING_TOOL_NAME
from clinicvoice.config.logging_config import configure_logging
from clinicvoice.config.settings import load_settings

logger = configure_logging()
settings = load_settings()
logger.info(f"Using realtime model {settings.realtime_model}")
```
"""
