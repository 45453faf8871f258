"""
Environment-driven settings for the call bridge.

Values are read from the process environment (populated from a ``.env`` file
by ``clinicvoice.main`` when one exists) and validated with Pydantic so a
typo in a timeout fails at startup rather than in the middle of a call.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from clinicvoice.config.constants import (
    AUDIO_FORMAT_G711_ALAW,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_URL,
    DEFAULT_VOICE,
    SUPPORTED_AUDIO_FORMATS,
)


class BridgeSettings(BaseModel):
    """Runtime configuration for both legs of the bridge."""

    openai_api_key: Optional[str] = None
    realtime_model: str = DEFAULT_REALTIME_MODEL
    realtime_url: str = DEFAULT_REALTIME_URL
    voice: str = DEFAULT_VOICE
    audio_format: str = AUDIO_FORMAT_G711_ALAW

    twilio_auth_token: Optional[str] = None
    public_host: Optional[str] = None
    database_url: Optional[str] = None
    apology_audio_file: Optional[str] = None
    tenants_file: Optional[str] = None

    send_timeout: float = Field(5.0, gt=0)
    connect_timeout: float = Field(10.0, gt=0)
    idle_timeout: float = Field(300.0, ge=0, description="0 disables the idle timeout")
    closing_timeout: float = Field(5.0, gt=0)

    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("audio_format")
    def validate_audio_format(cls, v):
        """Validate that the audio format is one the Realtime API accepts."""
        if v not in SUPPORTED_AUDIO_FORMATS:
            raise ValueError(f"Unsupported audio format: {v}")
        return v


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value if value else None


def load_settings() -> BridgeSettings:
    """
    Build settings from environment variables.

    Unset variables fall back to the model defaults.

    Returns:
        BridgeSettings: The validated settings
    """
    env_map = {
        "openai_api_key": "OPENAI_API_KEY",
        "realtime_model": "OPENAI_REALTIME_MODEL",
        "realtime_url": "OPENAI_REALTIME_URL",
        "voice": "REALTIME_VOICE",
        "audio_format": "AUDIO_FORMAT",
        "twilio_auth_token": "TWILIO_AUTH_TOKEN",
        "public_host": "PUBLIC_HOST",
        "database_url": "DATABASE_URL",
        "apology_audio_file": "APOLOGY_AUDIO_FILE",
        "tenants_file": "TENANTS_FILE",
        "send_timeout": "SEND_TIMEOUT",
        "connect_timeout": "CONNECT_TIMEOUT",
        "idle_timeout": "IDLE_TIMEOUT",
        "closing_timeout": "CLOSING_TIMEOUT",
        "host": "HOST",
        "port": "PORT",
    }
    values = {}
    for field_name, env_name in env_map.items():
        value = _env(env_name)
        if value is not None:
            values[field_name] = value
    return BridgeSettings(**values)
