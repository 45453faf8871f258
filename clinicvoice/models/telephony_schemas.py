"""
Pydantic models for the Twilio Media Streams WebSocket protocol.

This module defines structured data models for the inbound frames the bridge
consumes (start, media, stop) and the outbound frames it produces (media, stop),
providing type validation and documentation.

Protocol reference:
    https://www.twilio.com/docs/voice/media-streams/websocket-messages
"""

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


class BaseFrame(BaseModel):
    """Base model for all media stream frames."""

    event: str = Field(..., description="Event tag")
    streamSid: Optional[str] = Field(None, description="Media stream identifier")
    sequenceNumber: Optional[str] = Field(None, description="Frame sequence number")


# Inbound frames
class StartMetadata(BaseModel):
    """Metadata carried by the start frame."""

    streamSid: str = Field("", description="Media stream identifier")
    callSid: str = Field("", description="Call identifier")
    accountSid: Optional[str] = None
    tracks: list = Field(default_factory=list)
    customParameters: Dict[str, Any] = Field(default_factory=dict)
    mediaFormat: Dict[str, Any] = Field(default_factory=dict)


class StartFrame(BaseFrame):
    """Model for the start frame sent once the stream is established."""

    event: Literal["start"]
    start: StartMetadata = Field(default_factory=StartMetadata)


class MediaPayload(BaseModel):
    """Audio payload of a media frame."""

    payload: str = Field(..., description="Base64-encoded audio data")
    track: Optional[str] = None
    chunk: Optional[str] = None
    timestamp: Optional[str] = None

    @field_validator("payload")
    def validate_payload(cls, v):
        """Validate that the payload is present; contents stay opaque."""
        if not v:
            raise ValueError("Audio payload cannot be empty")
        return v


class MediaFrame(BaseFrame):
    """Model for a media frame carrying caller audio."""

    event: Literal["media"]
    media: MediaPayload


class StopFrame(BaseFrame):
    """Model for the stop frame sent when the call ends."""

    event: Literal["stop"]
    stop: Dict[str, Any] = Field(default_factory=dict)


# Outbound frames
class OutboundMediaPayload(BaseModel):
    payload: str = Field(..., description="Base64-encoded audio data")


class OutboundMediaFrame(BaseModel):
    """Model for a media frame played to the caller."""

    event: Literal["media"] = "media"
    streamSid: Optional[str] = None
    media: OutboundMediaPayload


class OutboundStopFrame(BaseModel):
    """Model for the stop frame sent on forced teardown."""

    event: Literal["stop"] = "stop"
    streamSid: Optional[str] = None


InboundFrame = Union[StartFrame, MediaFrame, StopFrame]
OutboundFrame = Union[OutboundMediaFrame, OutboundStopFrame]
