"""
Internal event model shared by both legs.

Each leg adapter decodes its provider's JSON frames into these events exactly
once, at the adapter boundary. The call session only ever sees these types,
never raw JSON, which keeps it independent of either wire protocol.
"""

import time
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field

from clinicvoice.models.booking import BookingResult, ToolInvocation


class LegName(str, Enum):
    TELEPHONY = "telephony"
    AI = "ai"


class EventType(str, Enum):
    AUDIO_CHUNK = "audio_chunk"
    CALL_STARTED = "call_started"
    CALL_STOPPED = "call_stopped"
    TOOL_CALL = "tool_call"
    RESPONSE_DONE = "response_done"
    PROVIDER_ERROR = "provider_error"
    LEG_CLOSED = "leg_closed"
    TOOL_COMPLETED = "tool_completed"
    OTHER = "other"


class BridgeEvent(BaseModel):
    """Base event that all bridge events inherit from."""

    event_type: EventType
    leg: LegName
    timestamp: float = Field(default_factory=time.time)


class AudioChunk(BridgeEvent):
    """One opaque base64 audio frame, relayed byte-for-byte."""

    event_type: EventType = EventType.AUDIO_CHUNK
    payload: str


class CallStarted(BridgeEvent):
    """The telephony stream started."""

    event_type: EventType = EventType.CALL_STARTED
    leg: LegName = LegName.TELEPHONY
    stream_sid: str = ""
    call_sid: str = ""
    custom_parameters: Dict[str, Any] = Field(default_factory=dict)


class CallStopped(BridgeEvent):
    """The caller hung up (explicit end-of-call on the telephony leg)."""

    event_type: EventType = EventType.CALL_STOPPED
    leg: LegName = LegName.TELEPHONY


class ToolCallRequested(BridgeEvent):
    """The AI finished streaming the arguments of a function call."""

    event_type: EventType = EventType.TOOL_CALL
    leg: LegName = LegName.AI
    invocation: ToolInvocation


class ResponseDone(BridgeEvent):
    """The AI finished generating a response."""

    event_type: EventType = EventType.RESPONSE_DONE
    leg: LegName = LegName.AI
    response_id: Optional[str] = None


class ProviderError(BridgeEvent):
    """The AI provider reported an error event; the connection stays open."""

    event_type: EventType = EventType.PROVIDER_ERROR
    leg: LegName = LegName.AI
    code: Optional[str] = None
    message: str = ""


class LegClosed(BridgeEvent):
    """A leg's connection ended, cleanly or not."""

    event_type: EventType = EventType.LEG_CLOSED
    reason: str = "closed"
    error: bool = False


class ToolCompleted(BridgeEvent):
    """A booking execution finished; posted by the session to itself."""

    event_type: EventType = EventType.TOOL_COMPLETED
    leg: LegName = LegName.AI
    call_id: str
    result: BookingResult


class OtherEvent(BridgeEvent):
    """A recognised but uninteresting provider event."""

    event_type: EventType = EventType.OTHER
    raw_type: str = ""


TelephonyEvent = Union[CallStarted, AudioChunk, CallStopped, LegClosed]
AiEvent = Union[AudioChunk, ToolCallRequested, ResponseDone, ProviderError, OtherEvent, LegClosed]
AnyEvent = Union[
    AudioChunk,
    CallStarted,
    CallStopped,
    ToolCallRequested,
    ResponseDone,
    ProviderError,
    LegClosed,
    ToolCompleted,
    OtherEvent,
]
