"""
Pydantic models for OpenAI Realtime API message structures.

This module provides type-safe models for the messages exchanged with the OpenAI
Realtime API: the client events the bridge sends (session configuration, audio
append/commit, response requests, function call outputs) and the server events
it consumes (audio deltas, completed function calls, response completion, errors).
"""

import json
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from clinicvoice.config.constants import BOOKING_TOOL_NAME


# Tool definition
class ToolParameters(BaseModel):
    """JSON schema of a tool's parameters."""

    type: Literal["object"] = "object"
    properties: Dict[str, Dict[str, Any]]
    required: List[str] = Field(default_factory=list)


class ToolDefinition(BaseModel):
    """A function the model may call."""

    type: Literal["function"] = "function"
    name: str
    description: str
    parameters: ToolParameters


BOOKING_TOOL = ToolDefinition(
    name=BOOKING_TOOL_NAME,
    description="Create a patient appointment",
    parameters=ToolParameters(
        properties={
            "patient_name": {"type": "string"},
            "patient_email": {"type": "string"},
            "patient_phone": {"type": "string"},
            "start_time_iso": {"type": "string", "description": "ISO8601 start time"},
            "appointment_type": {"type": "string"},
            "notes": {"type": "string"},
        },
        required=["patient_name", "start_time_iso"],
    ),
)


# Client events
class SessionConfig(BaseModel):
    """Session configuration sent once when the connection opens."""

    instructions: str
    modalities: List[str] = Field(default_factory=lambda: ["text", "audio"])
    voice: str
    input_audio_format: str
    output_audio_format: str
    tools: List[ToolDefinition] = Field(default_factory=lambda: [BOOKING_TOOL])


class SessionUpdateMessage(BaseModel):
    type: Literal["session.update"] = "session.update"
    session: SessionConfig


class AudioAppendMessage(BaseModel):
    type: Literal["input_audio_buffer.append"] = "input_audio_buffer.append"
    audio: str = Field(..., description="Base64-encoded audio data")


class AudioCommitMessage(BaseModel):
    type: Literal["input_audio_buffer.commit"] = "input_audio_buffer.commit"


class ResponseCreateMessage(BaseModel):
    type: Literal["response.create"] = "response.create"


class FunctionCallOutputItem(BaseModel):
    type: Literal["function_call_output"] = "function_call_output"
    call_id: str
    output: str = Field(..., description="JSON-encoded tool result")


class ConversationItemCreateMessage(BaseModel):
    type: Literal["conversation.item.create"] = "conversation.item.create"
    item: FunctionCallOutputItem

    @classmethod
    def function_output(cls, call_id: str, output: Dict[str, Any]) -> "ConversationItemCreateMessage":
        return cls(item=FunctionCallOutputItem(call_id=call_id, output=json.dumps(output)))


# Server events
class AudioDeltaEvent(BaseModel):
    """Chunk of synthesized speech."""

    type: Literal["response.audio.delta"]
    delta: str = Field(..., description="Base64-encoded audio data")
    response_id: Optional[str] = None
    item_id: Optional[str] = None


class FunctionCallArgumentsDoneEvent(BaseModel):
    """The model finished streaming a function call's arguments."""

    type: Literal["response.function_call_arguments.done"]
    name: str
    call_id: str
    arguments: str = ""
    response_id: Optional[str] = None
    item_id: Optional[str] = None


class ResponseDoneEvent(BaseModel):
    type: Literal["response.done"]
    response: Dict[str, Any] = Field(default_factory=dict)


class ErrorEvent(BaseModel):
    type: Literal["error"]
    error: Dict[str, Any] = Field(default_factory=dict)
