"""
Models module for data structures and state management in the clinic call bridge.

This module provides structured data models for the application, defining the
schemas of both wire protocols and the leg-neutral event model the call session
works with.

Key components:
- telephony_schemas: Pydantic models for the Twilio Media Streams frames.
- realtime_schemas: Pydantic models for the OpenAI Realtime API client and server
  events, including the create_booking tool definition.
- events: The internal, leg-neutral event variants both adapters decode into.
- tenant: Tenant records and the immutable per-call tenant snapshot.
- booking: Tool invocation, booking arguments, appointment request and result.
- session_registry: Registry of active call sessions.

Usage examples:
```python
from clinicvoice.models.booking import BookingArguments, BookingResult
from clinicvoice.models.realtime_schemas import ConversationItemCreateMessage

args = BookingArguments(patient_name="Jane Doe", start_time_iso="2025-03-01T14:00:00Z")
result = BookingResult(success=True, appointment_id="appt-1")
message = ConversationItemCreateMessage.function_output("call_1", result.to_output())
```
"""

from clinicvoice.models.booking import (
    AppointmentRequest,
    BookingArguments,
    BookingResult,
    ToolInvocation,
)
from clinicvoice.models.events import (
    AudioChunk,
    CallStarted,
    CallStopped,
    LegClosed,
    LegName,
    OtherEvent,
    ProviderError,
    ResponseDone,
    ToolCallRequested,
    ToolCompleted,
)
from clinicvoice.models.session_registry import SessionRegistry
from clinicvoice.models.tenant import TenantContext, TenantRecord
