"""
Value objects for the booking tool.

``ToolInvocation`` is created from a completed function call on the AI leg,
``BookingArguments`` validates its JSON arguments, ``AppointmentRequest`` is
what gets handed to the scheduling store and ``BookingResult`` is what goes
back into the conversation.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinicvoice.config.constants import (
    APPOINTMENT_STATUS_SCHEDULED,
    BOOKING_ERROR_NO_TENANT,
    BOOKING_ERROR_PERSISTENCE,
    BOOKING_ERROR_VALIDATION,
    DEFAULT_APPOINTMENT_TYPE,
)


def parse_iso8601(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z`` for UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


class ToolInvocation(BaseModel):
    """A function call emitted by the AI leg, consumed once by the executor."""

    model_config = ConfigDict(frozen=True)

    call_id: str
    tool_name: str
    raw_arguments: str = ""


class BookingArguments(BaseModel):
    """Arguments of the create_booking tool."""

    patient_name: str
    start_time_iso: str
    patient_phone: Optional[str] = None
    patient_email: Optional[str] = None
    appointment_type: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("patient_name")
    def validate_patient_name(cls, v):
        """Validate that the patient name is not blank."""
        if not v.strip():
            raise ValueError("Patient name cannot be empty")
        return v.strip()

    @field_validator("start_time_iso")
    def validate_start_time(cls, v):
        """Validate that the start time is an ISO-8601 timestamp."""
        try:
            parse_iso8601(v)
        except ValueError:
            raise ValueError(f"Invalid ISO-8601 start time: {v}")
        return v

    @property
    def start_time(self) -> datetime:
        return parse_iso8601(self.start_time_iso)


class AppointmentRequest(BaseModel):
    """A new appointment row, scoped to one tenant."""

    tenant_id: str
    patient_name: str
    start_time: datetime
    patient_phone: Optional[str] = None
    patient_email: Optional[str] = None
    appointment_type: str = DEFAULT_APPOINTMENT_TYPE
    notes: str = ""
    status: str = APPOINTMENT_STATUS_SCHEDULED

    @classmethod
    def from_arguments(cls, tenant_id: str, args: BookingArguments) -> "AppointmentRequest":
        return cls(
            tenant_id=tenant_id,
            patient_name=args.patient_name,
            start_time=args.start_time,
            patient_phone=args.patient_phone or None,
            patient_email=args.patient_email or None,
            appointment_type=args.appointment_type or DEFAULT_APPOINTMENT_TYPE,
            notes=args.notes or "",
        )


class BookingResult(BaseModel):
    """Outcome of one booking tool execution."""

    model_config = ConfigDict(frozen=True)

    success: bool
    appointment_id: Optional[str] = None
    error_reason: Optional[str] = Field(
        None, description="validation, persistence or no_tenant"
    )

    def to_output(self) -> Dict[str, Any]:
        """Payload of the function_call_output item sent back to the AI."""
        if self.success:
            return {
                "success": True,
                "appointment_id": self.appointment_id,
                "message": "Appointment successfully booked!",
            }
        return {
            "success": False,
            "error": self.error_reason,
            "message": _FAILURE_MESSAGES.get(
                self.error_reason, "Booking failed - please try again"
            ),
        }


_FAILURE_MESSAGES = {
    BOOKING_ERROR_VALIDATION: "Missing or invalid booking details - please confirm the name and time",
    BOOKING_ERROR_PERSISTENCE: "Booking failed - please try again",
    BOOKING_ERROR_NO_TENANT: "Unable to book appointment - clinic not found",
}
