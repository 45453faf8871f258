import json

import pytest
from unittest.mock import AsyncMock

from clinicvoice.errors import PersistenceError
from clinicvoice.models.booking import BookingResult, ToolInvocation
from clinicvoice.services.booking_executor import BookingExecutor
from clinicvoice.services.stores import InMemorySchedulingStore, SchedulingStore


def invocation(arguments, call_id="call_1"):
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return ToolInvocation(call_id=call_id, tool_name="create_booking", raw_arguments=arguments)


@pytest.mark.asyncio
async def test_successful_booking(tenant):
    store = InMemorySchedulingStore()
    result = await BookingExecutor(store).execute(
        invocation(
            {
                "patient_name": "  Jane Doe ",
                "patient_email": "jane@example.com",
                "start_time_iso": "2025-03-01T14:00:00Z",
                "appointment_type": "Check-up",
                "notes": "First visit",
            }
        ),
        tenant,
    )

    assert result.success is True
    appointment = store.appointments[result.appointment_id]
    assert appointment.tenant_id == "clinic-1"
    assert appointment.patient_name == "Jane Doe"
    assert appointment.patient_email == "jane@example.com"
    assert appointment.patient_phone is None
    assert appointment.start_time.isoformat() == "2025-03-01T14:00:00+00:00"
    assert appointment.appointment_type == "Check-up"
    assert appointment.notes == "First visit"
    assert appointment.status == "scheduled"
    assert store.for_tenant("clinic-1") == [appointment]


@pytest.mark.asyncio
async def test_defaults_applied(tenant):
    store = InMemorySchedulingStore()
    result = await BookingExecutor(store).execute(
        invocation({"patient_name": "Jane", "start_time_iso": "2025-03-01T14:00:00"}), tenant
    )

    appointment = store.appointments[result.appointment_id]
    assert appointment.appointment_type == "General Consultation"
    assert appointment.notes == ""


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "arguments",
    [
        "not json",
        "[1, 2]",
        {"start_time_iso": "2025-03-01T14:00:00Z"},
        {"patient_name": "   ", "start_time_iso": "2025-03-01T14:00:00Z"},
        {"patient_name": "Jane"},
        {"patient_name": "Jane", "start_time_iso": "next tuesday"},
    ],
)
async def test_validation_failures_do_not_touch_store(tenant, arguments):
    store = AsyncMock(spec=SchedulingStore)
    result = await BookingExecutor(store).execute(invocation(arguments), tenant)

    assert result == BookingResult(success=False, error_reason="validation")
    store.create_appointment.assert_not_awaited()


@pytest.mark.asyncio
async def test_no_tenant(generic_tenant):
    store = AsyncMock(spec=SchedulingStore)
    result = await BookingExecutor(store).execute(
        invocation({"patient_name": "Jane", "start_time_iso": "2025-03-01T14:00:00Z"}), generic_tenant
    )

    assert result.success is False
    assert result.error_reason == "no_tenant"
    assert result.to_output()["message"] == "Unable to book appointment - clinic not found"
    store.create_appointment.assert_not_awaited()


@pytest.mark.asyncio
async def test_persistence_failure(tenant):
    store = AsyncMock(spec=SchedulingStore)
    store.create_appointment.side_effect = PersistenceError("disk full")

    result = await BookingExecutor(store).execute(
        invocation({"patient_name": "Jane", "start_time_iso": "2025-03-01T14:00:00Z"}), tenant
    )

    assert result.success is False
    assert result.error_reason == "persistence"
    assert result.to_output() == {
        "success": False,
        "error": "persistence",
        "message": "Booking failed - please try again",
    }


def test_success_output():
    assert BookingResult(success=True, appointment_id="17").to_output() == {
        "success": True,
        "appointment_id": "17",
        "message": "Appointment successfully booked!",
    }
