"""
Executes create_booking tool calls against the scheduling store.

Every outcome, including store failures, is returned as a BookingResult so the
assistant can tell the caller what happened. Nothing raised here may reach the
call session.
"""

import json
import logging

from pydantic import ValidationError

from clinicvoice.config.constants import (
    BOOKING_ERROR_NO_TENANT,
    BOOKING_ERROR_PERSISTENCE,
    BOOKING_ERROR_VALIDATION,
    LOGGER_NAME,
)
from clinicvoice.models.booking import (
    AppointmentRequest,
    BookingArguments,
    BookingResult,
    ToolInvocation,
)
from clinicvoice.models.tenant import TenantContext
from clinicvoice.services.stores import SchedulingStore

logger = logging.getLogger(LOGGER_NAME)


class BookingExecutor:
    """Validates booking tool arguments and persists appointments."""

    def __init__(self, store: SchedulingStore):
        self.store = store

    async def execute(self, invocation: ToolInvocation, tenant: TenantContext) -> BookingResult:
        """
        Execute one booking tool invocation.

        Args:
            invocation: The tool call emitted by the AI leg
            tenant: The tenant snapshot of the calling session

        Returns:
            success with the new appointment ID, or a failure with the reason
            ``validation``, ``no_tenant`` or ``persistence``
        """
        try:
            raw = json.loads(invocation.raw_arguments or "{}")
            if not isinstance(raw, dict):
                raise ValueError("Tool arguments must be a JSON object")
            args = BookingArguments(**raw)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Invalid booking arguments for call {invocation.call_id}: {e}")
            return BookingResult(success=False, error_reason=BOOKING_ERROR_VALIDATION)

        if tenant.is_generic:
            logger.warning(f"Booking requested without a resolved tenant for call {invocation.call_id}")
            return BookingResult(success=False, error_reason=BOOKING_ERROR_NO_TENANT)

        request = AppointmentRequest.from_arguments(tenant.tenant_id, args)
        try:
            appointment_id = await self.store.create_appointment(request)
        except Exception as e:
            logger.error(
                f"Failed to persist appointment for tenant {tenant.tenant_id} "
                f"(call {invocation.call_id}): {e}",
                exc_info=True,
            )
            return BookingResult(success=False, error_reason=BOOKING_ERROR_PERSISTENCE)

        logger.info(
            f"Booked appointment {appointment_id} for tenant {tenant.tenant_id} "
            f"at {request.start_time.isoformat()}"
        )
        return BookingResult(success=True, appointment_id=str(appointment_id))
