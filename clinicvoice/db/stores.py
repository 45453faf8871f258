"""SQL-backed tenant and scheduling stores."""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload

from clinicvoice.config.constants import LOGGER_NAME
from clinicvoice.db.models import Appointment, Clinic
from clinicvoice.errors import PersistenceError
from clinicvoice.models.booking import AppointmentRequest
from clinicvoice.models.tenant import TenantRecord
from clinicvoice.services.stores import SchedulingStore, TenantStore

logger = logging.getLogger(LOGGER_NAME)


class SqlTenantStore(TenantStore):
    """Tenant lookups over the clinics and ai_configurations tables."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_tenant_by_routing_key(self, key: str) -> Optional[TenantRecord]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Clinic)
                .where(Clinic.id == key)
                .options(selectinload(Clinic.ai_configuration))
            )
            clinic = result.scalar_one_or_none()

        if clinic is None:
            return None

        config = clinic.ai_configuration
        return TenantRecord(
            id=clinic.id,
            name=clinic.name,
            callback_number=clinic.phone_number,
            ai_instructions=config.personality_traits if config else None,
            voice=config.voice if config else None,
            twilio_auth_token=config.twilio_auth_token if config else None,
        )


class SqlSchedulingStore(SchedulingStore):
    """Appointment persistence; one transaction per appointment."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def create_appointment(self, request: AppointmentRequest) -> str:
        appointment = Appointment(
            clinic_id=request.tenant_id,
            patient_name=request.patient_name,
            patient_phone=request.patient_phone,
            patient_email=request.patient_email,
            appointment_date=request.start_time,
            appointment_type=request.appointment_type,
            notes=request.notes,
            status=request.status,
        )
        try:
            async with self.session_factory() as db:
                db.add(appointment)
                await db.commit()
                await db.refresh(appointment)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not create appointment: {e}") from e
        return str(appointment.id)
