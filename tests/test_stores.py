"""Tests for the in-memory and SQL-backed tenant and scheduling stores."""
from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.pool import StaticPool

from clinicvoice.db.database import create_engine, create_session_factory, init_db, normalize_database_url
from clinicvoice.db.models import AiConfiguration, Appointment, Clinic
from clinicvoice.db.stores import SqlSchedulingStore, SqlTenantStore
from clinicvoice.errors import PersistenceError
from clinicvoice.models.booking import AppointmentRequest
from clinicvoice.models.tenant import TenantRecord
from clinicvoice.services.stores import InMemorySchedulingStore, InMemoryTenantStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def appointment_request(tenant_id="clinic-1"):
    return AppointmentRequest(
        tenant_id=tenant_id,
        patient_name="Jane Doe",
        patient_phone="07700 900123",
        start_time=datetime(2025, 3, 1, 14, 0, tzinfo=timezone.utc),
        notes="First visit",
    )


@pytest.fixture
async def session_factory():
    """In-memory SQLite database with one configured clinic."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    factory = create_session_factory(engine)

    async with factory() as db:
        db.add(Clinic(id="clinic-1", name="Riverside Clinic", phone_number="020 7946 0000"))
        db.add(
            AiConfiguration(
                clinic_id="clinic-1",
                personality_traits="Be brief.",
                voice="verse",
                twilio_auth_token="clinic-secret",
            )
        )
        db.add(Clinic(id="clinic-2", name="Hillside Surgery"))
        await db.commit()

    yield factory
    await engine.dispose()


@pytest.mark.asyncio
async def test_in_memory_tenant_store():
    store = InMemoryTenantStore([TenantRecord(id="clinic-1", name="Riverside Clinic")])
    store.add(TenantRecord(id="clinic-2", name="Hillside Surgery"))

    assert (await store.get_tenant_by_routing_key("clinic-2")).name == "Hillside Surgery"
    assert await store.get_tenant_by_routing_key("clinic-3") is None


@pytest.mark.asyncio
async def test_in_memory_tenant_store_from_yaml(tmp_path):
    path = tmp_path / "tenants.yaml"
    path.write_text(
        "tenants:\n"
        "  - id: clinic-1\n"
        "    name: Riverside Clinic\n"
        "    callback_number: 020 7946 0000\n"
        "    voice: shimmer\n"
        "    twilio_auth_token: clinic-secret\n"
    )

    store = InMemoryTenantStore.from_yaml(path)
    tenant = await store.get_tenant_by_routing_key("clinic-1")

    assert tenant.callback_number == "020 7946 0000"
    assert tenant.voice == "shimmer"
    assert tenant.twilio_auth_token == "clinic-secret"


@pytest.mark.asyncio
async def test_in_memory_scheduling_store_ids_are_unique():
    store = InMemorySchedulingStore()
    first = await store.create_appointment(appointment_request())
    second = await store.create_appointment(appointment_request())

    assert first != second
    assert len(store.for_tenant("clinic-1")) == 2
    assert store.for_tenant("clinic-2") == []


def test_normalize_database_url():
    assert normalize_database_url("postgresql://u:p@db/clinic") == "postgresql+asyncpg://u:p@db/clinic"
    assert normalize_database_url("postgres://u:p@db/clinic") == "postgresql+asyncpg://u:p@db/clinic"
    assert normalize_database_url("sqlite:///clinic.db") == "sqlite+aiosqlite:///clinic.db"
    assert normalize_database_url(TEST_DATABASE_URL) == TEST_DATABASE_URL


@pytest.mark.asyncio
async def test_sql_tenant_store(session_factory):
    store = SqlTenantStore(session_factory)

    tenant = await store.get_tenant_by_routing_key("clinic-1")
    assert tenant == TenantRecord(
        id="clinic-1",
        name="Riverside Clinic",
        callback_number="020 7946 0000",
        ai_instructions="Be brief.",
        voice="verse",
        twilio_auth_token="clinic-secret",
    )

    bare = await store.get_tenant_by_routing_key("clinic-2")
    assert bare.ai_instructions is None
    assert bare.voice is None
    assert bare.twilio_auth_token is None

    assert await store.get_tenant_by_routing_key("clinic-9") is None


@pytest.mark.asyncio
async def test_sql_scheduling_store(session_factory):
    store = SqlSchedulingStore(session_factory)

    appointment_id = await store.create_appointment(appointment_request())

    async with session_factory() as db:
        appointment = (
            await db.execute(select(Appointment).where(Appointment.id == int(appointment_id)))
        ).scalar_one()
    assert appointment.clinic_id == "clinic-1"
    assert appointment.patient_name == "Jane Doe"
    assert appointment.appointment_type == "General Consultation"
    assert appointment.status == "scheduled"


@pytest.mark.asyncio
async def test_sql_scheduling_store_wraps_database_errors():
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    # No tables created
    store = SqlSchedulingStore(create_session_factory(engine))

    with pytest.raises(PersistenceError):
        await store.create_appointment(appointment_request())
    await engine.dispose()
