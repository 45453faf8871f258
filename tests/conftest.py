import pytest
import logging

from clinicvoice.models.tenant import TenantContext
from clinicvoice.services.booking_executor import BookingExecutor
from clinicvoice.services.tenant_resolver import TenantResolver
from clinicvoice.services.stores import InMemoryTenantStore

from fakes import CountingSchedulingStore, FakeAiLeg, FakeTelephonyLeg


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


@pytest.fixture
def tenant():
    return TenantContext(
        tenant_id="clinic-1",
        display_name="Riverside Clinic",
        callback_phone_number="020 7946 0000",
        ai_instructions="You are the Riverside Clinic receptionist.",
        voice_profile="shimmer",
    )


@pytest.fixture
def generic_tenant():
    return TenantResolver(InMemoryTenantStore()).generic_context()


@pytest.fixture
def telephony():
    return FakeTelephonyLeg()


@pytest.fixture
def ai():
    return FakeAiLeg()


@pytest.fixture
def scheduling_store():
    return CountingSchedulingStore()


@pytest.fixture
def executor(scheduling_store):
    return BookingExecutor(scheduling_store)
