"""Tenant and scheduling store interfaces with in-memory implementations."""
import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import yaml

from clinicvoice.config.constants import LOGGER_NAME
from clinicvoice.models.booking import AppointmentRequest
from clinicvoice.models.tenant import TenantRecord

logger = logging.getLogger(LOGGER_NAME)


class TenantStore(ABC):
    """Abstract base class for tenant lookups."""

    @abstractmethod
    async def get_tenant_by_routing_key(self, key: str) -> Optional[TenantRecord]:
        """Get the tenant owning a routing key, or None."""
        pass


class SchedulingStore(ABC):
    """Abstract base class for the appointment system of record."""

    @abstractmethod
    async def create_appointment(self, request: AppointmentRequest) -> str:
        """Persist a new appointment and return its ID.

        Raises:
            PersistenceError: If the appointment could not be stored
        """
        pass


class InMemoryTenantStore(TenantStore):
    """Tenant store backed by a dictionary, optionally seeded from YAML."""

    def __init__(self, tenants: Optional[Iterable[TenantRecord]] = None):
        self._tenants: Dict[str, TenantRecord] = {t.id: t for t in tenants or []}

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "InMemoryTenantStore":
        """Load tenants from a YAML file with a top-level ``tenants`` list."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        tenants = [TenantRecord(**item) for item in data.get("tenants", [])]
        logger.info(f"Loaded {len(tenants)} tenants from {path}")
        return cls(tenants)

    def add(self, tenant: TenantRecord) -> None:
        self._tenants[tenant.id] = tenant

    async def get_tenant_by_routing_key(self, key: str) -> Optional[TenantRecord]:
        return self._tenants.get(key)


class InMemorySchedulingStore(SchedulingStore):
    """Scheduling store keeping appointments in a dictionary."""

    def __init__(self):
        self.appointments: Dict[str, AppointmentRequest] = {}
        self._lock = asyncio.Lock()

    async def create_appointment(self, request: AppointmentRequest) -> str:
        async with self._lock:
            appointment_id = str(uuid.uuid4())
            self.appointments[appointment_id] = request
        return appointment_id

    def for_tenant(self, tenant_id: str) -> List[AppointmentRequest]:
        return [a for a in self.appointments.values() if a.tenant_id == tenant_id]

