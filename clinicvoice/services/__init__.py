"""
Services module for the external collaborators of the call bridge.

Key components:
- stores: Tenant and scheduling store interfaces, with in-memory implementations
  (SQL-backed implementations live in ``clinicvoice.db``).
- tenant_resolver: Resolves an inbound call's routing key to an immutable tenant
  snapshot, degrading to a generic context on any lookup problem.
- booking_executor: Validates create_booking tool arguments and persists the
  appointment, always answering with a BookingResult.

Usage examples:
```python
from clinicvoice.services.stores import InMemorySchedulingStore, InMemoryTenantStore
from clinicvoice.services.tenant_resolver import TenantResolver
from clinicvoice.services.booking_executor import BookingExecutor

resolver = TenantResolver(InMemoryTenantStore())
executor = BookingExecutor(InMemorySchedulingStore())

context = await resolver.resolve("clinic-42")
result = await executor.execute(invocation, context)
```
"""
