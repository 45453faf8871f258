"""
Resolves the tenant (clinic) context for an inbound call.

The resolver is read-only and never raises: any lookup problem degrades to a
generic context so the call can still be answered.
"""

import logging
from typing import Optional

from clinicvoice.config.constants import (
    DEFAULT_VOICE,
    GENERIC_CALLBACK_NUMBER,
    GENERIC_DISPLAY_NAME,
    GENERIC_GREETING,
    CUSTOM_INSTRUCTIONS_TEMPLATE,
    INSTRUCTIONS_TEMPLATE,
    LOGGER_NAME,
    TENANT_GREETING_TEMPLATE,
)
from clinicvoice.models.tenant import TenantContext, TenantRecord
from clinicvoice.services.stores import TenantStore

logger = logging.getLogger(LOGGER_NAME)


def build_instructions(
    display_name: str, callback_number: str, custom: Optional[str] = None
) -> str:
    """Assistant instructions for a clinic; custom instructions keep the clinic name up front."""
    if custom:
        return CUSTOM_INSTRUCTIONS_TEMPLATE.format(name=display_name, instructions=custom)
    return INSTRUCTIONS_TEMPLATE.format(name=display_name, phone=callback_number)


def greeting_for(context: TenantContext) -> str:
    """The greeting spoken before the media stream opens."""
    if context.is_generic:
        return GENERIC_GREETING
    return TENANT_GREETING_TEMPLATE.format(name=context.display_name)


class TenantResolver:
    """Resolves routing keys to immutable tenant snapshots."""

    def __init__(self, store: TenantStore, default_voice: str = DEFAULT_VOICE):
        self.store = store
        self.default_voice = default_voice

    def generic_context(self) -> TenantContext:
        """Tenant-less context used for unidentified or unknown callers."""
        return TenantContext(
            tenant_id=None,
            display_name=GENERIC_DISPLAY_NAME,
            callback_phone_number=GENERIC_CALLBACK_NUMBER,
            ai_instructions=build_instructions(GENERIC_DISPLAY_NAME, GENERIC_CALLBACK_NUMBER),
            voice_profile=self.default_voice,
        )

    async def find_tenant(self, routing_key: Optional[str]) -> Optional[TenantRecord]:
        """
        Look up the tenant record for a routing key.

        Returns:
            The tenant record, or None if the key is empty, unknown, or the
            lookup failed
        """
        if not routing_key:
            return None
        try:
            return await self.store.get_tenant_by_routing_key(routing_key)
        except Exception as e:
            logger.error(f"Tenant lookup failed for routing key {routing_key}: {e}", exc_info=True)
            return None

    def context_for(self, tenant: TenantRecord) -> TenantContext:
        callback = tenant.callback_number or GENERIC_CALLBACK_NUMBER
        instructions = build_instructions(tenant.name, callback, tenant.ai_instructions)
        return TenantContext(
            tenant_id=tenant.id,
            display_name=tenant.name,
            callback_phone_number=callback,
            ai_instructions=instructions,
            voice_profile=tenant.voice or self.default_voice,
        )

    async def resolve(self, routing_key: Optional[str]) -> TenantContext:
        """
        Resolve the tenant context for an inbound call.

        Args:
            routing_key: The tenant routing key carried by the call, if any

        Returns:
            The tenant's context, or the generic context when the key is
            missing, unknown, or the lookup failed
        """
        tenant = await self.find_tenant(routing_key)
        if tenant is None:
            if routing_key:
                logger.warning(f"No tenant for routing key {routing_key}, using generic context")
            return self.generic_context()

        logger.info(f"Resolved tenant {tenant.id} ({tenant.name})")
        return self.context_for(tenant)
