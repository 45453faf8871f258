"""
Tenant records and the per-call tenant snapshot.

A ``TenantRecord`` is what a tenant store returns; a ``TenantContext`` is the
immutable snapshot a call session takes once at session start.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from clinicvoice.config.constants import DEFAULT_VOICE


class TenantRecord(BaseModel):
    """A clinic account as stored by the tenant store."""

    id: str = Field(..., description="Tenant identifier, also the routing key")
    name: str = Field(..., description="Clinic display name")
    callback_number: Optional[str] = Field(None, description="Business phone number")
    ai_instructions: Optional[str] = Field(
        None, description="Custom behavioral instructions for the assistant"
    )
    voice: Optional[str] = Field(None, description="Preferred assistant voice")
    twilio_auth_token: Optional[str] = Field(
        None, description="Auth token of the clinic's own Twilio account, for webhook signatures"
    )


class TenantContext(BaseModel):
    """Immutable tenant snapshot resolved once per call."""

    model_config = ConfigDict(frozen=True)

    tenant_id: Optional[str] = None
    display_name: str
    callback_phone_number: str
    ai_instructions: str
    voice_profile: str = DEFAULT_VOICE

    @property
    def is_generic(self) -> bool:
        """True when no tenant was resolved for the call."""
        return self.tenant_id is None
