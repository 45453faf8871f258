"""
Handles the inbound-call webhook from Twilio.

When a call arrives, Twilio requests TwiML from this endpoint. The response
greets the caller and connects the call to the bidirectional media stream,
carrying the tenant routing key so the media-stream session can resolve the
same clinic.
"""

import logging
from typing import Dict, Optional
from urllib.parse import urlencode

from fastapi import Request, Response
from twilio.request_validator import RequestValidator
from twilio.twiml.voice_response import Connect, VoiceResponse

from clinicvoice.config.constants import (
    LOGGER_NAME,
    MEDIA_STREAM_PATH,
    ROUTING_KEY_PARAM,
    STREAM_NAME,
    TECHNICAL_DIFFICULTIES_MESSAGE,
    TWIML_LANGUAGE,
    TWIML_VOICE,
)
from clinicvoice.config.settings import BridgeSettings
from clinicvoice.services.tenant_resolver import TenantResolver, greeting_for

logger = logging.getLogger(LOGGER_NAME)

TWIML_MEDIA_TYPE = "application/xml"


def build_stream_url(host: str, routing_key: Optional[str] = None) -> str:
    """Media stream URL for a public host, with the routing key as a query parameter."""
    url = f"wss://{host}{MEDIA_STREAM_PATH}"
    if routing_key:
        url += "?" + urlencode({ROUTING_KEY_PARAM: routing_key})
    return url


def build_connect_twiml(greeting: str, stream_url: str, routing_key: Optional[str] = None) -> str:
    """
    TwiML that greets the caller and connects the call to the media stream.

    The routing key is passed both in the stream URL and as a stream
    parameter, which Twilio echoes back in the start frame.
    """
    response = VoiceResponse()
    response.say(greeting, voice=TWIML_VOICE, language=TWIML_LANGUAGE)
    connect = Connect()
    stream = connect.stream(name=STREAM_NAME, url=stream_url)
    if routing_key:
        stream.parameter(name=ROUTING_KEY_PARAM, value=routing_key)
    response.append(connect)
    return str(response)


def build_say_twiml(message: str) -> str:
    """TwiML that speaks a message and ends the call."""
    response = VoiceResponse()
    response.say(message, voice=TWIML_VOICE, language=TWIML_LANGUAGE)
    response.hangup()
    return str(response)


def _public_url(request: Request, settings: BridgeSettings) -> str:
    """The URL Twilio signed; behind a proxy this is the public host, not the local one."""
    if not settings.public_host:
        return str(request.url)
    url = f"https://{settings.public_host}{request.url.path}"
    if request.url.query:
        url += f"?{request.url.query}"
    return url


def validate_signature(
    request: Request,
    params: Dict[str, str],
    settings: BridgeSettings,
    auth_token: Optional[str] = None,
) -> Optional[int]:
    """
    Check the X-Twilio-Signature header when an auth token is configured.

    Args:
        auth_token: The clinic's own Twilio auth token; the global token is used when absent

    Returns:
        None when the request is acceptable, otherwise the HTTP status to reject it with
    """
    token = auth_token or settings.twilio_auth_token
    if not token:
        return None
    signature = request.headers.get("X-Twilio-Signature")
    if not signature:
        logger.warning("Rejected webhook request without Twilio signature")
        return 400
    validator = RequestValidator(token)
    if not validator.validate(_public_url(request, settings), params, signature):
        logger.warning("Rejected webhook request with invalid Twilio signature")
        return 403
    return None


async def handle_voice_webhook(
    request: Request, resolver: TenantResolver, settings: BridgeSettings
) -> Response:
    """
    Answer an inbound call with TwiML.

    Args:
        request: The webhook request from Twilio
        resolver: Resolves the routing key to a tenant
        settings: Bridge settings (public host, auth token)

    Returns:
        TwiML greeting plus media stream connection. Unknown or missing
        routing keys get the generic greeting; unexpected errors get a
        spoken apology and a hangup.
    """
    try:
        form = await request.form()
        params = {key: str(value) for key, value in form.items()}

        routing_key = request.query_params.get(ROUTING_KEY_PARAM)
        tenant = await resolver.find_tenant(routing_key)

        status = validate_signature(
            request, params, settings, tenant.twilio_auth_token if tenant else None
        )
        if status is not None:
            return Response(content="Unauthorized", status_code=status)

        call_sid = params.get("CallSid", "unknown")
        logger.info(f"Incoming call {call_sid} for routing key {routing_key or '(none)'}")

        if tenant is None:
            if routing_key:
                logger.warning(f"No tenant for routing key {routing_key}, using generic greeting")
            context = resolver.generic_context()
            routing_key = None
        else:
            context = resolver.context_for(tenant)

        host = settings.public_host or request.headers.get("host", "localhost")
        twiml = build_connect_twiml(
            greeting_for(context),
            build_stream_url(host, routing_key),
            routing_key,
        )
        return Response(content=twiml, media_type=TWIML_MEDIA_TYPE)
    except Exception as e:
        logger.error(f"Error handling voice webhook: {e}", exc_info=True)
        return Response(
            content=build_say_twiml(TECHNICAL_DIFFICULTIES_MESSAGE),
            media_type=TWIML_MEDIA_TYPE,
        )
