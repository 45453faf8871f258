"""
WebSocket connection manager for Twilio Media Streams.

This module implements the server side of the media-stream endpoint:
- Accept each Twilio media stream connection
- Wait for the start frame and resolve the calling tenant
- Pair the stream with a fresh OpenAI Realtime leg in a CallSession
- Track live sessions in the SessionRegistry until they finalize

The MediaStreamManager owns the registry so application shutdown can close
every call that is still in progress.
"""

import logging
import socket
from typing import Callable, Optional

from fastapi import WebSocket

from clinicvoice.bot.call_session import CallSession
from clinicvoice.bot.legs import AiLeg
from clinicvoice.bot.realtime_api import RealtimeLeg
from clinicvoice.config.constants import LOGGER_NAME, ROUTING_KEY_PARAM
from clinicvoice.config.settings import BridgeSettings
from clinicvoice.handlers.twilio_stream import TwilioMediaLeg, load_apology_audio
from clinicvoice.models.session_registry import SessionRegistry
from clinicvoice.services.booking_executor import BookingExecutor
from clinicvoice.services.tenant_resolver import TenantResolver

logger = logging.getLogger(LOGGER_NAME)


class MediaStreamManager:
    """Creates and runs one CallSession per media stream connection."""

    def __init__(
        self,
        resolver: TenantResolver,
        executor: BookingExecutor,
        settings: BridgeSettings,
        ai_leg_factory: Optional[Callable[[], AiLeg]] = None,
    ):
        self.resolver = resolver
        self.executor = executor
        self.settings = settings
        self.registry = SessionRegistry()
        self.ai_leg_factory = ai_leg_factory or self._realtime_leg
        self.apology_audio = load_apology_audio(settings.apology_audio_file)

    def _realtime_leg(self) -> AiLeg:
        return RealtimeLeg(
            api_key=self.settings.openai_api_key,
            model=self.settings.realtime_model,
            url=self.settings.realtime_url,
            audio_format=self.settings.audio_format,
            send_timeout=self.settings.send_timeout,
            connect_timeout=self.settings.connect_timeout,
        )

    async def _optimize_socket(self, websocket: WebSocket) -> None:
        """Disable Nagle's algorithm on the underlying TCP socket, when reachable."""
        try:
            client = websocket.client
            if hasattr(client, "sock") and client.sock is not None:
                client.sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
                logger.info("Optimized socket: TCP_NODELAY enabled for low latency")
        except Exception as e:
            logger.warning(f"Could not optimize socket: {e}")

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """
        Handle a media stream connection for the whole call.

        Args:
            websocket: The FastAPI WebSocket connection from Twilio

        Returns once the call session has finalized and both legs are closed.
        """
        await websocket.accept()
        await self._optimize_socket(websocket)
        logger.info("Media stream connection accepted")

        telephony = TwilioMediaLeg(
            websocket,
            send_timeout=self.settings.send_timeout,
            apology_audio=self.apology_audio,
        )
        started = await telephony.wait_for_start(self.settings.connect_timeout)
        if started is None:
            logger.warning("Media stream ended before it started")
            await telephony.close()
            return

        routing_key = websocket.query_params.get(ROUTING_KEY_PARAM) or started.custom_parameters.get(
            ROUTING_KEY_PARAM
        )
        tenant = await self.resolver.resolve(routing_key)

        session = CallSession(
            telephony=telephony,
            ai=self.ai_leg_factory(),
            tenant=tenant,
            executor=self.executor,
            idle_timeout=self.settings.idle_timeout,
            closing_timeout=self.settings.closing_timeout,
            on_closed=lambda s: self.registry.remove(s.session_id),
        )
        self.registry.add(session)
        await session.run()
