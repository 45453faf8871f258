"""
Duplex leg interfaces.

A leg is one of the two streaming connections a call session owns. Each leg
decodes its provider's frames into the internal event model (see
``clinicvoice.models.events``) and exposes only the outbound operations the
session needs, so the session logic never touches either wire protocol.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator

from clinicvoice.config.constants import LOGGER_NAME
from clinicvoice.errors import LegClosedError, LegError, LegSendTimeout
from clinicvoice.models.booking import BookingResult
from clinicvoice.models.events import AiEvent, LegName, TelephonyEvent
from clinicvoice.models.tenant import TenantContext

logger = logging.getLogger(LOGGER_NAME)

DEFAULT_SEND_TIMEOUT = 5.0  # seconds


class Leg(ABC):
    """Base class for a duplex audio+event channel."""

    name: LegName

    def __init__(self, send_timeout: float = DEFAULT_SEND_TIMEOUT):
        self.send_timeout = send_timeout
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def events(self) -> AsyncIterator:
        """
        Yield decoded inbound events in arrival order.

        The iterator ends when the connection closes normally and raises
        when it fails. Malformed frames are logged and skipped.
        """

    @abstractmethod
    async def _send_text(self, text: str) -> None:
        """Write one text frame to the underlying connection."""

    @abstractmethod
    async def _close_transport(self) -> None:
        """Close the underlying connection."""

    async def send_text(self, text: str) -> None:
        """
        Send one frame, bounded by the send timeout.

        Raises:
            LegClosedError: If the leg is already closed
            LegSendTimeout: If the send did not complete in time
            LegError: If the connection failed during the send
        """
        if self._closed:
            raise LegClosedError(self.name.value, "send on closed leg")
        try:
            await asyncio.wait_for(self._send_text(text), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            raise LegSendTimeout(
                self.name.value, f"send blocked for more than {self.send_timeout}s"
            )
        except LegError:
            raise
        except Exception as e:
            raise LegError(self.name.value, f"send failed: {e}") from e

    async def close(self) -> None:
        """Close the leg. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._close_transport()
        except Exception as e:
            logger.debug(f"Ignoring error while closing {self.name.value} leg: {e}")
        logger.info(f"{self.name.value.capitalize()} leg closed")


class TelephonyLeg(Leg):
    """The caller-side leg."""

    name = LegName.TELEPHONY

    @abstractmethod
    def events(self) -> AsyncIterator[TelephonyEvent]:
        """Yield call started, audio chunk and call stopped events."""

    @abstractmethod
    async def send_audio(self, payload: str) -> None:
        """Play one base64 audio chunk to the caller."""

    @abstractmethod
    async def hang_up(self) -> None:
        """Tell the provider the stream is over and close the leg."""

    @abstractmethod
    async def apologize_and_hang_up(self) -> None:
        """Play the apology message, then hang up. Never raises."""


class AiLeg(Leg):
    """The conversational-AI leg."""

    name = LegName.AI

    @abstractmethod
    async def open(self) -> None:
        """
        Open the provider connection.

        Raises:
            LegOpenError: If the provider is unreachable or rejects the credential
        """

    @abstractmethod
    def events(self) -> AsyncIterator[AiEvent]:
        """Yield audio chunk, tool call, response done and provider error events."""

    @abstractmethod
    async def send_session_update(self, tenant: TenantContext) -> None:
        """Send the one-time session configuration."""

    @abstractmethod
    async def send_audio_chunk(self, payload: str) -> None:
        """Append one base64 caller audio chunk to the input buffer."""

    @abstractmethod
    async def commit_and_request_response(self) -> None:
        """Commit buffered input and ask the model to respond."""

    @abstractmethod
    async def send_tool_result(self, call_id: str, result: BookingResult) -> None:
        """Return a tool result and ask the model to keep talking."""
