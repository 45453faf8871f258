"""
Telephony leg for Twilio Media Streams.

This module adapts one accepted FastAPI WebSocket carrying a Twilio media
stream to the telephony leg interface: inbound ``start``, ``media`` and
``stop`` frames become bridge events, and the session's outbound audio is
wrapped in ``media`` frames addressed to the stream.

Protocol reference:
    https://www.twilio.com/docs/voice/media-streams/websocket-messages
"""

import asyncio
import base64
import json
import logging
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from clinicvoice.bot.legs import DEFAULT_SEND_TIMEOUT, TelephonyLeg
from clinicvoice.config.constants import (
    APOLOGY_MESSAGE,
    LOGGER_NAME,
    TWILIO_EVENT_CONNECTED,
    TWILIO_EVENT_DTMF,
    TWILIO_EVENT_MARK,
    TWILIO_EVENT_MEDIA,
    TWILIO_EVENT_START,
    TWILIO_EVENT_STOP,
)
from clinicvoice.errors import LegError, ProtocolDecodeError
from clinicvoice.models.events import (
    AudioChunk,
    CallStarted,
    CallStopped,
    LegName,
    TelephonyEvent,
)
from clinicvoice.models.telephony_schemas import (
    MediaFrame,
    OutboundMediaFrame,
    OutboundMediaPayload,
    OutboundStopFrame,
    StartFrame,
    StopFrame,
)

logger = logging.getLogger(LOGGER_NAME)

# Frames that carry nothing the bridge acts on
IGNORED_EVENTS = {TWILIO_EVENT_CONNECTED, TWILIO_EVENT_MARK, TWILIO_EVENT_DTMF}


def load_apology_audio(path: Optional[Union[str, Path]]) -> Optional[str]:
    """
    Read a pre-recorded apology clip and base64-encode it for media frames.

    Args:
        path: Raw audio file in the leg audio format, or None

    Returns:
        The base64 payload, or None when no clip is configured or readable
    """
    if not path:
        return None
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        logger.warning(f"Could not read apology audio {path}: {e}")
        return None
    logger.info(f"Loaded apology audio clip ({len(data)} bytes) from {path}")
    return base64.b64encode(data).decode("ascii")


class TwilioMediaLeg(TelephonyLeg):
    """Telephony leg over an accepted Twilio media stream WebSocket."""

    def __init__(
        self,
        websocket: WebSocket,
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
        apology_audio: Optional[str] = None,
    ):
        super().__init__(send_timeout=send_timeout)
        self.websocket = websocket
        self.apology_audio = apology_audio
        self.stream_sid: Optional[str] = None
        self.call_sid: Optional[str] = None
        self._disconnected = False
        self._start_event: Optional[CallStarted] = None

    def decode_frame(self, raw: str) -> Optional[TelephonyEvent]:
        """
        Decode one inbound frame.

        Args:
            raw: The JSON text of the frame

        Returns:
            The bridge event, or None for frames the bridge ignores

        Raises:
            ProtocolDecodeError: If the frame is not valid JSON or fails validation
        """
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ProtocolDecodeError(f"Invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ProtocolDecodeError("Frame is not a JSON object")

        event = data.get("event")
        try:
            if event == TWILIO_EVENT_MEDIA:
                frame = MediaFrame(**data)
                return AudioChunk(leg=LegName.TELEPHONY, payload=frame.media.payload)

            if event == TWILIO_EVENT_START:
                frame = StartFrame(**data)
                self.stream_sid = frame.start.streamSid or frame.streamSid
                self.call_sid = frame.start.callSid
                return CallStarted(
                    stream_sid=self.stream_sid or "",
                    call_sid=self.call_sid or "",
                    custom_parameters=frame.start.customParameters,
                )

            if event == TWILIO_EVENT_STOP:
                StopFrame(**data)
                return CallStopped()
        except ValidationError as e:
            raise ProtocolDecodeError(f"Malformed {event} frame: {e}") from e

        if event in IGNORED_EVENTS:
            logger.debug(f"Ignoring Twilio {event} frame")
        else:
            logger.warning(f"Unrecognized Twilio frame: {event}")
        return None

    async def _read_until_started(self) -> Optional[CallStarted]:
        while True:
            try:
                raw = await self.websocket.receive_text()
            except WebSocketDisconnect:
                self._disconnected = True
                return None
            try:
                event = self.decode_frame(raw)
            except ProtocolDecodeError as e:
                logger.warning(f"Dropping undecodable Twilio frame: {e}")
                continue
            if isinstance(event, CallStarted):
                return event
            if isinstance(event, CallStopped):
                self._disconnected = True
                return None

    async def wait_for_start(self, timeout: float) -> Optional[CallStarted]:
        """
        Read frames until the stream's start frame arrives.

        The start frame carries the stream SID needed to address outbound
        frames and the custom parameters that identify the tenant. It is
        replayed as the first item of ``events()``.

        Args:
            timeout: Seconds to wait for the start frame

        Returns:
            The call started event, or None if the stream ended or timed out first
        """
        try:
            self._start_event = await asyncio.wait_for(self._read_until_started(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"No start frame received within {timeout}s")
            return None
        return self._start_event

    async def events(self) -> AsyncIterator[TelephonyEvent]:
        if self._start_event is not None:
            event, self._start_event = self._start_event, None
            yield event
        if self._disconnected:
            return
        async for raw in self.websocket.iter_text():
            try:
                event = self.decode_frame(raw)
            except ProtocolDecodeError as e:
                logger.warning(f"Dropping undecodable Twilio frame: {e}")
                continue
            if event is not None:
                yield event
        self._disconnected = True
        logger.info(f"Twilio stream disconnected (stream {self.stream_sid})")

    async def _send_text(self, text: str) -> None:
        await self.websocket.send_text(text)

    async def _close_transport(self) -> None:
        if not self._disconnected:
            await self.websocket.close()

    async def send_audio(self, payload: str) -> None:
        frame = OutboundMediaFrame(
            streamSid=self.stream_sid,
            media=OutboundMediaPayload(payload=payload),
        )
        await self.send_text(frame.model_dump_json(exclude_none=True))

    async def send_stop(self) -> None:
        frame = OutboundStopFrame(streamSid=self.stream_sid)
        await self.send_text(frame.model_dump_json(exclude_none=True))

    async def hang_up(self) -> None:
        if not self._disconnected and not self.closed:
            try:
                await self.send_stop()
            except LegError as e:
                logger.debug(f"Could not send stop frame: {e}")
        await self.close()

    async def apologize_and_hang_up(self) -> None:
        """
        Play the apology clip once, then end the stream.

        Works before any tenant is known. When no clip is configured the
        media frame carries an empty payload and the apology is only logged.
        """
        if self._disconnected:
            await self.close()
            return
        if self.apology_audio is None:
            logger.info(f"No apology clip configured; apology text: {APOLOGY_MESSAGE}")
        try:
            await self.send_audio(self.apology_audio or "")
        except LegError as e:
            logger.warning(f"Could not deliver apology: {e}")
        await self.hang_up()
