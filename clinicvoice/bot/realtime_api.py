import asyncio
import json
import logging
import time
from typing import AsyncIterator, Optional

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosedError

from clinicvoice.bot.legs import AiLeg
from clinicvoice.config.constants import (
    AUDIO_FORMAT_G711_ALAW,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_URL,
    LOGGER_NAME,
    REALTIME_AUDIO_DELTA,
    REALTIME_ERROR,
    REALTIME_FUNCTION_CALL_DONE,
    REALTIME_RESPONSE_DONE,
)
from clinicvoice.errors import LegError, LegOpenError, ProtocolDecodeError
from clinicvoice.models.booking import BookingResult, ToolInvocation
from clinicvoice.models.events import (
    AiEvent,
    AudioChunk,
    LegName,
    OtherEvent,
    ProviderError,
    ResponseDone,
    ToolCallRequested,
)
from clinicvoice.models.realtime_schemas import (
    AudioAppendMessage,
    AudioCommitMessage,
    AudioDeltaEvent,
    ConversationItemCreateMessage,
    ErrorEvent,
    FunctionCallArgumentsDoneEvent,
    ResponseCreateMessage,
    ResponseDoneEvent,
    SessionConfig,
    SessionUpdateMessage,
)
from clinicvoice.models.tenant import TenantContext

logger = logging.getLogger(LOGGER_NAME)

CONNECTION_TIMEOUT = 10  # seconds

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_PING_INTERVAL = 5  # 5 seconds between pings


def decode_server_event(message) -> AiEvent:
    """
    Decode one OpenAI Realtime server event into a bridge event.

    Args:
        message: The raw WebSocket message

    Returns:
        The decoded event; event types the bridge does not act on become OtherEvent

    Raises:
        ProtocolDecodeError: If the message is not a well-formed server event
    """
    if isinstance(message, bytes):
        raise ProtocolDecodeError(f"Unexpected binary message of {len(message)} bytes")
    try:
        data = json.loads(message)
    except json.JSONDecodeError as e:
        raise ProtocolDecodeError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        raise ProtocolDecodeError("Server event has no type")

    event_type = data["type"]
    try:
        if event_type == REALTIME_AUDIO_DELTA:
            delta = AudioDeltaEvent(**data)
            if delta.delta:
                return AudioChunk(leg=LegName.AI, payload=delta.delta)
            return OtherEvent(leg=LegName.AI, raw_type=event_type)

        if event_type == REALTIME_FUNCTION_CALL_DONE:
            call = FunctionCallArgumentsDoneEvent(**data)
            return ToolCallRequested(
                invocation=ToolInvocation(
                    call_id=call.call_id,
                    tool_name=call.name,
                    raw_arguments=call.arguments,
                )
            )

        if event_type == REALTIME_RESPONSE_DONE:
            done = ResponseDoneEvent(**data)
            return ResponseDone(response_id=done.response.get("id"))

        if event_type == REALTIME_ERROR:
            error = ErrorEvent(**data)
            return ProviderError(
                code=error.error.get("code"),
                message=str(error.error.get("message", "")),
            )
    except ValidationError as e:
        raise ProtocolDecodeError(f"Malformed {event_type} event: {e}") from e

    return OtherEvent(leg=LegName.AI, raw_type=event_type)


class RealtimeLeg(AiLeg):
    """
    AI leg speaking the OpenAI Realtime API over WebSocket.

    One instance serves exactly one call. There is no reconnection:
    if the provider connection drops, the call session ends.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_REALTIME_MODEL,
        url: str = DEFAULT_REALTIME_URL,
        audio_format: str = AUDIO_FORMAT_G711_ALAW,
        send_timeout: float = 5.0,
        connect_timeout: float = CONNECTION_TIMEOUT,
    ):
        super().__init__(send_timeout=send_timeout)
        self.api_key = api_key
        self.model = model
        self.url = url
        self.audio_format = audio_format
        self.connect_timeout = connect_timeout
        self.ws = None

    async def open(self) -> None:
        """
        Connect to the OpenAI Realtime WebSocket endpoint.

        Raises:
            LegOpenError: If no API key is configured, the connection timed out
                or the provider refused it
        """
        if not self.api_key:
            raise LegOpenError(LegName.AI.value, "OpenAI API key is not configured")

        url = f"{self.url}?model={self.model}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": "realtime=v1",
        }

        try:
            logger.info(f"Connecting to OpenAI Realtime API with model: {self.model}")
            logger.debug("Using headers: Authorization: Bearer [API_KEY_HIDDEN], OpenAI-Beta: realtime=v1")
            connection_start = time.time()
            self.ws = await asyncio.wait_for(
                websockets.connect(
                    url,
                    max_size=WS_MAX_SIZE,
                    ping_interval=WS_PING_INTERVAL,
                    ping_timeout=10,
                    compression=None,
                    additional_headers=headers,
                ),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError:
            raise LegOpenError(
                LegName.AI.value,
                f"Timeout while connecting to OpenAI Realtime API (after {self.connect_timeout}s)",
            )
        except Exception as e:
            raise LegOpenError(LegName.AI.value, f"Failed to connect to OpenAI Realtime API: {e}") from e

        logger.debug(f"WebSocket connection established in {time.time() - connection_start:.2f} seconds")
        logger.info("Successfully connected to OpenAI Realtime API")

    async def events(self) -> AsyncIterator[AiEvent]:
        if self.ws is None:
            raise LegError(LegName.AI.value, "events requested before open")
        try:
            async for message in self.ws:
                try:
                    event = decode_server_event(message)
                except ProtocolDecodeError as e:
                    logger.warning(f"Dropping undecodable OpenAI event: {e}")
                    continue
                yield event
        except ConnectionClosedError as e:
            raise LegError(LegName.AI.value, f"connection closed unexpectedly: {e}") from e
        logger.info("OpenAI WebSocket connection closed normally")

    async def _send_text(self, text: str) -> None:
        await self.ws.send(text)

    async def _close_transport(self) -> None:
        if self.ws is not None:
            await self.ws.close()

    async def send_session_update(self, tenant: TenantContext) -> None:
        message = SessionUpdateMessage(
            session=SessionConfig(
                instructions=tenant.ai_instructions,
                voice=tenant.voice_profile,
                input_audio_format=self.audio_format,
                output_audio_format=self.audio_format,
            )
        )
        await self.send_text(message.model_dump_json())
        logger.info(f"Session configuration sent (voice={tenant.voice_profile}, format={self.audio_format})")

    async def send_audio_chunk(self, payload: str) -> None:
        await self.send_text(AudioAppendMessage(audio=payload).model_dump_json())

    async def commit_and_request_response(self) -> None:
        await self.send_text(AudioCommitMessage().model_dump_json())
        await self.send_text(ResponseCreateMessage().model_dump_json())

    async def send_tool_result(self, call_id: str, result: BookingResult) -> None:
        message = ConversationItemCreateMessage.function_output(call_id, result.to_output())
        await self.send_text(message.model_dump_json())
        await self.send_text(ResponseCreateMessage().model_dump_json())
        logger.debug(f"Tool result sent for call {call_id}")
