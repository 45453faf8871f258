import asyncio
import json

import pytest
from unittest.mock import AsyncMock, patch
from websockets.exceptions import ConnectionClosedError

from clinicvoice.bot.realtime_api import RealtimeLeg, decode_server_event
from clinicvoice.errors import LegClosedError, LegError, LegOpenError, LegSendTimeout, ProtocolDecodeError
from clinicvoice.models.booking import BookingResult
from clinicvoice.models.events import (
    AudioChunk,
    LegName,
    OtherEvent,
    ProviderError,
    ResponseDone,
    ToolCallRequested,
)


class MockRealtimeSocket:
    """Stands in for a websockets client connection."""

    def __init__(self, messages=None, error=None):
        self.messages = list(messages or [])
        self.error = error
        self.send = AsyncMock()
        self.close = AsyncMock()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message
        if self.error is not None:
            raise self.error

    def sent_json(self):
        return [json.loads(c.args[0]) for c in self.send.call_args_list]


@pytest.fixture
def leg():
    leg = RealtimeLeg(api_key="sk-test", model="gpt-4o-realtime-preview-2024-10-01", send_timeout=0.5)
    leg.ws = MockRealtimeSocket()
    return leg


def test_decode_audio_delta():
    event = decode_server_event(json.dumps({"type": "response.audio.delta", "delta": "UklGRg=="}))
    assert isinstance(event, AudioChunk)
    assert event.leg == LegName.AI
    assert event.payload == "UklGRg=="


def test_decode_function_call_done():
    message = {
        "type": "response.function_call_arguments.done",
        "name": "create_booking",
        "call_id": "call_abc",
        "arguments": '{"patient_name": "Jane"}',
    }
    event = decode_server_event(json.dumps(message))
    assert isinstance(event, ToolCallRequested)
    assert event.invocation.call_id == "call_abc"
    assert event.invocation.tool_name == "create_booking"
    assert event.invocation.raw_arguments == '{"patient_name": "Jane"}'


def test_decode_response_done_and_error():
    done = decode_server_event(json.dumps({"type": "response.done", "response": {"id": "resp_1"}}))
    assert isinstance(done, ResponseDone)
    assert done.response_id == "resp_1"

    error = decode_server_event(
        json.dumps({"type": "error", "error": {"code": "invalid_value", "message": "bad audio"}})
    )
    assert isinstance(error, ProviderError)
    assert error.code == "invalid_value"
    assert error.message == "bad audio"


def test_decode_other_event_types():
    event = decode_server_event(json.dumps({"type": "session.created", "session": {}}))
    assert isinstance(event, OtherEvent)
    assert event.raw_type == "session.created"


def test_decode_empty_audio_delta_is_not_relayed():
    event = decode_server_event(json.dumps({"type": "response.audio.delta", "delta": ""}))
    assert isinstance(event, OtherEvent)
    assert event.raw_type == "response.audio.delta"


@pytest.mark.parametrize(
    "message",
    [
        "not json",
        json.dumps(["a", "list"]),
        json.dumps({"no": "type"}),
        json.dumps({"type": "response.audio.delta"}),
        b"\x00\x01",
    ],
)
def test_decode_malformed_messages(message):
    with pytest.raises(ProtocolDecodeError):
        decode_server_event(message)


@pytest.mark.asyncio
async def test_open_without_api_key():
    leg = RealtimeLeg(api_key=None)
    with pytest.raises(LegOpenError):
        await leg.open()


@pytest.mark.asyncio
async def test_open_connects_with_auth_headers():
    leg = RealtimeLeg(api_key="sk-test", model="gpt-4o-realtime-preview-2024-10-01")
    socket = MockRealtimeSocket()
    with patch("clinicvoice.bot.realtime_api.websockets.connect", new=AsyncMock(return_value=socket)) as mock_connect:
        await leg.open()

    assert leg.ws is socket
    url = mock_connect.call_args.args[0]
    assert url == "wss://api.openai.com/v1/realtime?model=gpt-4o-realtime-preview-2024-10-01"
    headers = mock_connect.call_args.kwargs["additional_headers"]
    assert headers["Authorization"] == "Bearer sk-test"
    assert headers["OpenAI-Beta"] == "realtime=v1"


@pytest.mark.asyncio
async def test_open_failure_raises_leg_open_error():
    leg = RealtimeLeg(api_key="sk-test")
    with patch(
        "clinicvoice.bot.realtime_api.websockets.connect",
        new=AsyncMock(side_effect=OSError("connection refused")),
    ):
        with pytest.raises(LegOpenError):
            await leg.open()


@pytest.mark.asyncio
async def test_open_timeout_raises_leg_open_error():
    async def never_connects(*args, **kwargs):
        await asyncio.sleep(10)

    leg = RealtimeLeg(api_key="sk-test", connect_timeout=0.01)
    with patch("clinicvoice.bot.realtime_api.websockets.connect", new=never_connects):
        with pytest.raises(LegOpenError):
            await leg.open()


@pytest.mark.asyncio
async def test_send_session_update(leg, tenant):
    await leg.send_session_update(tenant)

    (message,) = leg.ws.sent_json()
    assert message["type"] == "session.update"
    session = message["session"]
    assert session["instructions"] == tenant.ai_instructions
    assert session["voice"] == "shimmer"
    assert session["input_audio_format"] == "g711_alaw"
    assert session["output_audio_format"] == "g711_alaw"
    assert session["modalities"] == ["text", "audio"]
    assert session["tools"][0]["name"] == "create_booking"
    assert session["tools"][0]["parameters"]["required"] == ["patient_name", "start_time_iso"]


@pytest.mark.asyncio
async def test_audio_and_commit_messages(leg):
    await leg.send_audio_chunk("AAAA")
    await leg.commit_and_request_response()

    assert leg.ws.sent_json() == [
        {"type": "input_audio_buffer.append", "audio": "AAAA"},
        {"type": "input_audio_buffer.commit"},
        {"type": "response.create"},
    ]


@pytest.mark.asyncio
async def test_send_tool_result(leg):
    await leg.send_tool_result("call_1", BookingResult(success=True, appointment_id="42"))

    item_create, response_create = leg.ws.sent_json()
    assert item_create["type"] == "conversation.item.create"
    assert item_create["item"]["type"] == "function_call_output"
    assert item_create["item"]["call_id"] == "call_1"
    assert json.loads(item_create["item"]["output"]) == {
        "success": True,
        "appointment_id": "42",
        "message": "Appointment successfully booked!",
    }
    assert response_create == {"type": "response.create"}


@pytest.mark.asyncio
async def test_send_timeout(leg):
    async def slow_send(text):
        await asyncio.sleep(1)

    leg.send_timeout = 0.01
    leg.ws.send = AsyncMock(side_effect=slow_send)
    with pytest.raises(LegSendTimeout):
        await leg.send_audio_chunk("AAAA")


@pytest.mark.asyncio
async def test_send_after_close(leg):
    await leg.close()
    leg.ws.close.assert_awaited_once()
    with pytest.raises(LegClosedError):
        await leg.send_audio_chunk("AAAA")


@pytest.mark.asyncio
async def test_events_skip_malformed_messages(leg):
    leg.ws = MockRealtimeSocket(
        messages=[
            json.dumps({"type": "session.created"}),
            "{broken",
            json.dumps({"type": "response.audio.delta", "delta": "AAAA"}),
            json.dumps({"type": "response.done", "response": {"id": "resp_1"}}),
        ]
    )

    events = [event async for event in leg.events()]

    assert [type(e) for e in events] == [OtherEvent, AudioChunk, ResponseDone]


@pytest.mark.asyncio
async def test_events_raise_on_abnormal_close(leg):
    leg.ws = MockRealtimeSocket(
        messages=[json.dumps({"type": "response.audio.delta", "delta": "AAAA"})],
        error=ConnectionClosedError(None, None),
    )

    received = []
    with pytest.raises(LegError):
        async for event in leg.events():
            received.append(event)
    assert len(received) == 1
