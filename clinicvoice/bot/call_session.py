"""
Per-call session: the bridge between one telephony leg and one AI leg.

Every inbound event from either leg, and every finished booking execution,
lands in a single inbox queue that one consumer drains in order. That single
consumer is the only code that touches session state, so there is no shared
mutable state between tasks and no locking.

Lifecycle::

    CONNECTING -> NEGOTIATING -> ACTIVE -> CLOSING -> CLOSED

Any state may go straight to CLOSED on a leg failure, an idle timeout or an
explicit close. Every path to CLOSED runs through ``_finalize``, which
releases both legs and removes the session from its registry exactly once.
"""

import asyncio
import logging
import uuid
from enum import Enum
from typing import Callable, Dict, List, Optional

from clinicvoice.bot.legs import AiLeg, TelephonyLeg
from clinicvoice.config.constants import BOOKING_ERROR_PERSISTENCE, BOOKING_TOOL_NAME, LOGGER_NAME
from clinicvoice.errors import LegError, LegOpenError
from clinicvoice.models.booking import BookingResult, ToolInvocation
from clinicvoice.models.events import (
    AnyEvent,
    AudioChunk,
    CallStarted,
    CallStopped,
    LegClosed,
    LegName,
    OtherEvent,
    ProviderError,
    ResponseDone,
    ToolCallRequested,
    ToolCompleted,
)
from clinicvoice.models.tenant import TenantContext
from clinicvoice.services.booking_executor import BookingExecutor

logger = logging.getLogger(LOGGER_NAME)

# Wakes the consumer after an external close()
_WAKE = object()


class SessionState(str, Enum):
    CONNECTING = "connecting"
    NEGOTIATING = "negotiating"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class CallSession:
    """
    Bridges one phone call to one AI conversation.

    The session exclusively owns both legs. Tool executions run as
    background tasks and report back through the inbox, so audio keeps
    flowing while a booking is being persisted.
    """

    def __init__(
        self,
        telephony: TelephonyLeg,
        ai: AiLeg,
        tenant: TenantContext,
        executor: BookingExecutor,
        idle_timeout: float = 0,
        closing_timeout: float = 5.0,
        on_closed: Optional[Callable[["CallSession"], None]] = None,
        session_id: Optional[str] = None,
    ):
        """
        Initialize a call session.

        Args:
            telephony: The caller-side leg, already accepted
            ai: The AI leg, not yet opened
            tenant: Tenant snapshot resolved for this call
            executor: Executes booking tool calls
            idle_timeout: Seconds without any event before the call is torn down; 0 disables
            closing_timeout: Seconds to wait for the final AI response after the caller hangs up
            on_closed: Called once with the session after it is finalized
            session_id: Optional identifier; generated when omitted
        """
        self.session_id = session_id or uuid.uuid4().hex
        self.telephony = telephony
        self.ai = ai
        self.tenant = tenant
        self.executor = executor
        self.idle_timeout = idle_timeout
        self.closing_timeout = closing_timeout
        self.on_closed = on_closed

        self.state = SessionState.CONNECTING
        self.close_reason: Optional[str] = None
        self.call_sid: Optional[str] = None
        self.pending_tool_calls: Dict[str, ToolInvocation] = {}
        self.completed_tool_calls: Dict[str, BookingResult] = {}

        self._inbox: asyncio.Queue = asyncio.Queue()
        self._reader_tasks: List[asyncio.Task] = []
        self._tool_tasks: Dict[str, asyncio.Task] = {}
        self._closing_deadline: Optional[float] = None
        self._ai_opened = False
        self._finalized = False

    @property
    def closed(self) -> bool:
        return self.state == SessionState.CLOSED

    def _set_state(self, state: SessionState) -> None:
        if self.state == state:
            return
        logger.info(f"[{self.session_id}] {self.state.value} -> {state.value}")
        self.state = state

    def _mark_closed(self, reason: str) -> None:
        if self.state == SessionState.CLOSED:
            return
        self.close_reason = reason
        logger.info(f"[{self.session_id}] Closing session: {reason}")
        self._set_state(SessionState.CLOSED)

    async def run(self) -> None:
        """
        Drive the call until it ends.

        Returns once the session is CLOSED and both legs are released. Never
        raises for leg failures; they only end the call.
        """
        logger.info(
            f"[{self.session_id}] Starting session for "
            f"{self.tenant.tenant_id or 'unidentified tenant'}"
        )
        try:
            if await self._negotiate():
                self._start_readers()
                await self._consume()
        except Exception as e:
            logger.error(f"[{self.session_id}] Unexpected session error: {e}", exc_info=True)
            self._mark_closed("internal_error")
        finally:
            await self._finalize()

    async def close(self, reason: str = "closed") -> None:
        """Close the session from outside, e.g. on application shutdown."""
        self._mark_closed(reason)
        self._inbox.put_nowait(_WAKE)
        await self._finalize()

    async def _negotiate(self) -> bool:
        """Open the AI leg and send the session configuration."""
        try:
            await self.ai.open()
        except LegOpenError as e:
            logger.error(f"[{self.session_id}] Could not open AI leg: {e}")
            self._mark_closed("ai_unavailable")
            await self.telephony.apologize_and_hang_up()
            return False
        self._ai_opened = True
        if self.closed:
            # close() ran while the connection was opening
            await self.ai.close()
            return False

        try:
            await self.ai.send_session_update(self.tenant)
        except LegError as e:
            logger.error(f"[{self.session_id}] Could not configure AI leg: {e}")
            self._mark_closed(f"{e.leg}_failure")
            return False

        if self.state == SessionState.CONNECTING:
            self._set_state(SessionState.NEGOTIATING)
        return not self.closed

    def _start_readers(self) -> None:
        for leg in (self.telephony, self.ai):
            task = asyncio.create_task(self._read_leg(leg))
            self._reader_tasks.append(task)

    async def _read_leg(self, leg) -> None:
        """Copy a leg's events into the inbox, then report how the leg ended."""
        try:
            async for event in leg.events():
                await self._inbox.put(event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"[{self.session_id}] {leg.name.value} leg failed: {e}")
            await self._inbox.put(LegClosed(leg=leg.name, reason=str(e), error=True))
            return
        await self._inbox.put(LegClosed(leg=leg.name))

    def _next_timeout(self) -> Optional[float]:
        if self.state == SessionState.CLOSING:
            loop = asyncio.get_running_loop()
            return max(0.0, self._closing_deadline - loop.time())
        if self.idle_timeout > 0:
            return self.idle_timeout
        return None

    async def _consume(self) -> None:
        while not self.closed:
            try:
                event = await asyncio.wait_for(self._inbox.get(), timeout=self._next_timeout())
            except asyncio.TimeoutError:
                if self.state == SessionState.CLOSING:
                    logger.warning(f"[{self.session_id}] No final AI response within {self.closing_timeout}s")
                    self._mark_closed("closing_timeout")
                else:
                    logger.warning(f"[{self.session_id}] No activity for {self.idle_timeout}s")
                    self._mark_closed("idle_timeout")
                break
            if event is _WAKE:
                continue
            await self.handle_event(event)

    async def handle_event(self, event: AnyEvent) -> None:
        """
        Apply one event to the session.

        Events arriving after the session is CLOSED are logged and dropped.
        A failed send on either leg closes the session.
        """
        if self.closed:
            logger.debug(
                f"[{self.session_id}] Dropping late {event.event_type.value} "
                f"event from {event.leg.value} leg"
            )
            return
        if self.state == SessionState.NEGOTIATING:
            self._set_state(SessionState.ACTIVE)

        try:
            await self._dispatch(event)
        except LegError as e:
            logger.error(f"[{self.session_id}] Leg failure: {e}")
            self._mark_closed(f"{e.leg}_failure")

    async def _dispatch(self, event: AnyEvent) -> None:
        if isinstance(event, AudioChunk):
            if event.leg == LegName.TELEPHONY:
                if self.state == SessionState.ACTIVE:
                    await self.ai.send_audio_chunk(event.payload)
            else:
                await self.telephony.send_audio(event.payload)

        elif isinstance(event, CallStarted):
            self.call_sid = event.call_sid
            logger.info(f"[{self.session_id}] Call started: {event.call_sid} (stream {event.stream_sid})")
            await self.ai.commit_and_request_response()

        elif isinstance(event, CallStopped):
            logger.info(f"[{self.session_id}] Caller hung up, requesting final response")
            await self.ai.commit_and_request_response()
            self._closing_deadline = asyncio.get_running_loop().time() + self.closing_timeout
            self._set_state(SessionState.CLOSING)

        elif isinstance(event, ToolCallRequested):
            await self._on_tool_call(event.invocation)

        elif isinstance(event, ToolCompleted):
            self.pending_tool_calls.pop(event.call_id, None)
            self.completed_tool_calls[event.call_id] = event.result
            await self.ai.send_tool_result(event.call_id, event.result)

        elif isinstance(event, ResponseDone):
            if self.state == SessionState.CLOSING:
                self._mark_closed("completed")

        elif isinstance(event, ProviderError):
            logger.error(f"[{self.session_id}] OpenAI error {event.code}: {event.message}")

        elif isinstance(event, LegClosed):
            if event.error:
                logger.warning(f"[{self.session_id}] {event.leg.value} leg closed with error: {event.reason}")
            self._mark_closed(f"{event.leg.value}_closed")

        elif isinstance(event, OtherEvent):
            logger.debug(f"[{self.session_id}] Ignoring OpenAI event: {event.raw_type}")

    async def _on_tool_call(self, invocation: ToolInvocation) -> None:
        call_id = invocation.call_id
        if invocation.tool_name != BOOKING_TOOL_NAME:
            logger.warning(f"[{self.session_id}] Ignoring unknown tool {invocation.tool_name} ({call_id})")
            return
        if self.state != SessionState.ACTIVE:
            logger.info(f"[{self.session_id}] Ignoring tool call {call_id} while {self.state.value}")
            return
        if call_id in self.pending_tool_calls:
            logger.info(f"[{self.session_id}] Tool call {call_id} already in progress")
            return
        if call_id in self.completed_tool_calls:
            logger.info(f"[{self.session_id}] Tool call {call_id} already executed, resending result")
            await self.ai.send_tool_result(call_id, self.completed_tool_calls[call_id])
            return

        self.pending_tool_calls[call_id] = invocation
        self._tool_tasks[call_id] = asyncio.create_task(self._execute_tool(invocation))

    async def _execute_tool(self, invocation: ToolInvocation) -> None:
        try:
            result = await self.executor.execute(invocation, self.tenant)
        except Exception as e:
            logger.error(f"[{self.session_id}] Booking execution failed: {e}", exc_info=True)
            result = BookingResult(success=False, error_reason=BOOKING_ERROR_PERSISTENCE)
        finally:
            self._tool_tasks.pop(invocation.call_id, None)
        await self._inbox.put(ToolCompleted(call_id=invocation.call_id, result=result))

    async def _finalize(self) -> None:
        """Release both legs and deregister. Runs at most once."""
        if self._finalized:
            return
        self._finalized = True
        self._mark_closed(self.close_reason or "finished")

        tasks = self._reader_tasks + list(self._tool_tasks.values())
        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tool_tasks.clear()
        self.pending_tool_calls.clear()

        if self._ai_opened:
            await self.ai.close()
        if not self.telephony.closed:
            await self.telephony.hang_up()

        logger.info(f"[{self.session_id}] Session finalized ({self.close_reason})")
        if self.on_closed is not None:
            self.on_closed(self)
