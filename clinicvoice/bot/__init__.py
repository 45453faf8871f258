"""
Bot module bridging a phone call to an OpenAI Realtime conversation.

Key components:
- legs: Abstract telephony and AI leg interfaces. A leg decodes its provider's
  frames into bridge events and exposes only the sends a session needs.
- realtime_api: RealtimeLeg, the AI leg over the OpenAI Realtime WebSocket API.
- call_session: CallSession, the per-call state machine that relays audio between
  the legs, dispatches booking tool calls and tears the call down exactly once.

Usage examples:
```python
from clinicvoice.bot import CallSession, RealtimeLeg

session = CallSession(
    telephony=telephony_leg,
    ai=RealtimeLeg(api_key=os.getenv("OPENAI_API_KEY")),
    tenant=await resolver.resolve("clinic-42"),
    executor=executor,
    idle_timeout=300,
)
await session.run()  # returns once the call is over
```
"""

from clinicvoice.bot.call_session import CallSession, SessionState
from clinicvoice.bot.legs import AiLeg, Leg, TelephonyLeg
from clinicvoice.bot.realtime_api import RealtimeLeg

__all__ = ["CallSession", "SessionState", "AiLeg", "Leg", "TelephonyLeg", "RealtimeLeg"]
