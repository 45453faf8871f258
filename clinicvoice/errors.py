"""
Exception types raised inside the call bridge.

None of these are allowed to escape a call session: the session converts
each of them into a lifecycle transition, a dropped frame or a failed
booking result.
"""


class BridgeError(Exception):
    """Base class for all call bridge errors."""


class LegError(BridgeError):
    """A leg (telephony or AI provider connection) failed."""

    def __init__(self, leg: str, message: str):
        super().__init__(f"{leg} leg: {message}")
        self.leg = leg


class LegOpenError(LegError):
    """The AI provider connection could not be opened or authenticated."""


class LegSendTimeout(LegError):
    """A send on a leg did not complete within the configured timeout."""


class LegClosedError(LegError):
    """A send was attempted on a leg that is already closed."""


class ProtocolDecodeError(BridgeError):
    """A single inbound frame could not be decoded."""


class PersistenceError(BridgeError):
    """The scheduling or tenant store failed."""
