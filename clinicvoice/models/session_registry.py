"""
Active call session registry.

This module provides the SessionRegistry class which tracks every live call
session by its session ID. Sessions add themselves when they are created and
are removed from the single finalization path every session runs through,
whether the call ended normally, failed or timed out.
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from clinicvoice.config.constants import LOGGER_NAME

if TYPE_CHECKING:
    from clinicvoice.bot.call_session import CallSession

logger = logging.getLogger(LOGGER_NAME)


class SessionRegistry:
    """
    Registry of active call sessions keyed by session ID.

    Each session owns its legs exclusively, so the registry never hands out
    leg handles; it only answers which sessions exist and lets shutdown
    close all of them.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self.active_sessions: Dict[str, "CallSession"] = {}

    def add(self, session: "CallSession") -> None:
        """
        Register a new session.

        Args:
            session: The session to register

        Raises:
            ValueError: If the session ID is already registered
        """
        if session.session_id in self.active_sessions:
            raise ValueError(f"Session already registered: {session.session_id}")
        self.active_sessions[session.session_id] = session
        logger.info(f"Session registered: {session.session_id} ({len(self)} active)")

    def get(self, session_id: str) -> Optional["CallSession"]:
        """Get an active session by its ID, or None."""
        return self.active_sessions.get(session_id)

    def remove(self, session_id: str) -> None:
        """
        Remove a session from the registry. Removing an unknown ID is a no-op.

        Args:
            session_id: Identifier of the session to remove
        """
        if self.active_sessions.pop(session_id, None) is not None:
            logger.info(f"Session removed: {session_id} ({len(self)} active)")

    def active_ids(self) -> List[str]:
        return list(self.active_sessions)

    async def close_all(self, reason: str = "shutdown") -> None:
        """Close every active session, e.g. on application shutdown."""
        for session in list(self.active_sessions.values()):
            await session.close(reason)

    def __len__(self) -> int:
        return len(self.active_sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.active_sessions
