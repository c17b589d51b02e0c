"""
Per-call session state for the call bridge.

A Session holds everything one call needs: the identifiers the telephony leg assigns
at start, the custom parameters used to initiate the agent, the lifecycle state and
the two legs. Sessions are never shared; each is owned by exactly one CallBridge.
"""

import logging
import time
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from call_bridge.config.constants import LOGGER_NAME
from call_bridge.exceptions import SessionStateError

logger = logging.getLogger(LOGGER_NAME)


class SessionState(Enum):
    """Lifecycle states of a call session."""

    INIT = "init"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    CLOSING = "closing"
    CLOSED = "closed"


ALLOWED_TRANSITIONS: Dict[SessionState, frozenset] = {
    SessionState.INIT: frozenset({SessionState.CONNECTING, SessionState.CLOSING}),
    SessionState.CONNECTING: frozenset({SessionState.STREAMING, SessionState.CLOSING}),
    SessionState.STREAMING: frozenset({SessionState.CLOSING}),
    SessionState.CLOSING: frozenset({SessionState.CLOSED}),
    SessionState.CLOSED: frozenset(),
}


class Session:
    """
    State container for one bridged call.

    The stream identifier is written once, when the telephony leg starts the stream,
    and the agent leg can be attached at most once. State changes go through
    ``transition`` so that the call can only move along the allowed lifecycle.
    """

    def __init__(self, telephony_leg: Any = None):
        self.state = SessionState.INIT
        self.telephony_leg = telephony_leg
        self.call_sid: Optional[str] = None
        self.conversation_id: Optional[str] = None
        self.created_at = time.time()
        self._stream_sid: Optional[str] = None
        self._agent_parameters: Mapping[str, Any] = MappingProxyType({})
        self._agent_leg: Any = None

    @property
    def stream_sid(self) -> Optional[str]:
        """Identifier assigned by the telephony leg; None until start."""
        return self._stream_sid

    @stream_sid.setter
    def stream_sid(self, value: str) -> None:
        if self._stream_sid is not None:
            raise SessionStateError(
                f"streamSid already set to {self._stream_sid}, refusing {value}"
            )
        self._stream_sid = value

    @property
    def agent_parameters(self) -> Mapping[str, Any]:
        """Read-only view of the custom parameters captured at start."""
        return self._agent_parameters

    @property
    def agent_leg(self) -> Any:
        return self._agent_leg

    def attach_agent_leg(self, leg: Any) -> None:
        """Attach the single agent leg of this session."""
        if self._agent_leg is not None:
            raise SessionStateError("Session already has an agent leg")
        self._agent_leg = leg

    @property
    def is_closing(self) -> bool:
        """True once teardown has begun."""
        return self.state in (SessionState.CLOSING, SessionState.CLOSED)

    def transition(self, new_state: SessionState) -> None:
        """
        Move the session to a new state.

        Raises:
            SessionStateError: If the lifecycle does not allow the transition
        """
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise SessionStateError(
                f"Invalid transition {self.state.name} -> {new_state.name}"
            )
        logger.debug(
            f"Session {self._stream_sid or '<unstarted>'}: "
            f"{self.state.name} -> {new_state.name}"
        )
        self.state = new_state

    def begin(
        self,
        stream_sid: str,
        parameters: Optional[Mapping[str, Any]] = None,
        call_sid: Optional[str] = None,
    ) -> None:
        """Capture the start-of-call data and move to CONNECTING."""
        if self.state is not SessionState.INIT:
            raise SessionStateError(f"Cannot start a session in state {self.state.name}")
        self.stream_sid = stream_sid
        self.call_sid = call_sid
        self._agent_parameters = MappingProxyType(dict(parameters or {}))
        self.transition(SessionState.CONNECTING)

    async def close_legs(self) -> None:
        """Close both legs; each leg's close is idempotent."""
        for leg in (self._agent_leg, self.telephony_leg):
            if leg is None:
                continue
            try:
                await leg.close()
            except Exception as e:
                logger.warning(f"Error closing leg for session {self._stream_sid}: {e}")
