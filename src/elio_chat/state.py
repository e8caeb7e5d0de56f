"""Conversation state machine with an explicit transition table."""

from __future__ import annotations

from enum import Enum
import logging

from .exceptions import InvariantViolation

LOGGER = logging.getLogger(__name__)


class ConversationState(str, Enum):
    """Finite state machine for the active conversation lifecycle."""

    IDLE = "IDLE"
    SENDING = "SENDING"
    FAILED = "FAILED"


_ALLOWED_TRANSITIONS: dict[ConversationState, frozenset[ConversationState]] = {
    ConversationState.IDLE: frozenset({ConversationState.SENDING}),
    ConversationState.SENDING: frozenset(
        {ConversationState.IDLE, ConversationState.FAILED}
    ),
    # FAILED is not sticky: a new submit is allowed.
    ConversationState.FAILED: frozenset(
        {ConversationState.SENDING, ConversationState.IDLE}
    ),
}


class StateMachine:
    """Track the conversation state and reject illegal transitions.

    All transitions run on the single event-loop thread, so no lock is held;
    each call completes before the next event is processed.
    """

    def __init__(self) -> None:
        self._state = ConversationState.IDLE

    @property
    def state(self) -> ConversationState:
        return self._state

    def transition_to(self, new_state: ConversationState) -> ConversationState:
        """Move to ``new_state`` or raise :class:`InvariantViolation`."""
        if new_state not in _ALLOWED_TRANSITIONS[self._state]:
            raise InvariantViolation(
                f"Illegal transition {self._state.value} -> {new_state.value}."
            )
        LOGGER.debug(
            "state.transition",
            extra={
                "event": "state.transition",
                "from_state": self._state.value,
                "to_state": new_state.value,
            },
        )
        self._state = new_state
        return self._state

    def reset(self) -> None:
        """Force the machine back to IDLE, abandoning any in-flight send."""
        self._state = ConversationState.IDLE
