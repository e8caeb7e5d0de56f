"""Tests for the conversation state machine transition table."""

from __future__ import annotations

import unittest

from elio_chat.exceptions import InvariantViolation
from elio_chat.state import ConversationState, StateMachine


class StateMachineTests(unittest.TestCase):
    """Validate legal and illegal conversation transitions."""

    def test_failed_send_can_be_retried(self) -> None:
        machine = StateMachine()
        machine.transition_to(ConversationState.SENDING)
        machine.transition_to(ConversationState.FAILED)
        machine.transition_to(ConversationState.SENDING)
        self.assertIs(machine.state, ConversationState.SENDING)

    def test_double_send_is_illegal(self) -> None:
        machine = StateMachine()
        machine.transition_to(ConversationState.SENDING)
        with self.assertRaises(InvariantViolation):
            machine.transition_to(ConversationState.SENDING)
        self.assertIs(machine.state, ConversationState.SENDING)

    def test_idle_cannot_fail_directly(self) -> None:
        machine = StateMachine()
        with self.assertRaises(InvariantViolation):
            machine.transition_to(ConversationState.FAILED)

    def test_reset_abandons_send(self) -> None:
        machine = StateMachine()
        machine.transition_to(ConversationState.SENDING)
        machine.reset()
        self.assertIs(machine.state, ConversationState.IDLE)


if __name__ == "__main__":
    unittest.main()
