"""Tests for the replayed turn history and its trimming rules."""

from __future__ import annotations

import unittest

from elio_chat.context import ContextWindow, estimate_tokens


class ContextWindowTests(unittest.TestCase):
    """Validate history bounds and token budgeting."""

    def test_request_starts_with_system_instruction(self) -> None:
        window = ContextWindow(system_instruction="system")
        request = window.build_request({"role": "user", "content": "hi"})
        self.assertEqual(
            request,
            [{"role": "system", "content": "system"}, {"role": "user", "content": "hi"}],
        )

    def test_blank_system_instruction_is_omitted(self) -> None:
        window = ContextWindow(system_instruction="   ")
        request = window.build_request({"role": "user", "content": "hi"})
        self.assertEqual(request, [{"role": "user", "content": "hi"}])

    def test_max_history_messages_drops_whole_exchanges(self) -> None:
        window = ContextWindow(max_history_messages=4)
        window.commit("one", "two")
        window.commit("three", "four")
        window.commit("five", "six")

        self.assertEqual(len(window), 4)
        request = window.build_request({"role": "user", "content": "now"})
        contents = [message["content"] for message in request]
        self.assertEqual(contents, ["three", "four", "five", "six", "now"])

    def test_token_budget_keeps_newest_exchanges(self) -> None:
        window = ContextWindow(system_instruction="sys", max_context_tokens=60)
        old = "old " * 40
        window.commit(old, old)
        window.commit("recent question", "recent answer")

        request = window.build_request({"role": "user", "content": "now"})

        contents = [message["content"] for message in request]
        self.assertEqual(
            contents, ["sys", "recent question", "recent answer", "now"]
        )

    def test_estimate_tokens_grows_with_content(self) -> None:
        self.assertLess(estimate_tokens("user", "a"), estimate_tokens("user", "a " * 50))


if __name__ == "__main__":
    unittest.main()
