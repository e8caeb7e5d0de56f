"""Tests for slash command parsing and dispatch."""

from __future__ import annotations

import unittest

from elio_chat.commands import CommandRegistry, split_command


class SplitCommandTests(unittest.TestCase):
    """Validate the command line grammar."""

    def test_name_and_arguments(self) -> None:
        self.assertEqual(split_command("/attach  ~/a b.png "), ("attach", "~/a b.png"))

    def test_name_is_case_insensitive(self) -> None:
        self.assertEqual(split_command("/NEW"), ("new", ""))

    def test_plain_text_is_not_a_command(self) -> None:
        self.assertIsNone(split_command("hello /attach"))
        self.assertIsNone(split_command("/"))


class CommandRegistryTests(unittest.IsolatedAsyncioTestCase):
    """Validate registration and execution."""

    async def test_registered_handler_receives_arguments(self) -> None:
        registry = CommandRegistry()
        received: list[str] = []

        async def _handler(args: str) -> None:
            received.append(args)

        registry.register("/detach", _handler, "Remove attachment")

        self.assertTrue(await registry.execute("/detach 2"))
        self.assertEqual(received, ["2"])
        self.assertEqual(registry.get_commands(), [("/detach", "Remove attachment")])

    async def test_unknown_command_is_not_handled(self) -> None:
        registry = CommandRegistry()
        self.assertFalse(await registry.execute("/nope"))
        self.assertFalse(await registry.execute("not a command"))

    async def test_handler_errors_propagate(self) -> None:
        registry = CommandRegistry()

        async def _broken(_args: str) -> None:
            raise ValueError("bad")

        registry.register("broken", _broken)
        with self.assertRaises(ValueError):
            await registry.execute("/broken")

    def test_help_text_lists_commands(self) -> None:
        registry = CommandRegistry()

        async def _noop(_args: str) -> None:
            return None

        registry.register("new", _noop, "Start a new conversation")
        self.assertIn("/new  Start a new conversation", registry.help_text())


if __name__ == "__main__":
    unittest.main()
