"""Slash command registry for the chat input."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging

LOGGER = logging.getLogger(__name__)

CommandHandler = Callable[[str], Awaitable[None]]


def split_command(command_line: str) -> tuple[str, str] | None:
    """Split ``"/name args"`` into ``("name", "args")``; non-commands yield None."""
    stripped = command_line.strip()
    if not stripped.startswith("/") or len(stripped) == 1:
        return None
    parts = stripped.split(maxsplit=1)
    return parts[0][1:].lower(), parts[1].strip() if len(parts) > 1 else ""


class CommandRegistry:
    """Map slash command names to async handlers.

    Handles commands like:
    - /attach <path> - Queue a file for the next message
    - /detach <n> - Drop a queued file
    - /new - Start a new conversation
    - /help - Show help
    """

    def __init__(self) -> None:
        self._commands: dict[str, CommandHandler] = {}
        self._command_help: dict[str, str] = {}

    def register(self, name: str, handler: CommandHandler, help_text: str = "") -> None:
        normalized_name = name.lstrip("/").lower()
        self._commands[normalized_name] = handler
        self._command_help[normalized_name] = help_text or f"Execute /{normalized_name}"
        LOGGER.debug(
            "commands.registered",
            extra={"event": "commands.registered", "command": normalized_name},
        )

    async def execute(self, command_line: str) -> bool:
        """Run the handler for ``command_line``.

        Returns:
            True if a registered command handled the line, False otherwise.
        """
        parsed = split_command(command_line)
        if parsed is None:
            return False
        name, args = parsed
        handler = self._commands.get(name)
        if handler is None:
            LOGGER.info(
                "commands.unknown", extra={"event": "commands.unknown", "command": name}
            )
            return False
        await handler(args)
        return True

    def get_commands(self) -> list[tuple[str, str]]:
        return [(f"/{name}", text) for name, text in self._command_help.items()]

    def help_text(self) -> str:
        return "\n".join(f"{name}  {text}" for name, text in self.get_commands())
