"""Message bubble widget for a single timeline entry."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from rich.markdown import Markdown
from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Static

from ..models import Message, Sender

THINKING_LABEL = "Thinking..."
DEEP_THINKING_MARKER = "Deep Thinking"


def format_timestamp(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M")


class MessageBubble(Vertical):
    """Render one :class:`Message`; updated in place while its reply streams."""

    DEFAULT_CSS = """
    MessageBubble {
        height: auto;
    }
    MessageBubble > #header-block {
        padding: 0;
    }
    MessageBubble > #thinking-block {
        color: $text-muted;
        padding: 0 1;
        border-left: solid $panel;
    }
    MessageBubble > #attachments-block {
        color: $text-muted;
        padding: 0 1;
    }
    MessageBubble > #content-block {
        height: auto;
    }
    """

    def __init__(self, message: Message, **kwargs: Any) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self.message = message
        self.add_class(f"message-{message.sender.value}")
        self._thinking_widget: Static | None = None
        self._attachments_widget: Static | None = None
        self._content_widget: Static | None = None

    @property
    def role_prefix(self) -> str:
        return "You" if self.message.sender is Sender.USER else "Elio"

    def compose(self) -> ComposeResult:
        header = f"**{self.role_prefix}**  _{format_timestamp(self.message.timestamp)}_"
        if self.message.is_thinking:
            header += f"  `{DEEP_THINKING_MARKER}`"
        self._thinking_widget = Static("", id="thinking-block")
        self._attachments_widget = Static("", id="attachments-block")
        self._content_widget = Static("", id="content-block")
        yield Static(Markdown(header), id="header-block")
        yield self._thinking_widget
        yield self._attachments_widget
        yield self._content_widget

    def on_mount(self) -> None:
        self._refresh()

    def _refresh(self) -> None:
        if (
            self._content_widget is None
            or self._thinking_widget is None
            or self._attachments_widget is None
        ):
            return
        message = self.message
        text = message.text.rstrip()
        self._content_widget.update(Markdown(text) if text else "")

        waiting = bool(message.is_thinking) and not text
        self._thinking_widget.update(Text(THINKING_LABEL, style="dim italic"))
        self._thinking_widget.display = waiting

        names = [
            f"{'[image]' if item.is_image else '[file]'} {item.file_name}"
            for item in message.attachments
        ]
        self._attachments_widget.update(Text("\n".join(names), style="dim"))
        self._attachments_widget.display = bool(names)

    def update_message(self, message: Message) -> None:
        """Swap in a newer version of the same message and rerender."""
        if message == self.message:
            return
        self.message = message
        self._refresh()
