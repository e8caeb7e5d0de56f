"""Input row with the message field, pending attachment summary and send button."""

from __future__ import annotations

from collections.abc import Sequence

from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Input, Label

from ..models import Attachment


def describe_attachments(attachments: Sequence[Attachment]) -> str:
    if not attachments:
        return ""
    names = ", ".join(
        f"{index}:{item.file_name}" for index, item in enumerate(attachments, start=1)
    )
    return f"Attached: {names}  (/detach <n> to remove)"


class InputBox(Vertical):
    """Message input region."""

    def compose(self):  # type: ignore[override]
        yield Label("", id="attachment_summary")
        with Horizontal(id="input_row"):
            yield Input(
                placeholder="Ask Elio anything... (/help for commands)",
                id="message_input",
            )
            yield Button("Send", id="send_button", variant="success")

    def on_mount(self) -> None:
        self.query_one("#attachment_summary", Label).display = False

    def show_attachments(self, attachments: Sequence[Attachment]) -> None:
        summary = self.query_one("#attachment_summary", Label)
        summary.update(describe_attachments(attachments))
        summary.display = bool(attachments)
