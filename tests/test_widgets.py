"""Tests for conversation widgets."""

from __future__ import annotations

import unittest

from textual.app import App, ComposeResult
from textual.widgets import Button, Input, Label

from elio_chat.models import Attachment, ChatHistoryItem, Message, Sender, Suggestion
from elio_chat.widgets import (
    ConversationView,
    HistoryList,
    InputBox,
    MessageBubble,
    SuggestionList,
)
from elio_chat.widgets.input_box import describe_attachments


def _message(message_id: str, text: str, sender: Sender = Sender.AI) -> Message:
    return Message(id=message_id, text=text, sender=sender, timestamp=1_700_000_000_000)


class _WidgetApp(App[None]):
    def compose(self) -> ComposeResult:
        yield ConversationView(id="conversation")
        yield HistoryList(id="history")
        yield SuggestionList(id="suggestions")
        yield InputBox(id="ib")


class ConversationViewTests(unittest.IsolatedAsyncioTestCase):
    """Bubbles are reconciled by message id."""

    async def test_bubbles_follow_timeline_by_id(self) -> None:
        app = _WidgetApp()
        async with app.run_test() as pilot:
            view = app.query_one(ConversationView)
            await view.show_messages([_message("1", "hi", Sender.USER), _message("2", "")])
            await view.show_messages([_message("1", "hi", Sender.USER), _message("2", "Hel")])
            await pilot.pause()

            bubbles = list(app.query(MessageBubble))
            self.assertEqual(len(bubbles), 2)
            self.assertEqual(bubbles[1].message.text, "Hel")

            await view.show_messages([])
            await pilot.pause()
            self.assertEqual(len(app.query(MessageBubble)), 0)

    async def test_bubble_role_classes(self) -> None:
        app = _WidgetApp()
        async with app.run_test() as pilot:
            view = app.query_one(ConversationView)
            await view.show_messages([_message("1", "hi", Sender.USER), _message("2", "yo")])
            await pilot.pause()
            bubbles = list(app.query(MessageBubble))
            self.assertTrue(bubbles[0].has_class("message-user"))
            self.assertTrue(bubbles[1].has_class("message-ai"))
            self.assertEqual(bubbles[1].role_prefix, "Elio")


class ListWidgetTests(unittest.IsolatedAsyncioTestCase):
    """History and suggestion lists map options back to domain objects."""

    async def test_history_options_use_conversation_ids(self) -> None:
        app = _WidgetApp()
        async with app.run_test() as pilot:
            history = app.query_one(HistoryList)
            items = [
                ChatHistoryItem(id="b", title="Second", messages=(), timestamp=2),
                ChatHistoryItem(id="a", title="First", messages=(), timestamp=1),
            ]
            history.set_items(items, active_id="a")
            await pilot.pause()
            self.assertEqual(history.option_count, 2)
            self.assertEqual(history.get_option_at_index(0).id, "b")
            self.assertEqual(str(history.get_option_at_index(1).prompt), "> First")

    async def test_suggestion_lookup_by_option_id(self) -> None:
        app = _WidgetApp()
        async with app.run_test() as pilot:
            suggestions = app.query_one(SuggestionList)
            suggestions.set_suggestions(
                [Suggestion(icon="🐍", text="Python"), Suggestion(icon="🎨", text="CSS")]
            )
            await pilot.pause()
            self.assertEqual(suggestions.suggestion_for("1"), Suggestion(icon="🎨", text="CSS"))
            self.assertIsNone(suggestions.suggestion_for("9"))
            self.assertIsNone(suggestions.suggestion_for(None))


class InputBoxTests(unittest.IsolatedAsyncioTestCase):
    """Validate InputBox composition."""

    async def test_compose_yields_input_and_send_button(self) -> None:
        app = _WidgetApp()
        async with app.run_test() as pilot:
            await pilot.pause()
            app.query_one("#message_input", Input)
            app.query_one("#send_button", Button)
            self.assertFalse(app.query_one("#attachment_summary", Label).display)

    def test_attachment_summary_is_numbered_from_one(self) -> None:
        attachments = [
            Attachment(mime_type="image/png", data="AA", file_name="a.png"),
            Attachment(mime_type="text/plain", data="AA", file_name="b.txt"),
        ]
        self.assertTrue(describe_attachments(attachments).startswith("Attached: 1:a.png, 2:b.txt"))
        self.assertEqual(describe_attachments([]), "")


if __name__ == "__main__":
    unittest.main()
