"""Main Textual application for chatting with Elio."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Footer, Header, Input, OptionList

from .commands import CommandRegistry
from .config import load_config
from .engine import ConversationEngine
from .exceptions import ElioChatError, EncodingError, PersistenceError
from .history import HistoryStore
from .logging_utils import configure_logging
from .models import ChatState, SessionConfig
from .session import RemoteSessionClient
from .storage import JsonFileStorage
from .suggestions import SuggestionProvider
from .task_manager import TaskManager
from .widgets import (
    ConversationView,
    HistoryList,
    InputBox,
    SuggestionList,
)

LOGGER = logging.getLogger(__name__)

EXPORT_SUBDIRECTORY = "exports"


def build_engine(config: dict[str, dict[str, Any]]) -> ConversationEngine:
    """Wire the engine and its collaborators from a validated config mapping."""
    session = RemoteSessionClient.from_config(config["model"])
    persistence = config["persistence"]
    history = HistoryStore(
        JsonFileStorage(persistence["directory"]), str(persistence["storage_key"])
    )
    return ConversationEngine(
        session,
        history,
        config=SessionConfig(use_thinking=bool(config["session"]["use_thinking"])),
        max_attachment_bytes=int(config["attachments"]["max_bytes"]),
    )


class ElioChatApp(App[None]):
    """Terminal chat client for the Elio coding assistant."""

    CSS = """
    Screen {
        layout: vertical;
        background: $background;
    }

    #app-root {
        height: 1fr;
    }

    #history {
        width: 32;
        border-right: solid $panel;
        background: $surface;
    }

    #main-column {
        width: 1fr;
    }

    #conversation {
        height: 1fr;
        padding: 1;
    }

    #suggestions {
        height: auto;
        max-height: 6;
        margin: 0 1;
    }

    InputBox {
        height: auto;
        padding: 0 1 1 1;
        border-top: solid $panel;
        background: $surface;
    }

    #attachment_summary {
        color: $text-muted;
    }

    #input_row {
        height: auto;
    }

    #message_input {
        width: 1fr;
    }

    #send_button {
        margin-left: 1;
        min-width: 10;
    }

    MessageBubble {
        width: 85%;
        margin: 1 0;
        padding: 1 2;
        border: round $panel;
    }

    .message-user {
        background: $primary;
    }

    .message-ai {
        background: $surface;
    }
    """

    DEFAULT_ACTION_DESCRIPTIONS: dict[str, str] = {
        "new_conversation": "New Chat",
        "toggle_thinking": "Deep Thinking",
        "delete_conversation": "Delete",
        "export_conversation": "Export",
        "focus_history": "History",
        "quit": "Quit",
    }

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        config: dict[str, dict[str, Any]] | None = None,
        engine: ConversationEngine | None = None,
        suggestion_provider: SuggestionProvider | None = None,
    ) -> None:
        self.config = config if config is not None else load_config(config_path)
        configure_logging(self.config["logging"])
        super().__init__()
        self.title = str(self.config["app"]["title"])

        self.engine = engine or build_engine(self.config)
        model_name = str(self.config["model"]["model"])
        self.suggestion_provider = suggestion_provider or SuggestionProvider(
            self.engine.session.client, model_name
        )
        self.model_name = model_name
        self.suggestions_enabled = bool(self.config["suggestions"]["enabled"])
        self.export_directory = (
            Path(str(self.config["persistence"]["directory"])).expanduser()
            / EXPORT_SUBDIRECTORY
        )

        self._task_manager = TaskManager()
        self._binding_specs = self._binding_specs_from_config(self.config)
        self._latest_state: ChatState | None = None
        self._render_scheduled = False
        self._unsubscribe: Any = None

        self.slash_commands = CommandRegistry()
        self._register_all_commands()

    @classmethod
    def _binding_specs_from_config(
        cls, config: dict[str, dict[str, Any]]
    ) -> list[Binding]:
        keybinds = config.get("keybinds", {})
        bindings: list[Binding] = []
        for action_name, description in cls.DEFAULT_ACTION_DESCRIPTIONS.items():
            binding_key = keybinds.get(action_name)
            if isinstance(binding_key, str) and binding_key.strip():
                bindings.append(
                    Binding(
                        key=binding_key.strip(),
                        action=action_name,
                        description=description,
                        show=True,
                    )
                )
        return bindings

    def _register_all_commands(self) -> None:
        self.slash_commands.register("attach", self._handle_attach_command, "Attach a file: /attach <path>")
        self.slash_commands.register("detach", self._handle_detach_command, "Remove attachment: /detach <n>")
        self.slash_commands.register("new", self._handle_new_command, "Start a new conversation")
        self.slash_commands.register("thinking", self._handle_thinking_command, "Toggle Deep Thinking mode")
        self.slash_commands.register("delete", self._handle_delete_command, "Delete the current conversation")
        self.slash_commands.register("export", self._handle_export_command, "Export the current conversation")
        self.slash_commands.register("help", self._handle_help_command, "Show available commands")

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="app-root"):
            yield HistoryList(id="history")
            with Vertical(id="main-column"):
                yield ConversationView(id="conversation")
                yield SuggestionList(id="suggestions")
                yield InputBox()
        yield Footer()

    async def on_mount(self) -> None:
        """Register keybindings, start the session and load history."""
        for binding in self._binding_specs:
            self.bind(
                binding.key,
                binding.action,
                description=binding.description,
                show=binding.show,
            )
        self._unsubscribe = self.engine.subscribe(self._on_engine_state)
        self.engine.start()
        self.query_one("#message_input", Input).focus()
        if self.suggestions_enabled:
            self._request_suggestions()
        else:
            self.query_one(SuggestionList).display = False

    async def on_unmount(self) -> None:
        """Cancel background work; an interrupted reply is saved by the engine."""
        if self._unsubscribe is not None:
            self._unsubscribe()
        await self._task_manager.cancel_all()

    # ------------------------------------------------------------------
    # State rendering
    # ------------------------------------------------------------------

    def _on_engine_state(self, state: ChatState) -> None:
        self._latest_state = state
        if not self._render_scheduled:
            self._render_scheduled = True
            self.call_later(self._flush_state)

    def _status_text(self, state: ChatState) -> str:
        mode = "Deep Thinking" if self.engine.use_thinking else "Standard"
        if state.is_loading:
            activity = "Replying..."
        elif state.error:
            activity = f"Error: {state.error}"
        else:
            activity = "Ready"
        return f"{self.model_name} | {mode} | {activity}"

    async def _flush_state(self) -> None:
        self._render_scheduled = False
        state = self._latest_state
        if state is None:
            return
        await self.query_one(ConversationView).show_messages(state.messages)
        self.query_one(InputBox).show_attachments(self.engine.pending_attachments)
        self.query_one(SuggestionList).display = (
            self.suggestions_enabled and not state.messages
        )
        self.query_one("#send_button", Button).disabled = state.is_loading
        if not state.is_loading:
            self.query_one(HistoryList).set_items(
                self.engine.history(), self.engine.active_conversation_id
            )
        self.sub_title = self._status_text(state)

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def _request_suggestions(self) -> None:
        self._task_manager.spawn(self._load_suggestions(), name="suggestions")

    async def _load_suggestions(self) -> None:
        suggestions = await self.suggestion_provider.fetch_suggestions()
        self.query_one(SuggestionList).set_suggestions(suggestions)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "message_input":
            await self.send_user_message()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send_button":
            event.stop()
            await self.send_user_message()

    async def on_option_list_option_selected(
        self, event: OptionList.OptionSelected
    ) -> None:
        event.stop()
        if isinstance(event.option_list, HistoryList):
            if event.option_id is not None:
                await self._cancel_send()
                self.engine.load_conversation(event.option_id)
            return
        if isinstance(event.option_list, SuggestionList):
            suggestion = event.option_list.suggestion_for(event.option_id)
            if suggestion is not None:
                self.submit_text(suggestion.text)

    async def send_user_message(self) -> None:
        """Run a slash command or submit the input line to the engine."""
        input_widget = self.query_one("#message_input", Input)
        raw_text = input_widget.value.strip()

        if raw_text.startswith("/"):
            input_widget.value = ""
            try:
                handled = await self.slash_commands.execute(raw_text)
            except ElioChatError as exc:
                self.sub_title = str(exc)
                return
            if not handled:
                self.sub_title = f"Unknown command {raw_text.split()[0]}. Try /help."
            return

        if self.submit_text(raw_text):
            input_widget.value = ""

    def submit_text(self, text: str) -> bool:
        """Start a background send; returns False when nothing was started."""
        if self.engine.is_loading:
            self.sub_title = "Busy. Wait for the current reply to finish."
            return False
        if not text.strip() and not self.engine.pending_attachments:
            self.sub_title = "Cannot send an empty message."
            return False
        self._task_manager.spawn(self.engine.submit(text), name="send")
        return True

    # ------------------------------------------------------------------
    # Slash commands
    # ------------------------------------------------------------------

    async def _handle_attach_command(self, args: str) -> None:
        raw_path = args.strip().strip("'\"")
        if not raw_path:
            self.sub_title = "Usage: /attach <path>"
            return
        try:
            attachment = self.engine.attach_file(raw_path)
        except EncodingError as exc:
            self.sub_title = str(exc)
            return
        self.sub_title = f"Attached {attachment.file_name}"

    async def _handle_detach_command(self, args: str) -> None:
        token = args.strip()
        if not token.isdigit():
            self.sub_title = "Usage: /detach <n>"
            return
        removed = self.engine.remove_attachment(int(token) - 1)
        if removed is None:
            self.sub_title = f"No attachment #{token}."
            return
        self.sub_title = f"Removed {removed.file_name}"

    async def _handle_new_command(self, _args: str) -> None:
        await self.action_new_conversation()

    async def _handle_thinking_command(self, _args: str) -> None:
        await self.action_toggle_thinking()

    async def _handle_delete_command(self, _args: str) -> None:
        await self.action_delete_conversation()

    async def _handle_export_command(self, _args: str) -> None:
        await self.action_export_conversation()

    async def _handle_help_command(self, _args: str) -> None:
        self.notify(self.slash_commands.help_text(), title="Commands", timeout=10)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _cancel_send(self) -> None:
        """Stop an in-flight reply stream before navigating away from it."""
        await self._task_manager.cancel("send")

    async def action_new_conversation(self) -> None:
        await self._cancel_send()
        self.engine.new_conversation()
        if self.suggestions_enabled:
            self._request_suggestions()

    async def action_toggle_thinking(self) -> None:
        await self._cancel_send()
        self.engine.set_use_thinking(not self.engine.use_thinking)
        label = "on" if self.engine.use_thinking else "off"
        LOGGER.info(
            "app.thinking.toggled",
            extra={"event": "app.thinking.toggled", "use_thinking": self.engine.use_thinking},
        )
        self.notify(f"Deep Thinking {label}")

    async def action_delete_conversation(self) -> None:
        conversation_id = self.engine.active_conversation_id
        if conversation_id is None:
            self.sub_title = "Nothing to delete."
            return
        await self._cancel_send()
        if self.engine.delete_conversation(conversation_id):
            self.notify("Conversation deleted.")
        else:
            self.sub_title = "Conversation is not saved yet."

    async def action_export_conversation(self) -> None:
        try:
            target = self.engine.export_conversation(self.export_directory)
        except PersistenceError as exc:
            self.sub_title = str(exc)
            return
        self.notify(f"Exported to {target}")

    def action_focus_history(self) -> None:
        self.query_one(HistoryList).focus()

    async def action_quit(self) -> None:
        self.exit()
