"""Conversation engine: owns the timeline and reconciles streamed replies into it.

Every transition runs to completion on the event loop before the next event
is processed. The only suspension point is the wait for the next stream
increment; each increment is folded into the timeline synchronously.

Each send is tagged with an attempt token. Navigating away (new conversation,
loading or deleting history) bumps the token, so a stream that is still in
flight can no longer touch the timeline it was started for.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from contextlib import aclosing
import logging
import os
from pathlib import Path

from .attachments import (
    DEFAULT_MAX_BYTES,
    AttachmentBuffer,
    AttachmentSource,
    attachment_from_path,
    encode_attachment,
)
from .exceptions import InvariantViolation, PersistenceError, RemoteError
from .history import HistoryStore
from .models import (
    Attachment,
    ChatHistoryItem,
    ChatState,
    Message,
    MonotonicIds,
    Sender,
    SessionConfig,
    now_ms,
)
from .session import RemoteSessionClient
from .state import ConversationState, StateMachine

LOGGER = logging.getLogger(__name__)

ERROR_NOTICE = (
    "I encountered an error connecting to the AI. "
    "Please check your API key and internet connection."
)

StateListener = Callable[[ChatState], None]


class ConversationEngine:
    """State machine that owns the live message timeline and active conversation."""

    def __init__(
        self,
        session: RemoteSessionClient,
        history: HistoryStore,
        *,
        config: SessionConfig | None = None,
        ids: MonotonicIds | None = None,
        clock: Callable[[], int] = now_ms,
        max_attachment_bytes: int = DEFAULT_MAX_BYTES,
    ) -> None:
        self._session = session
        self._history = history
        self._config = config or SessionConfig()
        self._clock = clock
        self._ids = ids or MonotonicIds(clock)
        self.max_attachment_bytes = max_attachment_bytes

        self._machine = StateMachine()
        self._messages: tuple[Message, ...] = ()
        self._pending = AttachmentBuffer()
        self._active_id: str | None = None
        self._error: str | None = None
        self._attempt = 0
        self._listeners: list[StateListener] = []

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> ChatState:
        """Immutable snapshot for the presentation layer."""
        return ChatState(
            messages=self._messages,
            is_loading=self.is_loading,
            error=self._error,
        )

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._messages

    @property
    def is_loading(self) -> bool:
        return self._machine.state is ConversationState.SENDING

    @property
    def conversation_state(self) -> ConversationState:
        return self._machine.state

    @property
    def active_conversation_id(self) -> str | None:
        return self._active_id

    @property
    def pending_attachments(self) -> tuple[Attachment, ...]:
        return self._pending.snapshot()

    @property
    def session(self) -> RemoteSessionClient:
        return self._session

    @property
    def session_config(self) -> SessionConfig:
        return self._config

    @property
    def use_thinking(self) -> bool:
        return self._config.use_thinking

    def history(self) -> list[ChatHistoryItem]:
        """Return stored conversations, most recent first."""
        return self._history.load()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener`` for state snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # noqa: BLE001 - observers must not break the engine.
                LOGGER.exception(
                    "engine.listener.failed", extra={"event": "engine.listener.failed"}
                )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Bind a fresh remote session to the current configuration."""
        self._session.reset()
        self._session.initialize(self._config)
        self._notify()

    def _abandon_attempt(self) -> None:
        if self._machine.state is ConversationState.SENDING:
            LOGGER.info(
                "engine.attempt.abandoned",
                extra={"event": "engine.attempt.abandoned", "attempt": self._attempt},
            )
        self._attempt += 1
        self._machine.reset()

    def _save(self, conversation_id: str | None) -> None:
        if not self._messages or conversation_id is None:
            return
        try:
            self._history.save(conversation_id, self._messages)
        except PersistenceError as exc:
            LOGGER.warning(
                "engine.autosave.failed",
                extra={"event": "engine.autosave.failed", "reason": str(exc)},
            )

    def _save_outgoing(self) -> None:
        if self._messages:
            self._save(self._active_id or self._ids.next())

    def _reset_conversation(self) -> None:
        self._abandon_attempt()
        self._messages = ()
        self._pending.clear()
        self._active_id = None
        self._error = None
        self._session.reset()
        self._session.initialize(self._config)
        self._notify()

    def new_conversation(self) -> None:
        """Save the outgoing timeline, then start an empty, un-id'd conversation."""
        self._save_outgoing()
        self._reset_conversation()
        LOGGER.info("engine.conversation.new", extra={"event": "engine.conversation.new"})

    def load_conversation(self, conversation_id: str) -> bool:
        """Replace the timeline with a stored conversation."""
        item = self._history.get(conversation_id)
        if item is None:
            LOGGER.warning(
                "engine.conversation.missing",
                extra={"event": "engine.conversation.missing", "conversation_id": conversation_id},
            )
            return False

        if self._active_id != item.id:
            self._save_outgoing()
        self._abandon_attempt()
        self._messages = item.messages
        self._active_id = item.id
        self._pending.clear()
        self._error = None
        # Stored messages seed the view only; nothing is replayed to the model.
        self._session.clear_history()
        self._notify()
        LOGGER.info(
            "engine.conversation.loaded",
            extra={"event": "engine.conversation.loaded", "conversation_id": item.id},
        )
        return True

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a stored conversation; deleting the active one resets the timeline."""
        try:
            removed = self._history.delete(conversation_id)
        except PersistenceError as exc:
            LOGGER.warning(
                "engine.delete.failed",
                extra={"event": "engine.delete.failed", "reason": str(exc)},
            )
            return False
        if conversation_id == self._active_id:
            # The deleted conversation must not be written back.
            self._reset_conversation()
        return removed

    def set_use_thinking(self, use_thinking: bool) -> None:
        """Switch reasoning mode; the current session handle becomes invalid."""
        if use_thinking == self._config.use_thinking:
            return
        self._config = SessionConfig(use_thinking=use_thinking)
        LOGGER.info(
            "engine.config.changed",
            extra={"event": "engine.config.changed", "use_thinking": use_thinking},
        )
        if self._messages:
            self.new_conversation()
            return
        self._session.reset()
        self._session.initialize(self._config)
        self._notify()

    def export_conversation(self, directory: str | os.PathLike[str]) -> Path:
        """Write the active, already saved conversation as Markdown into ``directory``."""
        if self._active_id is None:
            raise PersistenceError("There is no active conversation to export.")
        return self._history.export_markdown(self._active_id, directory)

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    def add_attachment(
        self, source: AttachmentSource, mime_type: str, file_name: str
    ) -> Attachment:
        """Encode and queue an attachment; raises EncodingError without queueing."""
        attachment = encode_attachment(source, mime_type, file_name)
        self._pending.add(attachment)
        self._notify()
        return attachment

    def attach_file(self, path: str | os.PathLike[str]) -> Attachment:
        """Encode and queue a file from disk; raises EncodingError without queueing."""
        attachment = attachment_from_path(path, max_bytes=self.max_attachment_bytes)
        self._pending.add(attachment)
        self._notify()
        return attachment

    def remove_attachment(self, index: int) -> Attachment | None:
        removed = self._pending.remove(index)
        if removed is not None:
            self._notify()
        return removed

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def _new_message(
        self,
        text: str,
        sender: Sender,
        *,
        is_thinking: bool | None = None,
        attachments: tuple[Attachment, ...] = (),
    ) -> Message:
        return Message(
            id=self._ids.next(),
            text=text,
            sender=sender,
            timestamp=int(self._clock()),
            is_thinking=is_thinking,
            attachments=attachments,
        )

    def _fold_increment(self, target_id: str, text: str, is_thinking: bool | None) -> str:
        """Replace the in-progress AI message's text; return the id now targeted."""
        if self._messages and self._messages[-1].id == target_id:
            self._messages = (*self._messages[:-1], self._messages[-1].with_text(text))
            return target_id

        LOGGER.warning(
            "engine.placeholder.displaced",
            extra={"event": "engine.placeholder.displaced", "placeholder_id": target_id},
        )
        fresh = self._new_message(text, Sender.AI, is_thinking=is_thinking)
        self._messages = (*self._messages, fresh)
        return fresh.id

    async def submit(
        self, text: str, attachments: Sequence[Attachment] | None = None
    ) -> bool:
        """Send a user turn and stream the reply into the timeline.

        ``attachments`` defaults to the pending buffer, which is cleared either
        way. Returns False when nothing was sent: an empty submission, or a
        submission while another send is in flight.
        """
        trimmed = text.strip()
        snapshot = (
            tuple(attachments) if attachments is not None else self._pending.snapshot()
        )
        if not trimmed and not snapshot:
            return False

        try:
            self._machine.transition_to(ConversationState.SENDING)
        except InvariantViolation as exc:
            LOGGER.warning(
                "engine.submit.rejected",
                extra={"event": "engine.submit.rejected", "reason": str(exc)},
            )
            return False

        self._attempt += 1
        attempt = self._attempt
        self._error = None
        if self._active_id is None:
            self._active_id = self._ids.next()

        is_thinking = True if self._config.use_thinking else None
        user_message = self._new_message(trimmed, Sender.USER, attachments=snapshot)
        self._pending.clear()
        placeholder = self._new_message("", Sender.AI, is_thinking=is_thinking)
        self._messages = (*self._messages, user_message, placeholder)
        self._notify()

        if not self._session.has_session:
            self._session.initialize(self._config)

        target_id = placeholder.id
        accumulated = ""
        outcome = ConversationState.IDLE
        try:
            async with aclosing(self._session.stream(trimmed, snapshot)) as increments:
                async for increment in increments:
                    if attempt != self._attempt:
                        LOGGER.info(
                            "engine.increment.stale",
                            extra={"event": "engine.increment.stale", "attempt": attempt},
                        )
                        break
                    accumulated += increment
                    target_id = self._fold_increment(target_id, accumulated, is_thinking)
                    self._notify()
        except RemoteError as exc:
            if attempt == self._attempt:
                outcome = ConversationState.FAILED
                self._error = str(exc)
                notice = self._new_message(ERROR_NOTICE, Sender.AI)
                self._messages = (*self._messages, notice)
                LOGGER.warning(
                    "engine.send.failed",
                    extra={
                        "event": "engine.send.failed",
                        "error_type": exc.__class__.__name__,
                        "partial_chars": len(accumulated),
                    },
                )
        finally:
            if attempt == self._attempt:
                self._machine.transition_to(outcome)
                self._notify()
                self._save(self._active_id)
        return True
