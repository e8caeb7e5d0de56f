"""Persisted conversation history: list, save, load, delete and export."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
import json
import logging
import os
from pathlib import Path

from .exceptions import PersistenceError
from .models import ChatHistoryItem, Message, Sender, now_ms
from .storage import JsonFileStorage

LOGGER = logging.getLogger(__name__)

HISTORY_STORAGE_KEY = "elio_chat_history"
TITLE_MAX_CHARS = 30
TITLE_ELLIPSIS = "..."
UNTITLED = "New Chat"


def derive_title(text: str) -> str:
    """Title a conversation after its first message, truncated to 30 characters."""
    title = text[:TITLE_MAX_CHARS] + (TITLE_ELLIPSIS if len(text) > TITLE_MAX_CHARS else "")
    return title or UNTITLED


class HistoryStore:
    """Own the durable collection of :class:`ChatHistoryItem`, most recent first.

    The whole collection lives in a single keyed record. Every save is a
    read-modify-write of that record, written atomically by the storage layer.
    """

    def __init__(
        self,
        storage: JsonFileStorage,
        key: str = HISTORY_STORAGE_KEY,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.storage = storage
        self.key = key
        self._clock = clock

    def _decode(self, raw: str) -> list[ChatHistoryItem]:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"History record is not valid JSON: {exc}") from exc
        if not isinstance(payload, list):
            raise PersistenceError("History record must be a JSON array.")

        items: list[ChatHistoryItem] = []
        seen: set[str] = set()
        for index, entry in enumerate(payload):
            try:
                item = ChatHistoryItem.from_dict(entry)
            except PersistenceError as exc:
                LOGGER.warning(
                    "history.item.skipped",
                    extra={"event": "history.item.skipped", "index": index, "reason": str(exc)},
                )
                continue
            if item.id in seen:
                continue
            seen.add(item.id)
            items.append(item)
        return items

    def load(self) -> list[ChatHistoryItem]:
        """Return persisted items; absent or corrupt records yield an empty list."""
        try:
            raw = self.storage.get_item(self.key)
            if raw is None:
                return []
            return self._decode(raw)
        except PersistenceError as exc:
            LOGGER.warning(
                "history.load.failed",
                extra={"event": "history.load.failed", "reason": str(exc)},
            )
            return []

    def _write(self, items: Sequence[ChatHistoryItem]) -> None:
        self.storage.set_item(
            self.key,
            json.dumps([item.to_dict() for item in items], ensure_ascii=False),
        )

    def get(self, conversation_id: str) -> ChatHistoryItem | None:
        for item in self.load():
            if item.id == conversation_id:
                return item
        return None

    def save(
        self, conversation_id: str, messages: Sequence[Message]
    ) -> ChatHistoryItem | None:
        """Upsert ``messages`` under ``conversation_id``.

        Existing items are replaced in place and keep their title; new items
        are prepended. Empty timelines are ignored.
        """
        if not messages:
            return None

        items = self.load()
        timestamp = int(self._clock())
        for index, existing in enumerate(items):
            if existing.id == conversation_id:
                updated = ChatHistoryItem(
                    id=conversation_id,
                    title=existing.title,
                    messages=tuple(messages),
                    timestamp=timestamp,
                )
                items[index] = updated
                break
        else:
            updated = ChatHistoryItem(
                id=conversation_id,
                title=derive_title(messages[0].text),
                messages=tuple(messages),
                timestamp=timestamp,
            )
            items.insert(0, updated)

        self._write(items)
        LOGGER.info(
            "history.save",
            extra={
                "event": "history.save",
                "conversation_id": conversation_id,
                "messages": len(messages),
            },
        )
        return updated

    def delete(self, conversation_id: str) -> bool:
        """Remove the item for ``conversation_id``; return whether one existed."""
        items = self.load()
        remaining = [item for item in items if item.id != conversation_id]
        if len(remaining) == len(items):
            return False
        self._write(remaining)
        LOGGER.info(
            "history.delete",
            extra={"event": "history.delete", "conversation_id": conversation_id},
        )
        return True

    def export_markdown(
        self, conversation_id: str, directory: str | os.PathLike[str]
    ) -> Path:
        """Export one stored conversation as a Markdown transcript."""
        item = self.get(conversation_id)
        if item is None:
            raise PersistenceError(f"No stored conversation with id {conversation_id!r}.")

        target_dir = Path(directory).expanduser()
        stamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
        target = target_dir / f"{stamp}-{conversation_id}.md"

        lines = [f"# {item.title}", ""]
        for message in item.messages:
            role = "You" if message.sender is Sender.USER else "Elio"
            lines.append(f"## {role}")
            lines.append("")
            if message.text.strip():
                lines.append(message.text.strip())
                lines.append("")
            for attachment in message.attachments:
                lines.append(f"- Attachment: {attachment.file_name} ({attachment.mime_type})")
            if message.attachments:
                lines.append("")
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            target.write_text("\n".join(lines).strip() + "\n", encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Unable to export to {target}: {exc}") from exc
        return target
