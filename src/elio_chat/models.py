"""Conversation data model shared by the engine, history store, and UI."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
import time
from typing import Any

from pydantic import BaseModel, ConfigDict

from .exceptions import PersistenceError


def now_ms() -> int:
    """Return the current wall-clock time as integer epoch milliseconds."""
    return time.time_ns() // 1_000_000


class MonotonicIds:
    """Allocate epoch-millisecond ids that never repeat, even when the clock ties."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._last = 0

    def next(self) -> str:
        candidate = int(self._clock())
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return str(candidate)


class Sender(str, Enum):
    """Author of a timeline message."""

    USER = "user"
    AI = "ai"


@dataclass(frozen=True)
class Attachment:
    """Base64-encoded file content attached to a user message."""

    mime_type: str
    data: str
    file_name: str

    @property
    def data_uri(self) -> str:
        """Rebuild a displayable ``data:`` URI for presentation."""
        return f"data:{self.mime_type};base64,{self.data}"

    @property
    def is_image(self) -> bool:
        return self.mime_type.lower().startswith("image/")

    def to_dict(self) -> dict[str, str]:
        return {"mimeType": self.mime_type, "data": self.data, "fileName": self.file_name}

    @classmethod
    def from_dict(cls, payload: Any) -> Attachment:
        if not isinstance(payload, dict):
            raise PersistenceError("Attachment payload must be an object.")
        return cls(
            mime_type=_require_str(payload, "mimeType"),
            data=_require_str(payload, "data"),
            file_name=_require_str(payload, "fileName"),
        )


@dataclass(frozen=True)
class Message:
    """One timeline entry. AI messages are replaced by id while streaming."""

    id: str
    text: str
    sender: Sender
    timestamp: int
    is_thinking: bool | None = None
    attachments: tuple[Attachment, ...] = ()

    def with_text(self, text: str) -> Message:
        """Return a copy carrying ``text`` under the same id."""
        return replace(self, text=text)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "sender": self.sender.value,
            "timestamp": self.timestamp,
        }
        if self.is_thinking is not None:
            payload["isThinking"] = self.is_thinking
        if self.attachments:
            payload["attachments"] = [item.to_dict() for item in self.attachments]
        return payload

    @classmethod
    def from_dict(cls, payload: Any) -> Message:
        if not isinstance(payload, dict):
            raise PersistenceError("Message payload must be an object.")
        try:
            sender = Sender(payload.get("sender"))
        except ValueError as exc:
            raise PersistenceError(
                f"Unknown message sender {payload.get('sender')!r}."
            ) from exc

        is_thinking = payload.get("isThinking")
        if is_thinking is not None and not isinstance(is_thinking, bool):
            raise PersistenceError("isThinking must be a boolean.")

        raw_attachments = payload.get("attachments") or []
        if not isinstance(raw_attachments, list):
            raise PersistenceError("attachments must be a list.")

        return cls(
            id=_require_str(payload, "id"),
            text=_require_str(payload, "text"),
            sender=sender,
            timestamp=_require_int(payload, "timestamp"),
            is_thinking=is_thinking,
            attachments=tuple(Attachment.from_dict(item) for item in raw_attachments),
        )


@dataclass(frozen=True)
class ChatState:
    """Immutable snapshot handed to the presentation layer after each transition."""

    messages: tuple[Message, ...] = ()
    is_loading: bool = False
    error: str | None = None


@dataclass(frozen=True)
class ChatHistoryItem:
    """A persisted conversation keyed by its conversation id."""

    id: str
    title: str
    messages: tuple[Message, ...]
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [message.to_dict() for message in self.messages],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, payload: Any) -> ChatHistoryItem:
        if not isinstance(payload, dict):
            raise PersistenceError("History item must be an object.")
        raw_messages = payload.get("messages")
        if not isinstance(raw_messages, list):
            raise PersistenceError("History item messages must be a list.")
        return cls(
            id=_require_str(payload, "id"),
            title=_require_str(payload, "title"),
            messages=tuple(Message.from_dict(item) for item in raw_messages),
            timestamp=_require_int(payload, "timestamp"),
        )


@dataclass(frozen=True)
class SessionConfig:
    """Global session toggle selecting the higher-effort reasoning mode."""

    use_thinking: bool = False


class Suggestion(BaseModel):
    """A starter prompt offered on an empty conversation."""

    model_config = ConfigDict(frozen=True)

    icon: str
    text: str


def _require_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise PersistenceError(f"Field {key!r} must be a string.")
    return value


def _require_int(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key)
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int):
        raise PersistenceError(f"Field {key!r} must be an integer.")
    return value


__all__ = [
    "Attachment",
    "ChatHistoryItem",
    "ChatState",
    "Message",
    "MonotonicIds",
    "Sender",
    "SessionConfig",
    "Suggestion",
    "now_ms",
]
