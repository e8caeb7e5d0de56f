"""Top-level package for the Elio chat client."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .app import ElioChatApp
    from .config import ensure_config_dir, load_config
    from .engine import ConversationEngine
    from .exceptions import (
        ConfigValidationError,
        ElioChatError,
        EncodingError,
        InvariantViolation,
        PersistenceError,
        RemoteConnectionError,
        RemoteError,
        RemoteModelNotFoundError,
        RemoteStreamingError,
    )
    from .history import HistoryStore
    from .models import Attachment, ChatHistoryItem, ChatState, Message, Sender, SessionConfig
    from .session import RemoteSessionClient
    from .state import ConversationState, StateMachine

__all__ = [
    "Attachment",
    "ChatHistoryItem",
    "ChatState",
    "ConfigValidationError",
    "ConversationEngine",
    "ConversationState",
    "ElioChatApp",
    "ElioChatError",
    "EncodingError",
    "HistoryStore",
    "InvariantViolation",
    "Message",
    "PersistenceError",
    "RemoteConnectionError",
    "RemoteError",
    "RemoteModelNotFoundError",
    "RemoteSessionClient",
    "RemoteStreamingError",
    "Sender",
    "SessionConfig",
    "StateMachine",
    "ensure_config_dir",
    "load_config",
]

_LAZY_MODULES: dict[str, str] = {
    "ElioChatApp": "app",
    "ensure_config_dir": "config",
    "load_config": "config",
    "ConversationEngine": "engine",
    "HistoryStore": "history",
    "RemoteSessionClient": "session",
    "ConversationState": "state",
    "StateMachine": "state",
    **dict.fromkeys(
        ("Attachment", "ChatHistoryItem", "ChatState", "Message", "Sender", "SessionConfig"),
        "models",
    ),
    **dict.fromkeys(
        (
            "ConfigValidationError",
            "ElioChatError",
            "EncodingError",
            "InvariantViolation",
            "PersistenceError",
            "RemoteConnectionError",
            "RemoteError",
            "RemoteModelNotFoundError",
            "RemoteStreamingError",
        ),
        "exceptions",
    ),
}


def __getattr__(name: str) -> Any:
    """Lazily import symbols so the UI stack is only loaded when asked for."""
    module_name = _LAZY_MODULES.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(f".{module_name}", __name__), name)
