"""Domain exception hierarchy for the Elio chat client."""

from __future__ import annotations


class ElioChatError(RuntimeError):
    """Base class for all domain-level chat errors."""


class EncodingError(ElioChatError):
    """Raised when an attachment source cannot be read or encoded."""


class RemoteError(ElioChatError):
    """Raised when session creation or streaming against the remote model fails."""


class RemoteConnectionError(RemoteError):
    """Raised when the remote model host cannot be reached."""


class RemoteModelNotFoundError(RemoteError):
    """Raised when the configured model is unavailable on the remote host."""


class RemoteStreamingError(RemoteError):
    """Raised when streaming fails for non-connectivity reasons."""


class PersistenceError(ElioChatError):
    """Raised when stored history cannot be decoded or written."""


class InvariantViolation(ElioChatError):
    """Raised when an engine transition is requested from the wrong state."""


class ConfigValidationError(ElioChatError):
    """Raised when configuration cannot be validated safely."""
