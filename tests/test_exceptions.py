"""Tests for domain exception hierarchy."""

from __future__ import annotations

import unittest

from elio_chat.exceptions import (
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


class ExceptionHierarchyTests(unittest.TestCase):
    """Validate exception inheritance contract."""

    def test_remote_errors_share_a_base(self) -> None:
        for error_type in (
            RemoteConnectionError,
            RemoteModelNotFoundError,
            RemoteStreamingError,
        ):
            self.assertTrue(issubclass(error_type, RemoteError))

    def test_every_error_is_a_chat_error(self) -> None:
        for error_type in (
            EncodingError,
            RemoteError,
            PersistenceError,
            InvariantViolation,
            ConfigValidationError,
        ):
            self.assertTrue(issubclass(error_type, ElioChatError))
        self.assertTrue(issubclass(ElioChatError, RuntimeError))


if __name__ == "__main__":
    unittest.main()
