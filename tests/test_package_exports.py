"""Tests for top-level package lazy exports."""

from __future__ import annotations

import unittest

import elio_chat


class PackageExportTests(unittest.TestCase):
    """Ensure __getattr__ and exported symbols behave as expected."""

    def test_lazy_exports_resolve_known_symbols(self) -> None:
        self.assertTrue(callable(elio_chat.load_config))
        self.assertTrue(callable(elio_chat.ensure_config_dir))
        for name in elio_chat.__all__:
            self.assertIsNotNone(getattr(elio_chat, name), name)

    def test_exceptions_share_a_base(self) -> None:
        self.assertTrue(issubclass(elio_chat.RemoteConnectionError, elio_chat.RemoteError))
        self.assertTrue(issubclass(elio_chat.PersistenceError, elio_chat.ElioChatError))

    def test_unknown_symbol_raises_attribute_error(self) -> None:
        with self.assertRaises(AttributeError):
            getattr(elio_chat, "THIS_DOES_NOT_EXIST")


if __name__ == "__main__":
    unittest.main()
