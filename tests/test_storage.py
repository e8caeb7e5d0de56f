"""Tests for keyed on-disk record storage."""

from __future__ import annotations

import os
from pathlib import Path
import stat
import tempfile
import unittest

from elio_chat.exceptions import PersistenceError
from elio_chat.storage import JsonFileStorage


class JsonFileStorageTests(unittest.TestCase):
    """Validate atomic writes, reads and key checks."""

    def test_missing_key_reads_as_none(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JsonFileStorage(temp_dir)
            self.assertIsNone(storage.get_item("absent"))

    def test_set_then_get_round_trips_text(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JsonFileStorage(Path(temp_dir) / "nested")
            storage.set_item("history", "[]")
            storage.set_item("history", '[{"id": "1"}]')
            self.assertEqual(storage.get_item("history"), '[{"id": "1"}]')

    def test_write_leaves_no_temporary_files(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JsonFileStorage(temp_dir)
            storage.set_item("history", "[]")
            self.assertEqual(os.listdir(temp_dir), ["history.json"])

    @unittest.skipUnless(os.name == "posix", "POSIX permissions only")
    def test_records_are_private(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JsonFileStorage(temp_dir)
            storage.set_item("history", "[]")
            mode = stat.S_IMODE(storage.path_for("history").stat().st_mode)
            self.assertEqual(mode, 0o600)

    def test_invalid_key_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JsonFileStorage(temp_dir)
            with self.assertRaises(PersistenceError):
                storage.set_item("../escape", "[]")

    def test_remove_item_is_idempotent(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = JsonFileStorage(temp_dir)
            storage.set_item("history", "[]")
            storage.remove_item("history")
            storage.remove_item("history")
            self.assertIsNone(storage.get_item("history"))


if __name__ == "__main__":
    unittest.main()
