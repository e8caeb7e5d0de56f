"""Tests for CLI entrypoint wiring."""

from __future__ import annotations

from contextlib import redirect_stdout
import io
from pathlib import Path
import unittest
from unittest.mock import patch

from elio_chat.__main__ import main


class MainEntrypointTests(unittest.TestCase):
    """Validate top-level main() behavior."""

    def test_main_ensures_config_and_runs_app(self) -> None:
        with patch("elio_chat.__main__.ensure_config_dir") as ensure_mock, patch(
            "elio_chat.__main__.ElioChatApp"
        ) as app_cls_mock:
            main([])
            ensure_mock.assert_called_once()
            app_cls_mock.assert_called_once_with(config_path=None)
            app_cls_mock.return_value.run.assert_called_once()

    def test_config_flag_is_passed_through(self) -> None:
        with patch("elio_chat.__main__.ensure_config_dir") as ensure_mock, patch(
            "elio_chat.__main__.ElioChatApp"
        ) as app_cls_mock:
            main(["--config", "/tmp/elio.toml"])
            ensure_mock.assert_not_called()
            app_cls_mock.assert_called_once_with(config_path=Path("/tmp/elio.toml"))

    def test_version_flag_prints_and_exits(self) -> None:
        buffer = io.StringIO()
        with patch("elio_chat.__main__.ElioChatApp") as app_cls_mock, redirect_stdout(buffer):
            main(["--version"])
        self.assertTrue(buffer.getvalue().startswith("elio-chat "))
        app_cls_mock.assert_not_called()


if __name__ == "__main__":
    unittest.main()
