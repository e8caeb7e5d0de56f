"""CLI entrypoint for Elio."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from importlib import metadata
from pathlib import Path

from .app import ElioChatApp
from .config import ensure_config_dir


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="elio-chat",
        description="Elio - terminal chat client for a coding assistant model",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to an alternative config.toml",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Handle CLI flags, ensure the config directory exists and run the TUI."""
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("elio-chat")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"elio-chat {version}")
        return

    if args.config is None:
        ensure_config_dir()
    app = ElioChatApp(config_path=args.config)
    app.run()


if __name__ == "__main__":
    main()
