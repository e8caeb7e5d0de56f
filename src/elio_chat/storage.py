"""Keyed record storage on disk with atomic, private writes."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import re
import tempfile

from .exceptions import PersistenceError

LOGGER = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStorage:
    """Store one text record per key as ``<directory>/<key>.json``.

    Writes go to a temporary file in the same directory and are swapped in
    with :func:`os.replace`, so readers never observe a partial record.
    """

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory).expanduser()

    def _enforce_permissions(self, path: Path, mode: int = 0o600) -> None:
        """Best-effort POSIX permissions on a file or directory."""
        if os.name != "posix":
            return
        try:
            path.chmod(mode)
        except OSError as exc:
            LOGGER.warning("Unable to enforce %o permissions for %s: %s", mode, path, exc)

    def _ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._enforce_permissions(self.directory, 0o700)

    def path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise PersistenceError(f"Invalid storage key {key!r}.")
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        """Return the stored text for ``key`` or ``None`` when absent."""
        target = self.path_for(key)
        try:
            return target.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Unable to read {target}: {exc}") from exc

    def set_item(self, key: str, value: str) -> None:
        """Atomically replace the record stored under ``key``."""
        target = self.path_for(key)
        try:
            self._ensure_directory()
            fd, temp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{key}.", suffix=".tmp"
            )
            temp_path = Path(temp_name)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                    handle.flush()
                    os.fsync(handle.fileno())
                self._enforce_permissions(temp_path)
                os.replace(temp_path, target)
            except BaseException:
                temp_path.unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"Unable to write {target}: {exc}") from exc
        LOGGER.debug(
            "storage.write",
            extra={"event": "storage.write", "key": key, "bytes": len(value)},
        )

    def remove_item(self, key: str) -> None:
        target = self.path_for(key)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Unable to remove {target}: {exc}") from exc
