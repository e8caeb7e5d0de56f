"""Attachment encoding and the pending-attachment buffer.

Raw file input arrives from the presentation layer as bytes, a binary stream,
or a filesystem path. The codec turns it into an :class:`Attachment` whose
``data`` is the bare base64 payload, with any ``data:`` URI framing removed.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterator
import mimetypes
import os
from pathlib import Path
from typing import BinaryIO, Union

from .exceptions import EncodingError
from .models import Attachment

DEFAULT_MIME_TYPE = "application/octet-stream"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB

AttachmentSource = Union[bytes, bytearray, memoryview, BinaryIO, str, os.PathLike]


def strip_data_uri(value: str) -> str:
    """Return the payload part of a ``data:<mime>;base64,<payload>`` string."""
    if value.startswith("data:") and "," in value:
        return value.split(",", 1)[1]
    return value


def _read_source(source: AttachmentSource) -> bytes:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    if isinstance(source, str) and source.startswith("data:"):
        return base64.b64decode(strip_data_uri(source), validate=True)
    if isinstance(source, (str, os.PathLike)):
        return Path(source).expanduser().read_bytes()
    read = getattr(source, "read", None)
    if read is None:
        raise TypeError(f"Unsupported attachment source {type(source).__name__}.")
    payload = read()
    if not isinstance(payload, (bytes, bytearray)):
        raise TypeError("Attachment stream must yield bytes.")
    return bytes(payload)


def encode_attachment(
    source: AttachmentSource, mime_type: str, file_name: str
) -> Attachment:
    """Read ``source`` and encode it as a transport-safe attachment.

    Raises:
        EncodingError: When the source cannot be read or encoded.
    """
    try:
        raw = _read_source(source)
        encoded = base64.b64encode(raw).decode("ascii")
    except (OSError, TypeError, ValueError, binascii.Error) as exc:
        raise EncodingError(f"Unable to read attachment {file_name!r}: {exc}") from exc

    return Attachment(
        mime_type=mime_type.strip() or DEFAULT_MIME_TYPE,
        data=encoded,
        file_name=file_name,
    )


def guess_mime_type(path: str | os.PathLike[str]) -> str:
    guessed, _ = mimetypes.guess_type(str(path))
    return guessed or DEFAULT_MIME_TYPE


def attachment_from_path(
    path: str | os.PathLike[str], *, max_bytes: int = DEFAULT_MAX_BYTES
) -> Attachment:
    """Validate a file on disk and encode it with a guessed media type."""
    resolved = Path(path).expanduser()
    try:
        resolved = resolved.resolve()
        if not resolved.exists():
            raise EncodingError(f"File not found: {path}")
        if not resolved.is_file():
            raise EncodingError(f"Not a file: {path}")
        size = resolved.stat().st_size
    except OSError as exc:
        raise EncodingError(f"Unable to inspect {path}: {exc}") from exc

    if size > max_bytes:
        max_mb = max_bytes / (1024 * 1024)
        raise EncodingError(f"File too large (max {max_mb:.1f}MB): {resolved.name}")

    return encode_attachment(resolved, guess_mime_type(resolved), resolved.name)


class AttachmentBuffer:
    """Pending attachments awaiting the next send."""

    def __init__(self) -> None:
        self._items: list[Attachment] = []

    def add(self, attachment: Attachment) -> None:
        """Queue an attachment."""
        self._items.append(attachment)

    def remove(self, index: int) -> Attachment | None:
        """Drop the attachment at ``index``; out-of-range indexes are ignored."""
        if 0 <= index < len(self._items):
            return self._items.pop(index)
        return None

    def clear(self) -> None:
        """Discard all pending attachments."""
        self._items.clear()

    def snapshot(self) -> tuple[Attachment, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[Attachment]:
        return iter(tuple(self._items))
