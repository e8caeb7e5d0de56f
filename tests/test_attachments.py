"""Tests for attachment encoding and the pending buffer."""

from __future__ import annotations

import base64
import io
from pathlib import Path
import tempfile
import unittest

from elio_chat.attachments import (
    DEFAULT_MIME_TYPE,
    AttachmentBuffer,
    attachment_from_path,
    encode_attachment,
    strip_data_uri,
)
from elio_chat.exceptions import EncodingError


class EncodeAttachmentTests(unittest.TestCase):
    """Validate the transport-safe encoding of raw file input."""

    def test_bytes_are_base64_encoded_without_uri_prefix(self) -> None:
        attachment = encode_attachment(b"hello", "text/plain", "note.txt")
        self.assertEqual(attachment.data, base64.b64encode(b"hello").decode("ascii"))
        self.assertFalse(attachment.data.startswith("data:"))
        self.assertEqual(attachment.file_name, "note.txt")

    def test_binary_stream_is_read(self) -> None:
        attachment = encode_attachment(io.BytesIO(b"\x00\x01"), "image/png", "x.png")
        self.assertEqual(base64.b64decode(attachment.data), b"\x00\x01")

    def test_blank_mime_type_uses_default(self) -> None:
        attachment = encode_attachment(b"x", "  ", "blob")
        self.assertEqual(attachment.mime_type, DEFAULT_MIME_TYPE)

    def test_unreadable_path_raises_encoding_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(EncodingError):
                encode_attachment(Path(temp_dir) / "missing.bin", "image/png", "missing.bin")

    def test_data_uri_source_keeps_only_the_payload(self) -> None:
        attachment = encode_attachment(
            "data:image/png;base64,QUJD", "image/png", "pasted.png"
        )
        self.assertEqual(attachment.data, "QUJD")
        self.assertEqual(base64.b64decode(attachment.data), b"ABC")

    def test_malformed_data_uri_raises_encoding_error(self) -> None:
        with self.assertRaises(EncodingError):
            encode_attachment("data:image/png;base64,***", "image/png", "bad.png")

    def test_strip_data_uri(self) -> None:
        self.assertEqual(strip_data_uri("data:image/png;base64,QUJD"), "QUJD")
        self.assertEqual(strip_data_uri("QUJD"), "QUJD")


class AttachmentFromPathTests(unittest.TestCase):
    """Validate file checks before encoding."""

    def test_media_type_is_guessed_from_extension(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            target = Path(temp_dir) / "photo.png"
            target.write_bytes(b"\x89PNG")
            attachment = attachment_from_path(target)
            self.assertEqual(attachment.mime_type, "image/png")
            self.assertEqual(attachment.file_name, "photo.png")

    def test_oversized_file_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            target = Path(temp_dir) / "big.txt"
            target.write_bytes(b"x" * 32)
            with self.assertRaises(EncodingError):
                attachment_from_path(target, max_bytes=16)

    def test_directory_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(EncodingError):
                attachment_from_path(temp_dir)


class AttachmentBufferTests(unittest.TestCase):
    """Validate pending attachment bookkeeping."""

    def test_add_remove_and_clear(self) -> None:
        buffer = AttachmentBuffer()
        first = encode_attachment(b"1", "text/plain", "1.txt")
        second = encode_attachment(b"2", "text/plain", "2.txt")
        buffer.add(first)
        buffer.add(second)

        self.assertEqual(buffer.remove(0), first)
        self.assertIsNone(buffer.remove(7))
        self.assertEqual(buffer.snapshot(), (second,))
        buffer.clear()
        self.assertFalse(buffer)
        self.assertEqual(len(buffer), 0)


if __name__ == "__main__":
    unittest.main()
