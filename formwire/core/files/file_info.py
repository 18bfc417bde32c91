from __future__ import annotations

import mimetypes
import os
from typing import Optional

from .store import FileStore, LocalFileStore

_DEFAULT_CONTENT_TYPE = "application/octet-stream"


def sniff_content_type(
    path: str, *, file_store: Optional[FileStore] = None, prefix_bytes: int = 512
) -> str:
    """Pick a Content-Type for an upload file.

    Order:
    1) magic numbers in a bounded prefix
    2) extension via mimetypes
    3) application/octet-stream

    Security notes:
    - The prefix is read through `file_store` (a plain LocalFileStore when
      omitted), so root confinement and size caps apply before any byte is read.
    - Reads at most prefix_bytes from the file.
    - An unreadable or refused file is not an error here; the upload itself
      will fail later with a path-specific error.

    """

    store = file_store if file_store is not None else LocalFileStore()
    head = b""
    try:
        with store.open_read(path) as f:
            head = f.read(prefix_bytes)
    except OSError:
        head = b""

    magic = _magic_mime(head)
    if magic is not None:
        return magic

    guessed, _enc = mimetypes.guess_type(os.path.basename(path))
    return guessed or _DEFAULT_CONTENT_TYPE


def _magic_mime(prefix: bytes) -> Optional[str]:
    """Detect mime from common magic headers."""

    if prefix.startswith(b"%PDF-"):
        return "application/pdf"
    if prefix.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if prefix.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if prefix.startswith(b"GIF87a") or prefix.startswith(b"GIF89a"):
        return "image/gif"
    if prefix.startswith(b"RIFF") and prefix[8:12] == b"WEBP":
        return "image/webp"
    if prefix.startswith(b"RIFF") and prefix[8:12] == b"WAVE":
        return "audio/wav"
    if prefix.startswith(b"ID3"):
        return "audio/mpeg"
    if prefix[4:8] == b"ftyp":
        return "video/mp4"
    if prefix.startswith(b"PK\x03\x04"):
        return "application/zip"
    if prefix.startswith(b"\x1f\x8b"):
        return "application/gzip"
    return None
