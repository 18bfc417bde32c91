"""File access used by file-backed uploads.

Security notes:
- File contents are untrusted and are never logged.
- Handles are always scoped to a `with` block.
"""

from .file_info import sniff_content_type
from .store import FileStore, LocalFileStore

__all__ = [
    "FileStore",
    "LocalFileStore",
    "sniff_content_type",
]
