from __future__ import annotations

import errno
import os
from contextlib import contextmanager
from typing import BinaryIO, ContextManager, Iterator, Optional, Protocol


class FileStore(Protocol):
    """Path-keyed read access to binary files.

    `open_read` returns a context manager. The yielded handle is only valid
    inside the `with` block and is released on every exit path.
    """

    def open_read(self, path: str) -> ContextManager[BinaryIO]:
        ...


class LocalFileStore:
    """FileStore backed by the local filesystem.

    Security notes:
    - If `root` is set, paths that resolve outside it (after symlinks) are
      refused with PermissionError.
    - If `max_bytes` is set, larger files are refused before any byte is read.

    """

    def __init__(self, root: Optional[str] = None, max_bytes: Optional[int] = None) -> None:
        self.root = os.path.realpath(root) if root else None
        self.max_bytes = int(max_bytes) if max_bytes is not None else None

    def resolve(self, path: str) -> str:
        """Resolve `path` to an absolute path, enforcing `root` confinement."""

        if self.root is None:
            return os.path.abspath(path)

        candidate = path if os.path.isabs(path) else os.path.join(self.root, path)
        real = os.path.realpath(candidate)
        if os.path.commonpath([self.root, real]) != self.root:
            raise PermissionError(errno.EACCES, "path escapes file store root", path)
        return real

    @contextmanager
    def open_read(self, path: str) -> Iterator[BinaryIO]:
        real = self.resolve(path)
        with open(real, "rb") as f:
            if self.max_bytes is not None:
                size = os.fstat(f.fileno()).st_size
                if size > self.max_bytes:
                    raise OSError(
                        errno.EFBIG,
                        f"file too large for upload cap: {size} > {self.max_bytes}",
                        path,
                    )
            yield f
