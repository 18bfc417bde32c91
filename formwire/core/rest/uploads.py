from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import ExitStack
from typing import BinaryIO, Optional, Protocol, Union, runtime_checkable

from formwire.core.files.store import FileStore, LocalFileStore
from formwire.core.rest.exceptions import UploadReadError

DEFAULT_CHUNK_SIZE = 64 * 1024

BytesLike = Union[bytes, bytearray, memoryview]


@runtime_checkable
class UploadSource(Protocol):
    """A named, typed provider of binary content for one multipart part."""

    @property
    def field_name(self) -> str:
        ...

    @property
    def file_name(self) -> str:
        ...

    @property
    def content_type(self) -> str:
        ...

    def write_to(self, stream: BinaryIO) -> None:
        """Copy this source's raw bytes into `stream`, then flush it."""
        ...


class StreamForUpload(ABC):
    """Convenience base holding the part metadata of an upload source."""

    def __init__(self, field_name: str, file_name: str, content_type: str) -> None:
        self._field_name = field_name
        self._file_name = file_name
        self._content_type = content_type

    @property
    def field_name(self) -> str:
        return self._field_name

    @property
    def file_name(self) -> str:
        return self._file_name

    @property
    def content_type(self) -> str:
        return self._content_type

    @abstractmethod
    def write_to(self, stream: BinaryIO) -> None:
        ...

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(field_name={self._field_name!r}, "
            f"file_name={self._file_name!r}, content_type={self._content_type!r})"
        )


class MemoryStreamForUpload(StreamForUpload):
    """Upload source backed by an in-memory buffer.

    The buffer is copied at construction, later changes to the caller's
    bytearray do not leak into the body.
    """

    def __init__(self, field_name: str, file_name: str, content_type: str, data: BytesLike) -> None:
        super().__init__(field_name, file_name, content_type)
        self._data = bytes(data)

    @property
    def data(self) -> bytes:
        return self._data

    def write_to(self, stream: BinaryIO) -> None:
        stream.write(self._data)
        stream.flush()


class FileStreamForUpload(StreamForUpload):
    """Upload source backed by a file, read through a FileStore.

    The file is opened only for the duration of `write_to` and copied in
    `chunk_size` blocks, so large files are never held in memory.

    Security notes:
    - Confinement and size caps are the FileStore's job (see LocalFileStore).

    """

    def __init__(
        self,
        field_name: str,
        file_name: str,
        content_type: str,
        path: str,
        file_store: Optional[FileStore] = None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        super().__init__(field_name, file_name, content_type)
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.path = path
        self.file_store: FileStore = file_store if file_store is not None else LocalFileStore()
        self.chunk_size = int(chunk_size)

    def write_to(self, stream: BinaryIO) -> None:
        # Read errors are reported against the path; sink errors pass through untouched.
        with ExitStack() as stack:
            try:
                source = stack.enter_context(self.file_store.open_read(self.path))
            except OSError as e:
                raise UploadReadError(self.path, e.strerror or str(e)) from e

            while True:
                try:
                    chunk = source.read(self.chunk_size)
                except OSError as e:
                    raise UploadReadError(self.path, e.strerror or str(e)) from e
                if not chunk:
                    break
                stream.write(chunk)

            stream.flush()
