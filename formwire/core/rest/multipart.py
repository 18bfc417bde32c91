from __future__ import annotations

import logging
import os
import re
import time
from typing import BinaryIO, Dict, List, Optional

from formwire.core.files.file_info import sniff_content_type
from formwire.core.files.store import FileStore, LocalFileStore
from formwire.core.rest.exceptions import InvalidBoundaryError
from formwire.core.rest.request import ContentTypes, KnownOptions, RestRequest, Verbs
from formwire.core.rest.uploads import (
    BytesLike,
    FileStreamForUpload,
    MemoryStreamForUpload,
    UploadSource,
)

log = logging.getLogger("formwire.rest")

_BOUNDARY_PREFIX = "---------------------------"
_BOUNDARY_MAX_LEN = 70
# RFC 2046 bcharsnospace, plus space (not allowed as the last character)
_BOUNDARY_RE = re.compile(r"[0-9A-Za-z'()+_,\-./:=? ]*[0-9A-Za-z'()+_,\-./:=?]")

_FIELD_TEMPLATE = 'Content-Disposition: form-data; name="{0}"\r\n\r\n{1}'
_FILE_HEADER_TEMPLATE = (
    'Content-Disposition: form-data; name="{0}"; filename="{1}"\r\nContent-Type: {2}\r\n\r\n'
)


class MultipartFormRestRequest(RestRequest):
    """A REST request whose body is multipart/form-data.

    Body layout (written by `process_request_stream`):

      for each field:   \\r\\n--B\\r\\n + field header + value
      for each upload:  \\r\\n--B\\r\\n + file header + raw bytes
      trailer:          \\r\\n--B--\\r\\n

    Fields are always written before uploads. Upload bytes are copied straight
    into the sink, never through an intermediate string.

    Notes:
    - `needs_request_stream` is False when there are no uploads, even if fields
      are set. A fields-only form is not sent through this request.
    - Field names, values and file names are written verbatim (no escaping).

    """

    def __init__(
        self,
        url: str,
        verb: str = Verbs.POST,
        accept: Optional[str] = ContentTypes.JSON,
        tag: Optional[str] = None,
    ) -> None:
        super().__init__(url, verb=verb, accept=accept, tag=tag)
        self._boundary = ""
        self.set_boundary(self.generate_boundary())
        self.streams_to_send: List[UploadSource] = []
        self.fields_to_send: Dict[str, str] = {}

        # Uploads are mostly media; compressing them buys nothing.
        self.options[KnownOptions.FORCE_PLATFORM_COMPRESSION] = False

    # ------------------------------------------------------------------
    # Boundary / content type
    # ------------------------------------------------------------------

    def generate_boundary(self) -> str:
        return _BOUNDARY_PREFIX + format(time.time_ns(), "x")

    def generate_content_type(self, boundary: str) -> str:
        return ContentTypes.MULTIPART_FORM_WITH_BOUNDARY + boundary

    def set_boundary(self, boundary: str) -> None:
        """Set the boundary and regenerate the Content-Type that echoes it."""

        if not isinstance(boundary, str):
            raise InvalidBoundaryError("boundary must be a string")
        if len(boundary) > _BOUNDARY_MAX_LEN:
            raise InvalidBoundaryError(
                f"boundary longer than {_BOUNDARY_MAX_LEN} characters: {len(boundary)}"
            )
        if not _BOUNDARY_RE.fullmatch(boundary):
            raise InvalidBoundaryError(f"invalid multipart boundary: {boundary!r}")

        self._boundary = boundary
        self.content_type = self.generate_content_type(boundary)

    @property
    def boundary(self) -> str:
        return self._boundary

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def add_field(self, name: str, value: object) -> "MultipartFormRestRequest":
        self.fields_to_send[name] = str(value)
        return self

    def add_stream(self, source: UploadSource) -> "MultipartFormRestRequest":
        self.streams_to_send.append(source)
        return self

    def add_bytes(
        self,
        field_name: str,
        file_name: str,
        data: BytesLike,
        content_type: str = ContentTypes.OCTET_STREAM,
    ) -> "MultipartFormRestRequest":
        return self.add_stream(MemoryStreamForUpload(field_name, file_name, content_type, data))

    def add_file(
        self,
        field_name: str,
        path: str,
        *,
        file_name: Optional[str] = None,
        content_type: Optional[str] = None,
        file_store: Optional[FileStore] = None,
    ) -> "MultipartFormRestRequest":
        """Add a file-backed upload.

        file_name defaults to the basename of `path`; content_type is sniffed
        from the file when not given. Sniffing and the upload both read through
        the same store.
        """

        store = file_store if file_store is not None else LocalFileStore()
        return self.add_stream(
            FileStreamForUpload(
                field_name,
                file_name or os.path.basename(path),
                content_type or sniff_content_type(path, file_store=store),
                path,
                store,
            )
        )

    # ------------------------------------------------------------------
    # Body
    # ------------------------------------------------------------------

    @property
    def needs_request_stream(self) -> bool:
        return bool(self.streams_to_send)

    def process_request_stream(self, stream: BinaryIO) -> None:
        self.upload_fields(stream)
        self.upload_streams(stream)
        stream.write(f"\r\n--{self._boundary}--\r\n".encode("utf-8"))
        stream.flush()

        log.debug(
            "multipart_body_written",
            extra={
                "boundary": self._boundary,
                "field_count": len(self.fields_to_send),
                "stream_count": len(self.streams_to_send),
            },
        )

    def upload_fields(self, stream: BinaryIO) -> None:
        if not self.fields_to_send:
            return

        delimiter = self._delimiter()
        for key, value in self.fields_to_send.items():
            stream.write(delimiter)
            stream.write(_FIELD_TEMPLATE.format(key, value).encode("utf-8"))

    def upload_streams(self, stream: BinaryIO) -> None:
        if not self.streams_to_send:
            return

        delimiter = self._delimiter()
        for source in self.streams_to_send:
            stream.write(delimiter)
            header = _FILE_HEADER_TEMPLATE.format(
                source.field_name, source.file_name, source.content_type
            )
            stream.write(header.encode("utf-8"))
            source.write_to(stream)

    def _delimiter(self) -> bytes:
        return f"\r\n--{self._boundary}\r\n".encode("utf-8")
