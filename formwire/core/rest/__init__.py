"""REST request objects and the multipart/form-data body writer.

Security notes:
- Upload bytes and field values are never logged.
- File handles are held only while a part is being written.
"""

from .exceptions import InvalidBoundaryError, RestError, UploadReadError
from .request import ContentTypes, KnownOptions, RestRequest, Verbs
from .uploads import (
    FileStreamForUpload,
    MemoryStreamForUpload,
    StreamForUpload,
    UploadSource,
)
from .multipart import MultipartFormRestRequest

__all__ = [
    "RestError",
    "InvalidBoundaryError",
    "UploadReadError",
    "Verbs",
    "ContentTypes",
    "KnownOptions",
    "RestRequest",
    "UploadSource",
    "StreamForUpload",
    "MemoryStreamForUpload",
    "FileStreamForUpload",
    "MultipartFormRestRequest",
]
