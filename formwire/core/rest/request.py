from __future__ import annotations

from typing import BinaryIO, Dict, Optional


class Verbs:
    """Common HTTP verbs."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class ContentTypes:
    """Common content type values."""

    JSON = "application/json"
    OCTET_STREAM = "application/octet-stream"
    TEXT_PLAIN = "text/plain"
    MULTIPART_FORM_WITH_BOUNDARY = "multipart/form-data; boundary="


class KnownOptions:
    """Option names recognized by the transport.

    FORCE_PLATFORM_COMPRESSION
      When True the transport gzip-encodes the streamed body and sends
      `Content-Encoding: gzip`. When absent the client configuration decides.

    """

    FORCE_PLATFORM_COMPRESSION = "force-platform-compression"


class RestRequest:
    """A generic REST request understood by the transport.

    Subclasses that carry a body override `needs_request_stream` and
    `process_request_stream`. The base request has no body.

    Security notes:
    - Header values are sent as given. Do not put untrusted input into them.

    """

    def __init__(
        self,
        url: str,
        verb: str = Verbs.GET,
        accept: Optional[str] = ContentTypes.JSON,
        tag: Optional[str] = None,
    ) -> None:
        self.url = url
        self.verb = verb
        self.accept = accept
        self.tag = tag
        self.headers: Dict[str, str] = {}
        self.options: Dict[str, object] = {}
        self.content_type: Optional[str] = None

    @property
    def needs_request_stream(self) -> bool:
        return False

    def process_request_stream(self, stream: BinaryIO) -> None:
        """Write the request body to `stream`."""

        raise NotImplementedError(f"{type(self).__name__} does not produce a request body")

    def effective_headers(self) -> Dict[str, str]:
        """Headers to put on the wire. Explicit `headers` entries win."""

        out: Dict[str, str] = {}
        if self.accept:
            out["Accept"] = self.accept
        if self.content_type:
            out["Content-Type"] = self.content_type

        lowered = {k.lower(): k for k in out}
        for name, value in self.headers.items():
            existing = lowered.get(name.lower())
            if existing is not None:
                del out[existing]
            lowered[name.lower()] = name
            out[name] = value
        return out

    def __repr__(self) -> str:
        return f"{type(self).__name__}(verb={self.verb!r}, url={self.url!r}, tag={self.tag!r})"
