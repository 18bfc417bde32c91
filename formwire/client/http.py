from __future__ import annotations

import gzip
import http.client
import io
import json
import logging
import os
import ssl
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import SplitResult, urlsplit

from formwire.core.rest.request import KnownOptions, RestRequest, Verbs

log = logging.getLogger("formwire.client")

_BODY_VERBS = frozenset({Verbs.POST, Verbs.PUT, Verbs.PATCH})


class TransportError(RuntimeError):
    """Raised when the connection or the HTTP exchange fails."""


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """HTTP response wrapper.

    Security notes:
    - Treat `body_bytes` as untrusted.

    """

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body_bytes: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""

        wanted = name.lower()
        for k, v in self.headers.items():
            if k.lower() == wanted:
                return v
        return None

    def json(self) -> Any:
        """Decode body as JSON."""

        return json.loads(self.body_bytes.decode("utf-8", errors="strict"))


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back on bad input."""

    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Transport configuration.

    Security notes:
    - api_key is sent on every request; only talk to servers you trust with it.
    - TLS verification is always on.

    """

    timeout_sec: float = 60.0
    chunk_size: int = 64 * 1024
    compress_requests: bool = False
    user_agent: str = "formwire/0.1"
    api_key: Optional[str] = None
    api_key_header: str = "X-API-Key"

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            timeout_sec=float(_env_int("FORMWIRE_TIMEOUT_SEC", 60)),
            chunk_size=max(1, _env_int("FORMWIRE_CHUNK_SIZE", 64 * 1024)),
            compress_requests=bool(_env_int("FORMWIRE_COMPRESS_REQUESTS", 0)),
            user_agent=os.environ.get("FORMWIRE_USER_AGENT") or "formwire/0.1",
            api_key=os.environ.get("FORMWIRE_API_KEY") or None,
            api_key_header=os.environ.get("FORMWIRE_API_KEY_HEADER") or "X-API-Key",
        )


class ChunkedBodyWriter(io.RawIOBase):
    """Binary writable that frames every write as one HTTP/1.1 chunk.

    `finish()` sends the terminating zero-length chunk. After `abort()` the
    body is dead: later writes are dropped and `finish()` sends nothing, so a
    failed body never looks complete to the server.
    """

    def __init__(self, send: Callable[[bytes], Any]) -> None:
        super().__init__()
        self._send = send
        self._finished = False
        self._aborted = False
        self.bytes_sent = 0

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:  # noqa: ANN001
        if self.closed:
            raise ValueError("write to closed ChunkedBodyWriter")
        data = bytes(b)
        if self._aborted or not data:
            return len(data)
        if self._finished:
            raise ValueError("write after final chunk")
        self._send(b"%x\r\n" % len(data) + data + b"\r\n")
        self.bytes_sent += len(data)
        return len(data)

    def finish(self) -> None:
        if self._finished or self._aborted:
            return
        self._finished = True
        self._send(b"0\r\n\r\n")

    def abort(self) -> None:
        self._aborted = True


class FormwireHttpClient:
    """Blocking HTTP client that sends RestRequest objects.

    Bodies are streamed with chunked transfer encoding straight from
    `request.process_request_stream`, so file uploads are never fully
    buffered.

    Errors:
    - TransportError for socket / protocol failures.
    - Errors raised while producing the body (e.g. UploadReadError) propagate
      as-is; the half-sent request is abandoned and the connection closed.
    - HTTP error statuses are returned, not raised.

    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        self.config = config or ClientConfig()

    def send(self, request: RestRequest) -> HttpResponse:
        parts = urlsplit(request.url)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ValueError(f"unsupported URL: {request.url!r}")

        target = parts.path or "/"
        if parts.query:
            target = f"{target}?{parts.query}"

        streamed = request.needs_request_stream
        compressed = streamed and self._wants_compression(request)

        start = time.monotonic()
        status: Optional[int] = None
        conn = self._connect(parts)
        try:
            try:
                conn.putrequest(request.verb, target)
                for name, value in self._headers_for(request, streamed, compressed).items():
                    conn.putheader(name, value)
                conn.endheaders()
                if streamed:
                    self._stream_body(conn, request, compressed)
                resp = conn.getresponse()
                body = resp.read()
            except (OSError, http.client.HTTPException) as e:
                raise TransportError(f"network error: {e}") from e

            status = int(resp.status)
            headers = {k: v for k, v in resp.getheaders()}
            return HttpResponse(status=status, headers=headers, body_bytes=body)
        finally:
            conn.close()
            log.info(
                "http_request",
                extra={
                    "method": request.verb,
                    "target": parts.path or "/",
                    "status_code": status,
                    "duration_ms": int((time.monotonic() - start) * 1000),
                    "streamed": streamed,
                    "compressed": compressed,
                },
            )

    def _connect(self, parts: SplitResult) -> http.client.HTTPConnection:
        timeout = float(self.config.timeout_sec)
        if parts.scheme == "https":
            ctx = ssl.create_default_context()
            return http.client.HTTPSConnection(
                parts.hostname, parts.port, timeout=timeout, context=ctx
            )
        return http.client.HTTPConnection(parts.hostname, parts.port, timeout=timeout)

    def _wants_compression(self, request: RestRequest) -> bool:
        opt = request.options.get(KnownOptions.FORCE_PLATFORM_COMPRESSION)
        if opt is None:
            return bool(self.config.compress_requests)
        return bool(opt)

    def _headers_for(self, request: RestRequest, streamed: bool, compressed: bool) -> Dict[str, str]:
        headers = request.effective_headers()
        if not streamed:
            # No body: a Content-Type would describe nothing.
            headers = {k: v for k, v in headers.items() if k.lower() != "content-type"}

        present = {k.lower() for k in headers}
        if "user-agent" not in present:
            headers["User-Agent"] = self.config.user_agent
        if self.config.api_key and self.config.api_key_header.lower() not in present:
            headers[self.config.api_key_header] = self.config.api_key

        if streamed:
            headers["Transfer-Encoding"] = "chunked"
            if compressed:
                headers["Content-Encoding"] = "gzip"
        elif request.verb.upper() in _BODY_VERBS:
            headers["Content-Length"] = "0"
        return headers

    def _stream_body(
        self, conn: http.client.HTTPConnection, request: RestRequest, compressed: bool
    ) -> None:
        raw = ChunkedBodyWriter(conn.send)
        sink = io.BufferedWriter(raw, buffer_size=self.config.chunk_size)
        try:
            if compressed:
                gz = gzip.GzipFile(fileobj=sink, mode="wb")
                request.process_request_stream(gz)
                gz.close()
            else:
                request.process_request_stream(sink)
            sink.flush()
        except BaseException:
            raw.abort()
            raise
        raw.finish()
