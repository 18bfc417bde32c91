from __future__ import annotations

import base64
import gzip
import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, List, Optional

import pytest
from fastapi import FastAPI, Request
from pydantic import BaseModel, Field
from starlette.datastructures import UploadFile


# ------------------------------
# In-process multipart parser (FastAPI / python-multipart)
# ------------------------------


class PartOut(BaseModel):
    """One parsed form part."""

    name: str
    value: Optional[str] = None
    filename: Optional[str] = None
    content_type: Optional[str] = None
    data_b64: Optional[str] = None


class FormOut(BaseModel):
    """All parts, in wire order."""

    parts: List[PartOut] = Field(default_factory=list)


def create_echo_app() -> FastAPI:
    app = FastAPI(title="formwire echo")

    @app.post("/echo", response_model=FormOut)
    async def echo(request: Request) -> FormOut:
        form = await request.form()
        parts: List[PartOut] = []
        for name, item in form.multi_items():
            if isinstance(item, UploadFile):
                data = await item.read()
                parts.append(
                    PartOut(
                        name=name,
                        filename=item.filename,
                        content_type=item.content_type,
                        data_b64=base64.b64encode(data).decode("ascii"),
                    )
                )
            else:
                parts.append(PartOut(name=name, value=item))
        return FormOut(parts=parts)

    return app


@pytest.fixture
def echo_client():
    from fastapi.testclient import TestClient

    with TestClient(create_echo_app()) as client:
        yield client


# ------------------------------
# Raw HTTP capture server (chunked bodies)
# ------------------------------


def _read_chunked(rfile) -> tuple[bytes, bool]:
    """Read a chunked body. Returns (body, complete)."""

    out = bytearray()
    while True:
        line = rfile.readline()
        if not line:
            return bytes(out), False
        size = int(line.split(b";")[0].strip() or b"0", 16)
        if size == 0:
            while True:
                trailer = rfile.readline()
                if trailer in (b"\r\n", b"\n", b""):
                    break
            return bytes(out), True
        chunk = rfile.read(size)
        out += chunk
        if len(chunk) < size:
            return bytes(out), False
        rfile.readline()


class _CaptureHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        return

    def _handle(self) -> None:
        headers = {k.lower(): v for k, v in self.headers.items()}
        complete = True
        if headers.get("transfer-encoding", "").lower() == "chunked":
            body, complete = _read_chunked(self.rfile)
        else:
            length = int(headers.get("content-length") or 0)
            body = self.rfile.read(length) if length else b""

        if complete and headers.get("content-encoding") == "gzip":
            body = gzip.decompress(body)

        entry: Dict[str, Any] = {
            "method": self.command,
            "path": self.path,
            "headers": headers,
            "body": body,
            "complete": complete,
        }
        self.server.captured.append(entry)  # type: ignore[attr-defined]
        self.server.received.set()  # type: ignore[attr-defined]

        if not complete:
            self.close_connection = True
            return

        status = 200
        if self.path.startswith("/status/"):
            status = int(self.path.rsplit("/", 1)[1])
        payload = json.dumps({"received_bytes": len(body), "path": self.path}).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(payload)

    do_GET = _handle
    do_POST = _handle
    do_PUT = _handle


@pytest.fixture
def capture_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _CaptureHandler)
    server.daemon_threads = True
    server.captured = []  # type: ignore[attr-defined]
    server.received = threading.Event()  # type: ignore[attr-defined]
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


@pytest.fixture
def capture_url(capture_server):
    host, port = capture_server.server_address[:2]

    def _url(path: str = "/upload") -> str:
        return f"http://{host}:{port}{path}"

    return _url
