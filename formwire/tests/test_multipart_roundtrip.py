from __future__ import annotations

import base64
import io
from pathlib import Path

import pytest

from formwire.core.rest import MultipartFormRestRequest


def _post(echo_client, req: MultipartFormRestRequest) -> list[dict]:
    buf = io.BytesIO()
    req.process_request_stream(buf)
    r = echo_client.post(
        "/echo",
        content=buf.getvalue(),
        headers={"Content-Type": req.content_type},
    )
    assert r.status_code == 200, r.text
    return r.json()["parts"]


def test_roundtrip_fields_only(echo_client) -> None:
    req = MultipartFormRestRequest("http://testserver/echo")
    req.add_field("name", "Alice").add_field("city", "Zürich").add_field("multi", "a\r\nb")

    parts = _post(echo_client, req)
    assert [(p["name"], p["value"]) for p in parts] == [
        ("name", "Alice"),
        ("city", "Zürich"),
        ("multi", "a\r\nb"),
    ]


def test_roundtrip_single_buffer_upload(echo_client) -> None:
    req = MultipartFormRestRequest("http://testserver/echo")
    req.add_bytes("file", "a.png", bytes([0x01, 0x02]), "image/png")

    (part,) = _post(echo_client, req)
    assert part["name"] == "file"
    assert part["filename"] == "a.png"
    assert part["content_type"] == "image/png"
    assert base64.b64decode(part["data_b64"]) == b"\x01\x02"


@pytest.mark.parametrize("n_fields,n_sources", [(0, 1), (1, 1), (3, 2), (2, 0), (0, 3)])
def test_roundtrip_mixed(echo_client, tmp_path: Path, n_fields: int, n_sources: int) -> None:
    req = MultipartFormRestRequest("http://testserver/echo")
    expected_files = []

    for i in range(n_sources):
        payload = bytes((i * 37 + j) % 256 for j in range(1000 + i))
        if i % 2:
            p = tmp_path / f"file{i}.bin"
            p.write_bytes(payload)
            req.add_file("upload", str(p), content_type="application/octet-stream")
        else:
            req.add_bytes("upload", f"mem{i}.dat", payload, "application/x-test")
        expected_files.append(payload)

    for i in range(n_fields):
        req.add_field(f"f{i}", f"value {i}")

    parts = _post(echo_client, req)
    fields = [p for p in parts if p["filename"] is None]
    files = [p for p in parts if p["filename"] is not None]

    assert [(p["name"], p["value"]) for p in fields] == [
        (f"f{i}", f"value {i}") for i in range(n_fields)
    ]
    assert [base64.b64decode(p["data_b64"]) for p in files] == expected_files
    assert all(p["name"] == "upload" for p in files)
    # fields precede files on the wire
    assert parts[: len(fields)] == fields


def test_roundtrip_payload_containing_boundary_like_bytes(echo_client) -> None:
    req = MultipartFormRestRequest("http://testserver/echo")
    req.set_boundary("sep")
    tricky = b"\r\n--se\r\n--s\r\n-sep--"
    req.add_bytes("file", "t.bin", tricky)

    (part,) = _post(echo_client, req)
    assert base64.b64decode(part["data_b64"]) == tricky
