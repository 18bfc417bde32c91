from __future__ import annotations

from typing import Iterable, Optional, Tuple

from formwire.core.rest.multipart import MultipartFormRestRequest


def parse_field_spec(spec: str) -> Tuple[str, str]:
    """Parse `NAME=VALUE`. The value may contain '='."""

    name, sep, value = spec.partition("=")
    if not sep or not name:
        raise ValueError(f"field must look like NAME=VALUE, got {spec!r}")
    return name, value


def parse_file_spec(spec: str) -> Tuple[str, str, Optional[str], Optional[str]]:
    """Parse `FIELD=PATH[;type=CT][;filename=NAME]`.

    Returns (field, path, content_type, file_name).
    """

    field, sep, rest = spec.partition("=")
    if not sep or not field or not rest:
        raise ValueError(f"file must look like FIELD=PATH, got {spec!r}")

    path, *params = rest.split(";")
    content_type: Optional[str] = None
    file_name: Optional[str] = None
    for param in params:
        key, psep, value = param.partition("=")
        key = key.strip().lower()
        if not psep:
            raise ValueError(f"bad file parameter {param!r} in {spec!r}")
        if key == "type":
            content_type = value.strip()
        elif key == "filename":
            file_name = value.strip()
        else:
            raise ValueError(f"unknown file parameter {key!r} in {spec!r}")

    if not path:
        raise ValueError(f"file path missing in {spec!r}")
    return field, path, content_type, file_name


def build_multipart_request(
    url: str,
    *,
    fields: Iterable[str] = (),
    files: Iterable[str] = (),
    verb: str = "POST",
    accept: Optional[str] = "application/json",
    boundary: Optional[str] = None,
) -> MultipartFormRestRequest:
    """Build a request from CLI-style field and file specs."""

    req = MultipartFormRestRequest(url, verb=verb, accept=accept)
    if boundary:
        req.set_boundary(boundary)
    for spec in fields:
        name, value = parse_field_spec(spec)
        req.add_field(name, value)
    for spec in files:
        field, path, content_type, file_name = parse_file_spec(spec)
        req.add_file(field, path, file_name=file_name, content_type=content_type)
    return req
