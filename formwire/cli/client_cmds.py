from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from formwire.cli.parts import build_multipart_request
from formwire.client.http import ClientConfig, FormwireHttpClient, TransportError
from formwire.core.rest.exceptions import RestError
from formwire.core.rest.request import KnownOptions


def _print_json(obj: object) -> None:
    """Print JSON to stdout."""
    print(json.dumps(obj, indent=2, sort_keys=True, default=str))


def _parse_headers(values: Optional[List[str]]) -> dict:
    out = {}
    for item in values or []:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"header must look like NAME:VALUE, got {item!r}")
        out[name.strip()] = value.strip()
    return out


def cmd_post(args: argparse.Namespace) -> int:
    """Send a multipart request and print the response body.

    Security notes:
    - Treat server response as untrusted.

    """

    try:
        req = build_multipart_request(
            args.url,
            fields=args.field,
            files=args.file,
            verb=args.verb,
            accept=args.accept,
            boundary=None,
        )
        req.headers.update(_parse_headers(args.header))
    except (ValueError, RestError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.compress:
        req.options[KnownOptions.FORCE_PLATFORM_COMPRESSION] = True

    env_cfg = ClientConfig.from_env()
    cfg = ClientConfig(
        timeout_sec=args.timeout if args.timeout is not None else env_cfg.timeout_sec,
        chunk_size=env_cfg.chunk_size,
        compress_requests=env_cfg.compress_requests,
        user_agent=env_cfg.user_agent,
        api_key=args.api_key or env_cfg.api_key,
        api_key_header=env_cfg.api_key_header,
    )
    client = FormwireHttpClient(cfg)

    try:
        r = client.send(req)
    except (RestError, TransportError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    text = r.body_bytes.decode("utf-8", errors="replace")
    if r.status >= 400:
        print(text, file=sys.stderr)
        return 2

    if args.json:
        _print_json({"status": r.status, "headers": dict(r.headers), "body": text})
    else:
        print(text)
    return 0


def register_client_commands(sub: argparse._SubParsersAction) -> None:
    """Register the `post` command."""

    p = sub.add_parser("post", help="Send a multipart/form-data request to a server")
    p.add_argument("url", help="Target URL")
    p.add_argument("--field", action="append", default=[], metavar="NAME=VALUE", help="Text field")
    p.add_argument(
        "--file",
        action="append",
        default=[],
        metavar="FIELD=PATH[;type=CT][;filename=NAME]",
        help="File upload",
    )
    p.add_argument("--header", action="append", default=[], metavar="NAME:VALUE", help="Extra header")
    p.add_argument("--verb", default="POST", help="HTTP verb")
    p.add_argument("--accept", default="application/json", help="Accept header")
    p.add_argument("--api-key", default=None, help="API key (header from FORMWIRE_API_KEY_HEADER)")
    p.add_argument("--timeout", type=float, default=None, help="Socket timeout in seconds")
    p.add_argument("--compress", action="store_true", help="gzip the request body")
    p.add_argument("--json", action="store_true", help="Print status/headers/body as JSON")
    p.set_defaults(func=cmd_post)
