from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List

from formwire.cli.client_cmds import register_client_commands
from formwire.cli.parts import build_multipart_request
from formwire.core.rest.exceptions import RestError


def _print_json(obj: object) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True, default=str))


class _CountingWriter:
    """Forward writes to a binary sink and count the bytes."""

    def __init__(self, sink) -> None:  # noqa: ANN001
        self._sink = sink
        self.count = 0

    def write(self, data: bytes) -> int:
        self._sink.write(data)
        self.count += len(data)
        return len(data)

    def flush(self) -> None:
        self._sink.flush()


def cmd_encode(args: argparse.Namespace) -> int:
    """Write a multipart body to a file or stdout.

    Security notes:
    - The body contains the raw upload bytes. Choose --out carefully.

    """

    try:
        req = build_multipart_request(
            "http://localhost/",
            fields=args.field,
            files=args.file,
            boundary=args.boundary,
        )
    except (ValueError, RestError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if not args.out:
        try:
            req.process_request_stream(sys.stdout.buffer)
        except (RestError, OSError) as e:
            print(f"\nerror: {e}", file=sys.stderr)
            return 2
        return 0

    try:
        with open(args.out, "wb") as f:
            counter = _CountingWriter(f)
            req.process_request_stream(counter)
    except (RestError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    _print_json(
        {
            "content_type": req.content_type,
            "bytes": counter.count,
            "out": os.path.abspath(args.out),
        }
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    p = argparse.ArgumentParser(prog="formwire", description="multipart/form-data encoder")
    p.add_argument(
        "--log-level",
        default=os.environ.get("FORMWIRE_LOG_LEVEL", "WARNING"),
        help="Logging level (default from FORMWIRE_LOG_LEVEL)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    ep = sub.add_parser("encode", help="Encode fields and files into a multipart body")
    ep.add_argument("--field", action="append", default=[], metavar="NAME=VALUE", help="Text field")
    ep.add_argument(
        "--file",
        action="append",
        default=[],
        metavar="FIELD=PATH[;type=CT][;filename=NAME]",
        help="File upload",
    )
    ep.add_argument("--boundary", default=None, help="Use this boundary instead of a generated one")
    ep.add_argument("--out", default=None, help="Write the body here (default: stdout)")
    ep.set_defaults(func=cmd_encode)

    register_client_commands(sub)
    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=str(args.log_level).upper())
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
