from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from .config import GatewaySettings
from .errors import ConfigurationError
from .logging import configure_logging
from .registry.operations import Operation


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the gateway HTTP server.

    Binds to 127.0.0.1 by default; put a TLS-terminating proxy in front
    when exposing it.
    """

    import uvicorn

    from .api.server import create_app

    app = create_app(configure_logs=True)
    uvicorn.run(app, host=args.host, port=int(args.port), log_level=args.log_level)
    return 0


def cmd_lookup(args: argparse.Namespace) -> int:
    """Run one lookup and print its envelope as JSON."""

    from .registry.service import LookupService

    settings = GatewaySettings.from_environment()
    configure_logging(log_format=settings.log_format, verbose=args.verbose or settings.verbose)

    payload = {"endpoint": args.endpoint}
    if args.orgnr:
        payload["organisationsnummer"] = args.orgnr
    if args.status:
        payload["arbetsstalleStatus"] = args.status

    status, envelope = LookupService(settings=settings).execute(payload)
    print(json.dumps(envelope.to_payload(), ensure_ascii=False, indent=2))
    return 0 if status == 200 else 1


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="scb-gateway", description="SCB registry mTLS gateway")
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP gateway")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", default=8000, type=int)
    serve.add_argument("--log-level", default="info")
    serve.set_defaults(func=cmd_serve)

    lookup = sub.add_parser("lookup", help="Run a single lookup and print the result envelope")
    lookup.add_argument(
        "--endpoint",
        choices=[op.value for op in Operation],
        default=Operation.FETCH.value,
    )
    lookup.add_argument("--orgnr", help="Organisation number (10 digits)")
    lookup.add_argument("--status", help="Workplace status filter (default: 1)")
    lookup.add_argument("-v", "--verbose", action="store_true")
    lookup.set_defaults(func=cmd_lookup)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return int(args.func(args))
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
