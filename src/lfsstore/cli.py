"""lfsstore CLI - run the Git LFS content server.

Usage:
    python -m lfsstore serve --properties PATH [--host HOST] [--port PORT] [--log-level LEVEL]
    python -m lfsstore check-config --properties PATH

Exit codes:
    0: Success
    1: Configuration error / Internal error
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

import uvicorn

from lfsstore.api.main import create_app
from lfsstore.config import ConfigError, ServerSettings, load_properties, load_settings
from lfsstore.storage.factory import create_authenticated_store

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")

logger = logging.getLogger(__name__)


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON with deterministic formatting."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _make_error_result(code: str, message: str, keys: list[str] | None = None) -> dict[str, Any]:
    """Create an error result dict for config or internal failures."""
    return {
        "error": {"code": code, "keys": keys or [], "message": message},
        "pass": False,
    }


def _load(properties: str) -> ServerSettings:
    return load_settings(load_properties(properties))


def cmd_check_config(args: argparse.Namespace) -> int:
    """Validate a properties file and print the effective settings."""
    try:
        settings = _load(args.properties)
    except ConfigError as e:
        _output_json(_make_error_result("CONFIG_ERROR", e.message, e.keys))
        return 1

    _output_json({"pass": True, "settings": settings.redacted()})
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Build the content store stack and serve it until interrupted."""
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        settings = _load(args.properties)
    except ConfigError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 1

    store = create_authenticated_store(settings)
    app = create_app(store, repo_path=settings.repo_path)

    host = args.host or settings.host
    port = args.port if args.port is not None else settings.port
    logger.info(
        "Serving %s on %s:%d%s/info/lfs", store.backend_name, host, port, settings.repo_path
    )
    uvicorn.run(app, host=host, port=port, log_level=args.log_level)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="lfsstore",
        description="lfsstore - Git LFS content server backed by blob storage",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the LFS HTTP server",
    )
    serve_parser.add_argument(
        "--properties",
        required=True,
        metavar="PATH",
        help="Path to the server properties file",
    )
    serve_parser.add_argument(
        "--host",
        default=None,
        help="Bind address (overrides gitlfs.host)",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Listen port (overrides gitlfs.port)",
    )
    serve_parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="info",
        help="Log level for the server and uvicorn",
    )

    check_parser = subparsers.add_parser(
        "check-config",
        help="Validate a properties file and print the effective settings",
    )
    check_parser.add_argument(
        "--properties",
        required=True,
        metavar="PATH",
        help="Path to the server properties file",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: Configuration error / Internal error
    """
    try:
        parser = create_parser()
        args = parser.parse_args(argv)

        if args.command is None:
            parser.print_help()
            return 0

        if args.command == "serve":
            return cmd_serve(args)

        if args.command == "check-config":
            return cmd_check_config(args)

        return 0

    except Exception as e:
        # Unexpected errors return exit code 1
        _output_json(_make_error_result("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
