"""
Run the NoteScribe server.

Usage:
    python -m notescribe [--port 9779] [--address http://localhost]
"""

import argparse
import logging
from urllib.parse import urlparse

import uvicorn

from notescribe.config import settings
from notescribe.main import create_app, setup_logging

logger = logging.getLogger("notescribe")


def parse_bind_address(address: str) -> str:
    """Host part of an address such as http://localhost or 0.0.0.0."""
    if "://" not in address:
        address = f"http://{address}"
    host = urlparse(address).hostname
    if not host:
        raise ValueError(f"Invalid address '{address}'")
    return host


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notescribe",
        description="Serve the NoteScribe upload UI and API.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.backend_port,
        help=f"Port to listen on (default: {settings.backend_port})",
    )
    parser.add_argument(
        "--address",
        default=f"http://{settings.backend_host}",
        help=f"Address to bind (default: http://{settings.backend_host})",
    )
    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(settings.log_level)

    try:
        host = parse_bind_address(args.address)
    except ValueError as e:
        raise SystemExit(str(e))

    logger.info("Starting server on %s:%d", host, args.port)
    uvicorn.run(create_app(settings), host=host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
