#!/usr/bin/env python3
"""
Chat Server

Relays chat datagrams between the members of the server's groups.

Usage:
    nchat-server
    nchat-server --address 0.0.0.0:8080
"""

import argparse
import asyncio
import logging
import os
import sys

from ..schemas import parse_endpoint
from .datagram_server import DatagramServer
from .engine import BroadcastEngine
from .state import ServerState

logger = logging.getLogger(__name__)

DEFAULT_SERVER_ADDRESS = "127.0.0.1:8080"


def configure_logging() -> None:
    """Configure logging to stderr; level from NCHAT_LOG_LEVEL."""
    logging.basicConfig(
        level=os.environ.get("NCHAT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def endpoint_arg(text: str):
    """argparse type for ``host:port`` endpoints."""
    try:
        return parse_endpoint(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nchat-server",
        description="UDP group chat relay server",
    )
    parser.add_argument(
        "-a",
        "--address",
        type=endpoint_arg,
        default=os.environ.get("NCHAT_SERVER_ADDRESS", DEFAULT_SERVER_ADDRESS),
        help="server will listen on ADDRESS (host:port)",
    )
    return parser.parse_args(argv)


async def run_server(host: str, port: int):
    """
    Run the chat server until cancelled.

    Args:
        host: Host address to bind to
        port: Port to listen on
    """
    state = ServerState()
    engine = BroadcastEngine(state)
    server = DatagramServer(engine, host, port)
    await server.start()

    logger.info(f"Known groups: {sorted(state.groups)}")

    try:
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        logger.info("Server shutdown requested")
    finally:
        await server.stop()
        logger.info(f"Server stopped with {len(state.members)} members")


def main(argv=None):
    """Main entry point for the chat server."""
    configure_logging()
    args = parse_args(argv)
    host, port = args.address
    logger.info("Starting chat server...")

    try:
        asyncio.run(run_server(host, port))
    except KeyboardInterrupt:
        logger.info("Shutting down chat server...")
        sys.exit(0)
    except OSError as e:
        logger.error(f"Could not start server on {host}:{port}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
