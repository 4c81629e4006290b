#!/usr/bin/env python3
"""
Chat Client Application

Client application for the chat server. Provides a terminal-based user
interface using the Textual framework, backed by a background network
pipeline.

Usage:
    nchat-client --nickname alice
    nchat-client -a 127.0.0.1:9091 -s 127.0.0.1:8080 -g global -n bob
"""

import argparse
import logging
import os
import sys

from ..protocol import TransportError
from ..schemas import parse_endpoint
from .pipeline import ClientPipeline, open_socket

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_ADDRESS = "127.0.0.1:9090"
DEFAULT_SERVER_ADDRESS = "127.0.0.1:8080"
DEFAULT_GROUP = "global"
DEFAULT_NICKNAME = "unknown"
LOG_FILE = "nchat_client.log"


def configure_logging() -> None:
    """Configure logging to file to avoid interfering with UI."""
    logging.basicConfig(
        level=os.environ.get("NCHAT_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler(LOG_FILE, mode="a")],
    )


def endpoint_arg(text: str):
    """argparse type for ``host:port`` endpoints."""
    try:
        return parse_endpoint(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nchat-client",
        description="Terminal client for the UDP group chat",
    )
    parser.add_argument(
        "-a",
        "--address",
        type=endpoint_arg,
        default=os.environ.get("NCHAT_CLIENT_ADDRESS", DEFAULT_CLIENT_ADDRESS),
        help="client will use ADDRESS for udp send/receive",
    )
    parser.add_argument(
        "-s",
        "--server",
        type=endpoint_arg,
        default=os.environ.get("NCHAT_SERVER_ADDRESS", DEFAULT_SERVER_ADDRESS),
        help="server address",
    )
    parser.add_argument(
        "-g",
        "--group",
        default=os.environ.get("NCHAT_GROUP", DEFAULT_GROUP),
        help="group to join at login",
    )
    parser.add_argument(
        "-n",
        "--nickname",
        default=os.environ.get("NCHAT_NICKNAME", DEFAULT_NICKNAME),
        help="nickname shown to other members",
    )
    return parser.parse_args(argv)


def run_client(args: argparse.Namespace) -> int:
    """
    Log in, run the chat window, and wait for the pipeline to drain.

    Returns:
        int: Number of history lines received during the session
    """
    from .ui import ChatApp

    sock = open_socket(args.address, args.server)
    pipeline = ClientPipeline(sock, args.nickname, args.group)
    app = ChatApp(pipeline, args.group)
    try:
        pipeline.login()
        pipeline.start()
        app.run()
        app.request_shutdown()
    finally:
        # Returns only after the farewell datagram has been sent
        pipeline.close()

    logger.info(f"Received {app.message_count} messages in this session")
    return app.message_count


def main(argv=None):
    """Main entry point for the chat client."""
    args = parse_args(argv)
    configure_logging()
    logger.info("Starting chat client...")

    try:
        count = run_client(args)
    except TransportError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nExiting...")
        sys.exit(0)

    print(f"received {count} messages in this session")


if __name__ == "__main__":
    main()
