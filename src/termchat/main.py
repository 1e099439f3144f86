#!/usr/bin/env python3
"""
Terminal Chat Client

Command line entry point: builds the session configuration from flags
and the environment, installs signal handlers and runs the client.

Usage:
    termchat --tui
    termchat --domain chat.example.org --port 9000 --quiet
"""

import argparse
import logging
import os
import signal
import sys
from typing import List, Optional

from .chat_client import ChatClient
from .session import DEFAULT_HOST, DEFAULT_PORT, ClientConfig

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = "termchat.log"


def configure_logging(log_file: str, level: str) -> None:
    """
    Send log records to a file so they never interfere with the terminal.

    Args:
        log_file: Path of the log file (appended to)
        level: Logging level name
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler(log_file, mode="a")],
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line flags, with environment fallbacks."""
    parser = argparse.ArgumentParser(description="Terminal chat client")
    parser.add_argument(
        "--domain",
        default=os.environ.get("TERMCHAT_HOST", DEFAULT_HOST),
        help="Server host name or address",
    )
    parser.add_argument(
        "--port",
        type=int,
        # argparse applies type=int to a string default, so a bad
        # TERMCHAT_PORT is reported as a usage error
        default=os.environ.get("TERMCHAT_PORT", str(DEFAULT_PORT)),
        help="Server TCP port",
    )
    parser.add_argument(
        "--username",
        default=os.environ.get("USER", ""),
        help="Name to log in with (default: $USER)",
    )
    parser.add_argument(
        "--tui", action="store_true", help="Use the full-screen interface"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not highlight or ring the bell on mentions",
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=None,
        help="Seconds to wait for the connection (default: no timeout)",
    )
    parser.add_argument(
        "--log-file", default=DEFAULT_LOG_FILE, help="Log file path"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log file verbosity",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ClientConfig:
    """
    Build the session configuration from parsed flags.

    Raises:
        ValueError: If the username or port is invalid
    """
    return ClientConfig(
        local_username=args.username,
        server_address=args.domain,
        server_port=args.port,
        use_tui=args.tui,
        quiet_mode=args.quiet,
        connect_timeout=args.connect_timeout,
    )


def install_signal_handlers(client: ChatClient) -> None:
    """Map SIGINT and SIGTERM to a shutdown request."""

    def _handle_signal(signum, frame):
        logger.info("Received signal %s", signum)
        client.request_shutdown()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the chat client."""
    args = parse_args(argv)
    configure_logging(args.log_file, args.log_level)
    logger.info("Starting chat client...")

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    client = ChatClient(config)
    install_signal_handlers(client)

    try:
        client.run()
    except ConnectionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nExiting...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
