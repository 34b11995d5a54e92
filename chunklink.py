#!/usr/bin/env python3
"""Chunk server connection tool.

Runs a simulated game session that keeps a link to a chunk server alive,
reconnecting with exponential backoff, and prints a summary on exit.
"""

import argparse
import logging
import sys

import serial

from client.runner import ExitCode, run_client
from common.config import ChunkConfig, load_config
from common.protocol import DEFAULT_BACKOFF_BASE_MS, DEFAULT_RUN_DURATION_S, LOG_LEVEL
from controller.backoff import BackoffPolicy

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    defaults = load_config()
    parser = argparse.ArgumentParser(
        description="Keep a chunk server connection alive for a game session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                             Connect to localhost:12312 until Ctrl-C
  %(prog)s -H chunks.example.org -t 60 Run a 60s session against a remote server
  %(prog)s -u loop://                  Talk to a local echo (never connects)
  %(prog)s --max-backoff-ms 60000      Cap the reconnect interval at 60s

Send SIGHUP to reload CHUNKLINK_* environment variables; unset ones keep
their current value.
""",
    )
    parser.add_argument(
        "-H", "--host", type=str, default=defaults.hostname,
        help=f"Chunk server host (default: {defaults.hostname})",
    )
    parser.add_argument(
        "-p", "--port", type=int, default=defaults.port,
        help=f"Chunk server port (default: {defaults.port})",
    )
    parser.add_argument(
        "-u", "--url", type=str, default=None,
        help="pyserial URL overriding host/port (e.g. socket://host:port, loop://)",
    )
    parser.add_argument(
        "-r", "--rate", type=int, default=defaults.chunk_loads_per_second,
        help=f"Chunk loads per second (default: {defaults.chunk_loads_per_second})",
    )
    parser.add_argument(
        "-t", "--duration", type=float, default=DEFAULT_RUN_DURATION_S,
        help="Session duration in seconds, 0 = until Ctrl-C (default: 0)",
    )
    parser.add_argument(
        "--base-backoff-ms", type=int, default=DEFAULT_BACKOFF_BASE_MS,
        help=f"First reconnect wait in ms (default: {DEFAULT_BACKOFF_BASE_MS})",
    )
    parser.add_argument(
        "--max-backoff-ms", type=int, default=None,
        help="Upper bound on the reconnect wait in ms (default: unbounded)",
    )
    parser.add_argument(
        "--disabled", action="store_true",
        help="Start with chunk loading disabled",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ChunkConfig(
            enabled=not args.disabled,
            hostname=args.host,
            port=args.port,
            chunk_loads_per_second=args.rate,
        )
        policy = BackoffPolicy(base_ms=args.base_backoff_ms, max_interval_ms=args.max_backoff_ms)
    except ValueError as e:
        parser.error(str(e))

    try:
        return run_client(config, url=args.url, duration_s=args.duration, policy=policy)
    except serial.SerialException as e:
        logger.error(f"Link error: {e}")
        return ExitCode.NEVER_CONNECTED


if __name__ == "__main__":
    sys.exit(main())
