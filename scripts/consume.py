#!/usr/bin/env python3
"""Consumer entrypoint — polls the shared store and shows desktop alerts.

Usage::

    # Run until SIGINT/SIGTERM
    python scripts/consume.py

    # Single poll cycle (for cron-driven clients)
    python scripts/consume.py --once

    # Custom config file, faster polling
    python scripts/consume.py --config config/settings.yaml --interval 10
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from src.consumer.factory import create_poller
from src.core.config import load_settings
from src.core.logging import setup_logging

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Poll until interrupted, then flush delivery state."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    if args.interval is not None:
        settings.consumer.poll_interval_secs = args.interval

    poller = create_poller(settings)
    logger.info(
        "consumer_starting",
        store=str(settings.store.root),
        processed_path=str(settings.consumer.processed_path),
        interval_secs=settings.consumer.poll_interval_secs,
        once=args.once,
    )

    if args.once:
        await poller.run(once=True)
        await poller.notifier.close()
        return 0

    # ── Wait for shutdown signal ─────────────────────────────────
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, poller.request_stop)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await poller.run()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    await poller.notifier.close()
    logger.info("consumer_stopped", poll_errors=poller.error_count)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Poll the shared event store and present new alerts.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Poll interval override in seconds",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll cycle and exit",
    )
    return parser


def main() -> None:
    args = build_parser().parse_args()
    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
