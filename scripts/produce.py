#!/usr/bin/env python3
"""Producer entrypoint — runs every enabled probe once and exits.

Meant to be scheduled externally (cron, systemd timer, launchd).

Usage::

    # Run all probes once
    python scripts/produce.py

    # Write synthetic WARNING/CRITICAL/INFO records
    python scripts/produce.py --test

    # Custom config file
    python scripts/produce.py --config config/settings.yaml
"""

from __future__ import annotations

import argparse
import sys

import structlog

from src.core.config import load_settings
from src.core.logging import setup_logging
from src.producer.factory import create_producer

logger = structlog.get_logger(__name__)


def run(args: argparse.Namespace) -> int:
    """Run the producer once; non-zero exit only if the store was unusable."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    producer = create_producer(settings)
    logger.info(
        "producer_starting",
        source=settings.producer.source,
        store=str(settings.store.root),
        test_mode=args.test,
    )

    report = producer.run_test() if args.test else producer.run_once()
    return 1 if report.aborted else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Evaluate storage probes and append alerts to the shared event store.",
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
        "--test",
        action="store_true",
        help="Emit synthetic test alerts instead of running probes",
    )
    return parser


def main() -> None:
    args = build_parser().parse_args()
    sys.exit(run(args))


if __name__ == "__main__":
    main()
