"""One-shot retention sweep."""

from __future__ import annotations

import argparse
import asyncio
from datetime import timedelta

from loguru import logger

from emailer.infrastructure.container import build_services
from emailer.infrastructure.log_config import setup_logging
from emailer.infrastructure.settings import get_settings


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete emails older than the retention window")
    parser.add_argument("--hours", type=int, default=None, help="Override retention window in hours")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.log_level)

    sweeper = build_services(settings, with_provider=False).sweeper()
    if args.hours is not None:
        sweeper.retention = timedelta(hours=args.hours)

    try:
        report = asyncio.run(sweeper.sweep())
    except Exception as e:
        logger.error(f"Retention sweep failed: {e}")
        return 1

    print(
        f"Deleted {report.records_deleted} records and {report.blobs_deleted} blobs "
        f"older than {report.cutoff.isoformat()} ({report.attempts} attempt(s))"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
