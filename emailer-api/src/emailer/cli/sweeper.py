"""Retention sweeper worker - deletes expired emails at a fixed interval."""

from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from emailer.application.use_cases.retention_sweep import RetentionSweeper
from emailer.infrastructure.container import build_services
from emailer.infrastructure.log_config import setup_logging
from emailer.infrastructure.settings import get_settings


@dataclass
class SweeperStats:
    """Track worker statistics."""
    sweeps_completed: int = 0
    sweeps_failed: int = 0
    records_deleted: int = 0
    blobs_deleted: int = 0
    last_sweep: datetime | None = None


class SweeperWorker:
    """
    Timer-driven retention sweeper.

    Runs one sweep on start, then one per interval. A sweep that still fails
    after its retries is logged and the worker waits for the next tick.
    """

    def __init__(self, sweeper: RetentionSweeper, interval_seconds: int = 300):
        self.sweeper = sweeper
        self.interval = interval_seconds
        self.stats = SweeperStats()
        self._stop = asyncio.Event()

    def stop(self) -> None:
        """Ask the loop to exit after the current sweep."""
        self._stop.set()

    async def tick(self) -> None:
        """Run one sweep, absorbing a final failure."""
        self.stats.last_sweep = datetime.now()
        logger.info(f"Cleanup function executed at: {self.stats.last_sweep}")
        try:
            report = await self.sweeper.sweep()
        except Exception as e:
            self.stats.sweeps_failed += 1
            logger.exception(f"Retention sweep failed after retries: {e}")
            return
        self.stats.sweeps_completed += 1
        self.stats.records_deleted += report.records_deleted
        self.stats.blobs_deleted += report.blobs_deleted
        self._log_stats()

    def _log_stats(self) -> None:
        logger.info(
            f"Sweeper stats: "
            f"completed={self.stats.sweeps_completed}, "
            f"failed={self.stats.sweeps_failed}, "
            f"records_deleted={self.stats.records_deleted}, "
            f"blobs_deleted={self.stats.blobs_deleted}"
        )

    async def run(self) -> int:
        """Run the worker loop until stopped."""
        logger.info(f"Retention sweeper starting, interval {self.interval} seconds")

        while not self._stop.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Sweeper shutdown complete")
        self._log_stats()
        return 0


async def _serve() -> int:
    settings = get_settings()
    try:
        services = build_services(settings, with_provider=False)
    except Exception as e:
        logger.error(f"Failed to initialize infrastructure: {e}")
        return 1

    worker = SweeperWorker(services.sweeper(), interval_seconds=settings.sweep_interval_seconds)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, worker.stop)

    return await worker.run()


def main() -> int:
    """Entry point for the retention sweeper."""
    setup_logging(get_settings().log_level)

    logger.info("=" * 60)
    logger.info("Emailer Retention Sweeper")
    logger.info("=" * 60)

    return asyncio.run(_serve())


if __name__ == "__main__":
    raise SystemExit(main())
