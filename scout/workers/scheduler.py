"""Periodic scan scheduler.

Runs the pattern scanner on a single asyncio timer. Cycles never overlap:
the next cycle is scheduled only after the previous one finished.

Features:
- Configurable interval
- Run-now trigger (used at startup and by tests)
- Per-cycle status (last run, last result, last error)
"""

import asyncio
from datetime import datetime, timedelta

from pydantic import BaseModel

from scout.core.exceptions import ScoutError
from scout.core.logging import get_logger
from scout.models.base import utcnow
from scout.services.discovery.sources.scanner import PatternScanner, ScanResult

logger = get_logger(__name__)


class ScheduleStatus(BaseModel):
    """State of the scan schedule.

    Attributes:
        interval_minutes: Minutes between cycles
        runs: Completed cycles
        last_run: Start time of the last cycle
        next_run: Planned start of the next cycle
        last_result: Result of the last cycle
        last_error: Error that aborted the last cycle, if any
    """

    interval_minutes: int
    runs: int = 0
    last_run: datetime | None = None
    next_run: datetime | None = None
    last_result: ScanResult | None = None
    last_error: str | None = None


class ScanScheduler:
    """Drives PatternScanner.scan_once on a fixed interval.

    Example:
        >>> scheduler = ScanScheduler(scanner, interval_minutes=60)
        >>> await scheduler.start()
        >>> ...
        >>> await scheduler.stop()
    """

    def __init__(self, scanner: PatternScanner, interval_minutes: int = 60):
        """Initialize the scheduler.

        Args:
            scanner: Pattern scanner to run
            interval_minutes: Minutes between cycles
        """
        self.scanner = scanner
        self.status = ScheduleStatus(interval_minutes=interval_minutes)
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the timer; the first cycle runs immediately."""
        if self.is_running:
            return
        await self.scanner.start()
        self._task = asyncio.create_task(self._loop())
        logger.info("Scan scheduler started", interval_minutes=self.status.interval_minutes)

    async def stop(self) -> None:
        """Stop the timer and the scanner."""
        await self.scanner.stop()
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        logger.info("Scan scheduler stopped", runs=self.status.runs)

    async def run_now(self) -> ScanResult | None:
        """Run one cycle and record its outcome.

        Returns:
            ScanResult, or None if the cycle failed
        """
        started = utcnow()
        self.status.last_run = started
        try:
            result = await self.scanner.scan_once(now=started)
        except ScoutError as e:
            self.status.last_error = str(e)
            logger.error("Scan cycle failed", **e.to_dict())
            return None
        except Exception as e:
            # The timer outlives any single cycle
            self.status.last_error = f"unexpected error: {e}"
            logger.error("Scan cycle crashed", error=str(e), exc_info=True)
            return None

        self.status.runs += 1
        self.status.last_result = result
        self.status.last_error = None
        return result

    async def _loop(self) -> None:
        interval = timedelta(minutes=self.status.interval_minutes)
        while True:
            await self.run_now()
            self.status.next_run = utcnow() + interval
            await asyncio.sleep(interval.total_seconds())


__all__ = ["ScanScheduler", "ScheduleStatus"]
