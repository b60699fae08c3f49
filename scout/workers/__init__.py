"""Background workers."""

from scout.workers.scheduler import ScanScheduler, ScheduleStatus

__all__ = ["ScanScheduler", "ScheduleStatus"]
