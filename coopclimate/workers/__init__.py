"""Background workers."""

from coopclimate.workers.tick_scheduler import JobResult, ScheduledJob, TickScheduler

__all__ = ["JobResult", "ScheduledJob", "TickScheduler"]
