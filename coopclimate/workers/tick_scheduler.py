"""
Tick scheduler for per-farm sensor timers.

Every farm owns one interval job. All jobs share one loop thread and a
bounded worker pool; a job only carries its own farm's callable and
arguments, so no job can reach another farm's state.

Rules:
- The queue is a heap of (run_at, seq, job_id). Cancelling or rescheduling
  leaves the old entry in place; it is recognised as stale when popped.
- Intervals are fixed-rate: the next slot is computed from the slot that
  just came due, not from when the run finished.
- A job never overlaps itself. A slot that comes due while the previous run
  is still executing is skipped.
- ``cancel`` is synchronous: once it returns, no new run of that job starts.
"""

from __future__ import annotations

import heapq
import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from coopclimate.utils.time import utc_now

logger = logging.getLogger(__name__)


@dataclass
class JobResult:
    job_id: str
    success: bool
    started_at: datetime
    completed_at: datetime
    result: Any = None
    error: str | None = None

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


@dataclass
class ScheduledJob:
    """Handle for one interval job, as returned by ``schedule_interval``."""

    job_id: str
    func: Callable
    interval_seconds: float
    args: tuple = field(default_factory=tuple)
    kwargs: dict[str, Any] = field(default_factory=dict)

    next_run: datetime | None = None
    last_run: datetime | None = None
    run_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    last_error: str | None = None
    cancelled: bool = False
    running: bool = False

    def record(self, outcome: JobResult) -> None:
        """Caller holds the scheduler lock."""
        self.last_run = outcome.started_at
        self.run_count += 1
        if outcome.success:
            self.success_count += 1
            self.last_error = None
        else:
            self.failure_count += 1
            self.last_error = outcome.error
        self.running = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "interval_seconds": self.interval_seconds,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "run_count": self.run_count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "last_error": self.last_error,
            "cancelled": self.cancelled,
        }


class TickScheduler:
    """
    Interval scheduler owned by the service container.

    Args:
        check_interval_seconds: Longest the loop sleeps before re-checking the queue
        max_workers: Size of the worker pool that runs jobs
        max_history: Number of JobResults kept for ``get_history``
    """

    def __init__(
        self,
        check_interval_seconds: float = 0.25,
        max_workers: int = 4,
        max_history: int = 500,
    ) -> None:
        self._check_interval = float(check_interval_seconds)
        self._max_workers = int(max_workers)

        self._jobs: dict[str, ScheduledJob] = {}
        self._queue: list[tuple[float, int, str]] = []
        self._seq = 0
        self._history: deque[JobResult] = deque(maxlen=int(max_history))

        self._lock = threading.RLock()
        self._wake = threading.Condition(self._lock)
        self._running = False
        self._thread: threading.Thread | None = None
        self._pool: ThreadPoolExecutor | None = None

    # ---------------------------------------------------------------- jobs

    def _enqueue(self, job: ScheduledJob) -> None:
        """Caller holds the lock."""
        if job.cancelled or job.next_run is None:
            return
        self._seq += 1
        heapq.heappush(self._queue, (job.next_run.timestamp(), self._seq, job.job_id))
        self._wake.notify()

    def schedule_interval(
        self,
        job_id: str,
        func: Callable,
        interval_seconds: float,
        *,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
        start_immediately: bool = False,
    ) -> ScheduledJob:
        """
        Run ``func(*args, **kwargs)`` every ``interval_seconds``.

        Reusing a job id replaces (and cancels) the previous job.
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        first_run = utc_now()
        if not start_immediately:
            first_run += timedelta(seconds=interval_seconds)
        job = ScheduledJob(
            job_id=job_id,
            func=func,
            interval_seconds=float(interval_seconds),
            args=tuple(args),
            kwargs=dict(kwargs or {}),
            next_run=first_run,
        )
        with self._lock:
            replaced = self._jobs.get(job_id)
            if replaced is not None:
                replaced.cancelled = True
            self._jobs[job_id] = job
            self._enqueue(job)
        logger.debug("Scheduled %s every %ss", job_id, interval_seconds)
        return job

    def cancel(self, job_id: str) -> bool:
        """Forget a job. Returns False when nothing was scheduled under ``job_id``."""
        with self._lock:
            job = self._jobs.pop(job_id, None)
            if job is None:
                return False
            job.cancelled = True
            job.next_run = None
        logger.debug("Cancelled %s", job_id)
        return True

    def get_job(self, job_id: str) -> ScheduledJob | None:
        with self._lock:
            return self._jobs.get(job_id)

    def get_jobs(self) -> list[ScheduledJob]:
        with self._lock:
            return list(self._jobs.values())

    def run_now(self, job_id: str) -> JobResult | None:
        """Run a job once on the calling thread, outside its schedule.

        Returns None if the job is unknown, cancelled or already running.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.cancelled or job.running:
                return None
            job.running = True
        return self._invoke(job)

    # ---------------------------------------------------------------- lifecycle

    def start(self) -> None:
        with self._lock:
            if self._running:
                logger.warning("TickScheduler already running")
                return
            self._running = True
            self._pool = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="TickJob")
            self._thread = threading.Thread(target=self._loop, name="TickScheduler", daemon=True)
        self._thread.start()
        logger.info("TickScheduler started (workers=%s)", self._max_workers)

    def stop(self, wait: bool = True, timeout: float = 5.0) -> None:
        """Stop the loop and the worker pool; registered jobs are kept."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._wake.notify_all()
            thread, pool = self._thread, self._pool
            self._thread, self._pool = None, None
        if wait and thread is not None:
            thread.join(timeout=timeout)
        if pool is not None:
            pool.shutdown(wait=wait)
        logger.info("TickScheduler stopped")

    shutdown = stop

    def is_running(self) -> bool:
        return self._running

    def _loop(self) -> None:
        while True:
            with self._lock:
                if not self._running:
                    break
                timeout = self._check_interval
                if self._queue:
                    until_next = self._queue[0][0] - utc_now().timestamp()
                    timeout = max(0.0, min(timeout, until_next))
                self._wake.wait(timeout)
                if not self._running:
                    break
            try:
                self._process_due_jobs()
            except Exception:
                logger.error("Tick scheduler loop error", exc_info=True)

    # ---------------------------------------------------------------- dispatch

    def _process_due_jobs(self, now: datetime | None = None) -> None:
        """Pop every due queue entry and hand live, idle jobs to the pool."""
        cutoff = (now or utc_now()).timestamp()
        with self._lock:
            while self._queue and self._queue[0][0] <= cutoff:
                run_at, _, job_id = heapq.heappop(self._queue)
                job = self._jobs.get(job_id)
                if job is None or job.cancelled or job.next_run is None:
                    continue
                if abs(job.next_run.timestamp() - run_at) > 1e-6:
                    continue

                due = job.next_run
                self._schedule_next_run(job, due)
                self._enqueue(job)

                if job.running:
                    logger.debug("%s still running, skipping slot %s", job_id, due.isoformat())
                    continue
                if self._pool is None:
                    logger.warning("No worker pool; %s not run", job_id)
                    continue
                job.running = True
                try:
                    self._pool.submit(self._execute_job, job)
                except RuntimeError:
                    job.running = False
                    logger.error("Could not submit %s", job_id, exc_info=True)

    def _execute_job(self, job: ScheduledJob) -> None:
        with self._lock:
            if job.cancelled:
                job.running = False
                return
        self._invoke(job)

    def _invoke(self, job: ScheduledJob) -> JobResult:
        started = utc_now()
        try:
            value = job.func(*job.args, **job.kwargs)
        except Exception as exc:
            outcome = JobResult(job.job_id, False, started, utc_now(), error=str(exc))
            logger.error("Job %s failed: %s", job.job_id, exc, exc_info=True)
        else:
            outcome = JobResult(job.job_id, True, started, utc_now(), result=value)
        with self._lock:
            job.record(outcome)
            self._history.append(outcome)
        return outcome

    def _schedule_next_run(self, job: ScheduledJob, scheduled_for: datetime) -> None:
        """Advance one interval; after a long stall, jump to the first slot still in the future."""
        step = timedelta(seconds=job.interval_seconds)
        next_run = scheduled_for + step
        now = utc_now()
        if next_run <= now:
            missed = int((now - next_run) / step) + 1
            next_run += missed * step
        job.next_run = next_run

    # ---------------------------------------------------------------- introspection

    def get_history(self, job_id: str | None = None, limit: int = 100) -> list[JobResult]:
        with self._lock:
            matching = [r for r in self._history if job_id is None or r.job_id == job_id]
        return matching[-limit:]

    def get_status(self) -> dict[str, Any]:
        with self._lock:
            return {
                "running": self._running,
                "jobs": len(self._jobs),
                "pending_heap_entries": len(self._queue),
                "history": len(self._history),
            }
