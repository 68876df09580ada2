"""
Periodic job scheduler on asyncio.

Each ScheduledJob gets its own loop task: wait the initial delay, then
launch a run every interval. Runs are launched as separate tasks, so a slow
run never delays the timer. A run that is still going when the next tick
arrives causes that tick to be skipped (unless overlap is allowed).

A job that raises is logged and marked as errored; its loop keeps going.

USAGE:
    scheduler = Scheduler([ScheduledJob("health", collect, interval_seconds=300)])
    scheduler.start()          # inside a running event loop
    await scheduler.run_now("health")
    await scheduler.stop()
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from src.config.settings import settings

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class ScheduledJob:
    """A named coroutine run on a fixed interval, plus its run history."""
    name: str
    func: Callable[[], Awaitable[Any]]
    interval_seconds: float
    initial_delay_seconds: float = 0.0
    allow_overlap: Optional[bool] = None  # None: use ALLOW_OVERLAPPING_RUNS

    status: JobStatus = JobStatus.IDLE
    active_runs: int = 0
    run_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    last_started_at: Optional[datetime] = None
    last_completed_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_result: Any = field(default=None, repr=False)

    @property
    def overlap_allowed(self) -> bool:
        if self.allow_overlap is None:
            return settings.ALLOW_OVERLAPPING_RUNS
        return self.allow_overlap

    def health(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "last_update": self.last_completed_at or self.last_started_at,
            "last_error": self.last_error,
            "runs": self.run_count,
            "errors": self.error_count,
            "skipped": self.skipped_count,
            "interval_seconds": self.interval_seconds,
        }


class Scheduler:
    """
    Runs ScheduledJobs as asyncio tasks.

    Different jobs always run concurrently; the same job runs at most once
    at a time unless its overlap is allowed.
    """

    def __init__(
        self,
        jobs: Optional[List[ScheduledJob]] = None,
        enabled: Optional[bool] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.jobs: Dict[str, ScheduledJob] = {}
        for job in jobs or []:
            self.add_job(job)
        self.enabled = settings.SCHEDULER_ENABLED if enabled is None else enabled
        self.sleep = sleep

        self._running = False
        self._loops: List[asyncio.Task] = []
        self._runs: Set[asyncio.Task] = set()

    def add_job(self, job: ScheduledJob):
        if job.name in self.jobs:
            raise ValueError(f"Duplicate job name: {job.name}")
        self.jobs[job.name] = job

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    def start(self):
        """Start one loop task per job. Must be called from a running event loop."""
        if not self.enabled:
            logger.info("Scheduler disabled (set SCHEDULER_ENABLED=true to enable)")
            return

        if self._running:
            logger.warning("Scheduler already running")
            return

        self._running = True
        for job in self.jobs.values():
            self._loops.append(asyncio.create_task(self._job_loop(job), name=f"schedule:{job.name}"))
            logger.info(
                f"Scheduled {job.name} every {job.interval_seconds:.0f}s "
                f"(first run in {job.initial_delay_seconds:.0f}s)"
            )

    async def stop(self):
        """Cancel job loops and any runs still in flight."""
        if not self._running:
            return

        tasks = self._loops + list(self._runs)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._loops = []
        self._runs.clear()
        self._running = False
        logger.info("Scheduler stopped")

    async def _job_loop(self, job: ScheduledJob):
        if job.initial_delay_seconds > 0:
            await self.sleep(job.initial_delay_seconds)
        while True:
            task = asyncio.create_task(self.run_now(job.name), name=f"run:{job.name}")
            self._runs.add(task)
            task.add_done_callback(self._runs.discard)
            await self.sleep(job.interval_seconds)

    async def run_now(self, name: str) -> bool:
        """
        Run a job immediately and wait for it.

        Returns:
            False if the run was skipped because the job is already running
        """
        job = self.jobs[name]

        if job.active_runs and not job.overlap_allowed:
            job.skipped_count += 1
            logger.warning(f"Skipping {name}: previous run still in progress")
            return False

        job.active_runs += 1
        job.status = JobStatus.RUNNING
        job.last_started_at = datetime.now(timezone.utc)
        logger.info(f"Running job {name}")

        try:
            job.last_result = await job.func()
            job.status = JobStatus.COMPLETED
            job.last_error = None
        except Exception as e:
            job.error_count += 1
            job.status = JobStatus.ERROR
            job.last_error = str(e) or e.__class__.__name__
            logger.exception(f"Job {name} failed: {e}")
        finally:
            job.active_runs -= 1
            job.run_count += 1
            job.last_completed_at = datetime.now(timezone.utc)

        return True

    def status(self) -> Dict[str, Dict[str, Any]]:
        """Per-job health."""
        return {name: job.health() for name, job in self.jobs.items()}
