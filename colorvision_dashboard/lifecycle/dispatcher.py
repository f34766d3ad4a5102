"""
Job dispatch.

Callers submit a ``Job`` and get a ``JobHandle`` back immediately; the
dispatcher runs the job later and the job reports completion only through
a store write.

- ``AsyncioDispatcher`` schedules each job as a timer-delayed asyncio task
  and runs the periodic stale-job sweep.
- ``InlineDispatcher`` runs the job before ``submit`` returns (CLI, tests,
  single-shot tooling).
"""

from __future__ import annotations

import asyncio
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

import structlog

from ..config import Settings
from .jobs import Job, SessionFactory, reconcile_stale_jobs, run_job

logger = structlog.get_logger()


@dataclass(frozen=True)
class JobHandle:
    """Acknowledgment returned for a submitted job."""

    job_id: str
    kind: str
    resource_id: str


class JobDispatcher(ABC):
    """Abstract base class for job dispatchers."""

    def __init__(
        self,
        session_factory: SessionFactory,
        rng: Optional[random.Random] = None,
    ):
        self.session_factory = session_factory
        self.rng = rng or random.Random()

    @abstractmethod
    def submit(self, job: Job) -> JobHandle:
        """Schedule ``job`` and return without waiting for it."""
        pass

    def execute(self, job: Job) -> bool:
        """Run ``job`` now in a fresh session."""
        return run_job(job, self.session_factory, self.rng)

    async def stop(self) -> None:
        """Release background resources."""
        return None

    @staticmethod
    def _handle(job: Job) -> JobHandle:
        return JobHandle(job_id=job.job_id, kind=job.kind.value, resource_id=job.resource_id)


class InlineDispatcher(JobDispatcher):
    """Runs each job synchronously, ignoring its delay."""

    def submit(self, job: Job) -> JobHandle:
        self.execute(job)
        return self._handle(job)


class AsyncioDispatcher(JobDispatcher):
    """Runs each job as an asyncio task after its delay.

    Jobs still running when the process exits leave their records in
    processing; the stale sweep fails them once they exceed the timeout.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(session_factory, rng)
        self.running_tasks: Dict[str, asyncio.Task] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def submit(self, job: Job) -> JobHandle:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run_later(job), name=f"job-{job.job_id}")
        self.running_tasks[job.job_id] = task
        task.add_done_callback(lambda _: self.running_tasks.pop(job.job_id, None))
        logger.info(
            "job_scheduled",
            job_id=job.job_id,
            kind=job.kind.value,
            resource_id=job.resource_id,
            delay_seconds=job.delay_seconds,
        )
        return self._handle(job)

    async def _run_later(self, job: Job) -> None:
        await asyncio.sleep(job.delay_seconds)
        try:
            self.execute(job)
        except Exception:
            # run_job already tried to write a failed status; the sweep covers the rest
            logger.exception("job_crashed", job_id=job.job_id, resource_id=job.resource_id)

    def start_sweeper(self, interval_seconds: int, timeout_seconds: int) -> None:
        """Start the periodic stale-job sweep on the running loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(
                self._sweep_forever(interval_seconds, timeout_seconds),
                name="stale-job-sweeper",
            )

    async def _sweep_forever(self, interval_seconds: int, timeout_seconds: int) -> None:
        while True:
            try:
                failed = reconcile_stale_jobs(self.session_factory, timeout_seconds)
                if failed:
                    logger.warning("stale_jobs_reconciled", count=failed)
            except Exception:
                logger.exception("stale_sweep_error")
            await asyncio.sleep(interval_seconds)

    async def stop(self) -> None:
        """Cancel the sweeper and any pending jobs."""
        tasks = list(self.running_tasks.values())
        if self._sweeper is not None:
            tasks.append(self._sweeper)

        for task in tasks:
            if not task.done():
                task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                logger.info("task_cancelled", task=task.get_name())

        self.running_tasks.clear()
        self._sweeper = None


def create_dispatcher(
    settings: Settings,
    session_factory: SessionFactory,
    rng: Optional[random.Random] = None,
) -> JobDispatcher:
    """Build the dispatcher selected by ``settings.job_dispatch_mode``."""
    mode = settings.job_dispatch_mode.lower()
    if mode == "asyncio":
        return AsyncioDispatcher(session_factory, rng)
    if mode == "inline":
        return InlineDispatcher(session_factory, rng)
    raise ValueError(
        f"Unsupported job dispatch mode: {settings.job_dispatch_mode}. "
        f"Supported: asyncio, inline"
    )
