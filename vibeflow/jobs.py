"""Background execution of phases with pollable job status."""

from __future__ import annotations

import asyncio
import logging
import random
import threading
import time
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Awaitable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .contracts import InteractionRequest, PhaseResult

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    RUNNING = "running"
    AWAITING_INPUT = "awaiting_input"
    COMPLETED = "completed"
    FAILED = "failed"


class AsyncJob(BaseModel):
    """Snapshot of a background job; replaced wholesale on every update."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: JobStatus = JobStatus.RUNNING
    result: Optional[PhaseResult] = None
    error: Optional[str] = None
    interaction_request: Optional[InteractionRequest] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _payload_matches_status(self) -> "AsyncJob":
        carried = {
            JobStatus.COMPLETED: self.result is not None,
            JobStatus.FAILED: self.error is not None,
            JobStatus.AWAITING_INPUT: self.interaction_request is not None,
        }
        for status, present in carried.items():
            if present != (self.status == status):
                raise ValueError(f"Job in status {self.status.value} has inconsistent payload")
        return self


class AsyncJobRegistry:
    """Thread-safe map of job id to ``AsyncJob``."""

    def __init__(self) -> None:
        self._jobs: Dict[str, AsyncJob] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _new_id() -> str:
        return f"job-{int(time.time() * 1000)}-{random.randint(1000, 9999)}"

    def _replace(self, job_id: str, **fields) -> AsyncJob:
        with self._lock:
            previous = self._jobs.get(job_id)
            if previous is None:
                raise KeyError(f"Unknown job: {job_id}")
            job = AsyncJob(id=job_id, created_at=previous.created_at, **fields)
            self._jobs[job_id] = job
        return job

    def create_job(self) -> str:
        with self._lock:
            job_id = self._new_id()
            while job_id in self._jobs:
                job_id = self._new_id()
            self._jobs[job_id] = AsyncJob(id=job_id)
        logger.debug(f"Created job {job_id}")
        return job_id

    def complete_job(self, job_id: str, result: PhaseResult) -> AsyncJob:
        return self._replace(job_id, status=JobStatus.COMPLETED, result=result)

    def pause_job_for_input(self, job_id: str, request: InteractionRequest) -> AsyncJob:
        return self._replace(
            job_id, status=JobStatus.AWAITING_INPUT, interaction_request=request
        )

    def fail_job(self, job_id: str, error: str) -> AsyncJob:
        return self._replace(job_id, status=JobStatus.FAILED, error=error)

    def get_job(self, job_id: str) -> Optional[AsyncJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[AsyncJob]:
        with self._lock:
            return list(self._jobs.values())

    def remove_job(self, job_id: str) -> bool:
        """Forget ``job_id``, cancelling its task if it is still running."""
        with self._lock:
            task = self._tasks.pop(job_id, None)
            removed = self._jobs.pop(job_id, None) is not None
        if task is not None and not task.done():
            task.cancel()
            logger.debug(f"Cancelled job {job_id}")
        return removed

    def _forget_task(self, job_id: str, task: asyncio.Task) -> None:
        with self._lock:
            if self._tasks.get(job_id) is task:
                del self._tasks[job_id]

    def submit(self, work: Awaitable[PhaseResult]) -> str:
        """Schedule ``work`` on the running loop and track it as a job.

        A paused phase result moves the job to ``awaiting_input``; any other
        result completes it and an exception fails it.
        """
        job_id = self.create_job()

        async def _run() -> None:
            try:
                result = await work
            except Exception as e:
                logger.error(f"Job {job_id} failed: {e}")
                self.fail_job(job_id, str(e) or type(e).__name__)
                return
            if result.awaiting_input and result.interaction_request is not None:
                self.pause_job_for_input(job_id, result.interaction_request)
            else:
                self.complete_job(job_id, result)

        task = asyncio.get_running_loop().create_task(_run())
        with self._lock:
            self._tasks[job_id] = task
        task.add_done_callback(partial(self._forget_task, job_id))
        return job_id

    async def wait(self, job_id: str) -> Optional[AsyncJob]:
        """Wait until the task behind ``job_id`` settles, then return the job."""
        with self._lock:
            task = self._tasks.get(job_id)
        if task is not None:
            await task
        return self.get_job(job_id)
