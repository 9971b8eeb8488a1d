import asyncio

import pytest
from pydantic import ValidationError

from vibeflow.contracts import ExecutionStatus, InteractionRequest, PhaseResult
from vibeflow.jobs import AsyncJob, AsyncJobRegistry, JobStatus


def _result(**kwargs):
    return PhaseResult(phase_name="Design", status=ExecutionStatus.PHASE_COMPLETED, **kwargs)


def test_job_lifecycle():
    jobs = AsyncJobRegistry()
    job_id = jobs.create_job()
    assert job_id.startswith("job-")
    assert jobs.get_job(job_id).status == JobStatus.RUNNING

    request = InteractionRequest.ask_user("Continue?")
    paused = jobs.pause_job_for_input(job_id, request)
    assert paused.status == JobStatus.AWAITING_INPUT
    assert paused.interaction_request == request

    done = jobs.complete_job(job_id, _result())
    assert done.status == JobStatus.COMPLETED
    assert done.interaction_request is None
    assert done.created_at == paused.created_at

    assert jobs.remove_job(job_id)
    assert jobs.get_job(job_id) is None
    assert not jobs.remove_job(job_id)


def test_unknown_job_cannot_be_updated():
    jobs = AsyncJobRegistry()
    with pytest.raises(KeyError):
        jobs.fail_job("job-0-0000", "boom")


def test_job_ids_are_unique():
    jobs = AsyncJobRegistry()
    ids = {jobs.create_job() for _ in range(50)}
    assert len(ids) == 50
    assert len(jobs.list_jobs()) == 50


def test_payload_must_match_status():
    with pytest.raises(ValidationError):
        AsyncJob(id="j", status=JobStatus.COMPLETED)
    with pytest.raises(ValidationError):
        AsyncJob(id="j", status=JobStatus.RUNNING, error="boom")


@pytest.mark.asyncio
async def test_submit_completes_job():
    jobs = AsyncJobRegistry()

    async def work():
        return _result(summary="done")

    job_id = jobs.submit(work())
    job = await jobs.wait(job_id)

    assert job.status == JobStatus.COMPLETED
    assert job.result.summary == "done"


@pytest.mark.asyncio
async def test_submit_pauses_job_for_input():
    jobs = AsyncJobRegistry()
    request = InteractionRequest.ask_user("Which region?")

    async def work():
        return PhaseResult(
            phase_name="Design",
            status=ExecutionStatus.IN_PROGRESS,
            awaiting_input=True,
            interaction_request=request,
        )

    job = await jobs.wait(jobs.submit(work()))

    assert job.status == JobStatus.AWAITING_INPUT
    assert job.interaction_request == request


@pytest.mark.asyncio
async def test_submit_records_failure():
    jobs = AsyncJobRegistry()

    async def work():
        raise RuntimeError("llm unavailable")

    job = await jobs.wait(jobs.submit(work()))

    assert job.status == JobStatus.FAILED
    assert job.error == "llm unavailable"


@pytest.mark.asyncio
async def test_finished_tasks_are_dropped_without_wait():
    jobs = AsyncJobRegistry()

    async def work():
        return _result()

    job_id = jobs.submit(work())
    for _ in range(5):
        await asyncio.sleep(0)

    assert jobs.get_job(job_id).status == JobStatus.COMPLETED
    assert jobs._tasks == {}


@pytest.mark.asyncio
async def test_remove_job_cancels_running_task():
    jobs = AsyncJobRegistry()
    started = asyncio.Event()
    finished = []

    async def work():
        started.set()
        await asyncio.sleep(10)
        finished.append(True)
        return _result()

    job_id = jobs.submit(work())
    await started.wait()
    task = jobs._tasks[job_id]

    assert jobs.remove_job(job_id)
    with pytest.raises(asyncio.CancelledError):
        await task

    assert task.cancelled()
    assert finished == []
    assert jobs.get_job(job_id) is None
    assert jobs._tasks == {}
