from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

import pytest

from gigboard.services.errors import (
    ConflictError,
    ConflictReason,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from gigboard.services.records import ApplicationStatus, JobDraft, JobStatus

from conftest import EMPLOYER, WORKERS

T = TypeVar("T")


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def test_create_normalizes_skills_and_starts_open(harness) -> None:
    async def scenario() -> None:
        job = await harness.open_job(required_skills=[" plumbing ", "", "plumbing", "tiling"])
        assert job.status is JobStatus.OPEN
        assert job.applicant_count == 0
        assert job.required_skills == ["plumbing", "tiling"]
        assert (await harness.jobs.get(job.id)).id == job.id

    _run(scenario())


def test_create_rejects_non_positive_max_workers(harness) -> None:
    draft = JobDraft(title="t", description="d", payment="p", location_text="l", max_workers=0)
    with pytest.raises(InvalidInputError):
        _run(harness.jobs.create(EMPLOYER, draft))


def test_blank_title_is_invalid_on_create_and_update(harness) -> None:
    async def scenario() -> None:
        with pytest.raises(InvalidInputError):
            await harness.open_job(title="   ")

        job = await harness.open_job(title="  Fix the fence  ")
        assert job.title == "Fix the fence"

        with pytest.raises(InvalidInputError):
            await harness.jobs.update(job.id, EMPLOYER, {"title": "  "})
        updated = await harness.jobs.update(job.id, EMPLOYER, {"title": " Paint the fence ", "payment": " 600 "})
        assert (updated.title, updated.payment) == ("Paint the fence", "600")

    _run(scenario())


def test_get_missing_job_is_not_found(harness) -> None:
    with pytest.raises(NotFoundError):
        _run(harness.jobs.get("nope"))


def test_update_owner_only_and_field_whitelist(harness) -> None:
    async def scenario() -> None:
        await harness.seed_users()
        job = await harness.open_job()
        await harness.engine.apply(job.id, WORKERS[0])

        updated = await harness.jobs.update(job.id, EMPLOYER, {"title": "Fix two fences", "max_workers": 2})
        assert updated.title == "Fix two fences"
        assert updated.max_workers == 2
        assert updated.applicant_count == 1

        with pytest.raises(ForbiddenError):
            await harness.jobs.update(job.id, WORKERS[0], {"title": "x"})
        with pytest.raises(InvalidInputError):
            await harness.jobs.update(job.id, EMPLOYER, {"status": "Completed"})
        with pytest.raises(InvalidInputError):
            await harness.jobs.update(job.id, EMPLOYER, {"max_workers": 0})

    _run(scenario())


def test_update_refused_once_job_is_terminal(harness) -> None:
    async def scenario() -> None:
        job = await harness.open_job()
        await harness.jobs.close(job.id, EMPLOYER)
        with pytest.raises(ConflictError) as exc:
            await harness.jobs.update(job.id, EMPLOYER, {"title": "late edit"})
        assert exc.value.reason is ConflictReason.JOB_NOT_EDITABLE

    _run(scenario())


def test_close_rejects_pending_applications(harness) -> None:
    async def scenario() -> None:
        await harness.seed_users()
        job = await harness.open_job()
        await harness.engine.apply(job.id, WORKERS[0])
        await harness.engine.apply(job.id, WORKERS[1])

        closed = await harness.jobs.close(job.id, EMPLOYER)

        assert closed.status is JobStatus.CLOSED
        assert closed.closed_at is not None
        statuses = {a.status for a in await harness.jobs.list_applicants(job.id, EMPLOYER)}
        assert statuses == {ApplicationStatus.REJECTED}

        with pytest.raises(ConflictError) as again:
            await harness.jobs.close(job.id, EMPLOYER)
        assert again.value.reason is ConflictReason.JOB_NOT_EDITABLE

    _run(scenario())


def test_close_cancelled_job_reports_already_cancelled(harness) -> None:
    async def scenario() -> None:
        job = await harness.open_job()
        await harness.engagements.cancel_by_job(job.id, EMPLOYER)
        with pytest.raises(ConflictError) as exc:
            await harness.jobs.close(job.id, EMPLOYER)
        assert exc.value.reason is ConflictReason.ALREADY_CANCELLED

    _run(scenario())


def test_list_open_excludes_own_and_filters_skills(harness) -> None:
    async def scenario() -> None:
        own = await harness.open_job(owner_id=WORKERS[0], title="Mine")
        painting = await harness.open_job(title="Paint", required_skills=["painting"])
        plumbing = await harness.open_job(title="Pipes", required_skills=["plumbing"])
        closed = await harness.open_job(title="Closed")
        await harness.jobs.close(closed.id, EMPLOYER)

        visible = await harness.jobs.list_open(WORKERS[0])
        assert [job.id for job in visible] == [plumbing.id, painting.id]
        assert own.id not in {job.id for job in visible}

        filtered = await harness.jobs.list_open(WORKERS[0], skills=["painting"])
        assert [job.id for job in filtered] == [painting.id]

    _run(scenario())


def test_list_for_owner_and_applicants_authz(harness) -> None:
    async def scenario() -> None:
        await harness.seed_users()
        job = await harness.open_job()
        await harness.open_job(owner_id=WORKERS[1], title="Other")
        await harness.engine.apply(job.id, WORKERS[0])

        mine = await harness.jobs.list_for_owner(EMPLOYER)
        assert [j.id for j in mine] == [job.id]
        assert await harness.jobs.list_for_owner(EMPLOYER, status=JobStatus.CLOSED) == []

        with pytest.raises(ForbiddenError):
            await harness.jobs.list_applicants(job.id, WORKERS[0])
        assert len(await harness.jobs.list_applicants(job.id, EMPLOYER)) == 1

    _run(scenario())
