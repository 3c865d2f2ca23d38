from __future__ import annotations

import asyncio
import os
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import asyncpg  # type: ignore[import-untyped]
import pytest

from gigboard.services.engagements import EngagementManager
from gigboard.services.errors import ConflictError, ConflictReason, InvalidInputError, NotFoundError
from gigboard.services.jobs import JobService
from gigboard.services.lifecycle import ApplicationLifecycleEngine
from gigboard.services.notifications import NotificationEmitter, NotificationInbox
from gigboard.services.records import (
    ApplicationStatus,
    EngagementStatus,
    JobDraft,
    JobStatus,
    NotificationType,
    SkillPostDraft,
)
from gigboard.services.repository import PostgresRepository
from gigboard.services.skill_posts import SkillPostService
from gigboard.services.users import UserService

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "db" / "schema.sql"
EMPLOYER = "employer-1"
WORKERS = ("worker-1", "worker-2", "worker-3", "worker-4")

T = TypeVar("T")


@pytest.fixture(scope="session")
def database_url() -> str:
    url = os.getenv("GB_DATABASE_URL") or os.getenv("DATABASE_URL")
    if not url:
        pytest.skip("integration tests require GB_DATABASE_URL or DATABASE_URL")
    _run(_apply_schema(url))
    return url


@pytest.fixture(autouse=True)
def reset_tables(request: pytest.FixtureRequest) -> None:
    url = request.getfixturevalue("database_url")
    _run(_truncate_tables(url))


def _services(database_url: str) -> dict[str, Any]:
    repository = PostgresRepository(database_url, min_pool_size=1, max_pool_size=8)
    notifier = NotificationEmitter(repository)
    return {
        "repository": repository,
        "users": UserService(repository),
        "jobs": JobService(repository),
        "engine": ApplicationLifecycleEngine(repository, notifier),
        "engagements": EngagementManager(repository, notifier),
        "inbox": NotificationInbox(repository),
        "skill_posts": SkillPostService(repository, notifier),
    }


async def _seed(services: dict[str, Any]) -> str:
    for user_id in (EMPLOYER, *WORKERS):
        await services["users"].ensure(user_id, phone=None)
    job = await services["jobs"].create(
        EMPLOYER,
        JobDraft(title="Fix the fence", description="", payment="500", location_text="Pune"),
    )
    return job.id


def test_lifecycle_round_trip_against_postgres(database_url: str) -> None:
    async def scenario() -> None:
        services = _services(database_url)
        try:
            job_id = await _seed(services)
            first = await services["engine"].apply(job_id, WORKERS[0], "hello")
            await services["engine"].apply(job_id, WORKERS[1])

            with pytest.raises(ConflictError) as duplicate:
                await services["engine"].apply(job_id, WORKERS[0])
            assert duplicate.value.reason is ConflictReason.DUPLICATE_APPLICATION

            acceptance = await services["engine"].accept(first.id, EMPLOYER)
            assert acceptance.rejected_count == 1
            assert acceptance.job.status is JobStatus.IN_PROGRESS
            assert acceptance.job.applicant_count == 2

            engagement = await services["engagements"].complete(acceptance.engagement.id, EMPLOYER)
            assert engagement.status is EngagementStatus.COMPLETED

            await services["engagements"].rate(engagement.id, EMPLOYER, 5, "great")
            outcome = await services["engagements"].rate(engagement.id, WORKERS[0], 3)
            assert outcome.engagement.employer_rating.rating == 5
            assert outcome.engagement.worker_rating.rating == 3

            worker = await services["users"].get(WORKERS[0])
            assert (worker.rating.average, worker.rating.count) == (5.0, 1)

            inbox = await services["inbox"].list_for_user(EMPLOYER)
            assert inbox[0].data["fromUserId"] == WORKERS[0]
            assert await services["inbox"].unread_count(EMPLOYER) == len(inbox)
        finally:
            await services["repository"].close()

    _run(scenario())


def test_concurrent_accepts_against_postgres(database_url: str) -> None:
    async def scenario() -> None:
        services = _services(database_url)
        try:
            job_id = await _seed(services)
            applications = [await services["engine"].apply(job_id, worker) for worker in WORKERS]

            results = await asyncio.gather(
                *(services["engine"].accept(a.id, EMPLOYER) for a in applications),
                return_exceptions=True,
            )
            winners = [r for r in results if not isinstance(r, BaseException)]
            losers = [r for r in results if isinstance(r, BaseException)]
            assert len(winners) == 1
            assert all(isinstance(r, ConflictError) and r.reason is ConflictReason.WORKER_EXISTS for r in losers)

            statuses = [a.status for a in await services["jobs"].list_applicants(job_id, EMPLOYER)]
            assert statuses.count(ApplicationStatus.ACCEPTED) == 1
            assert statuses.count(ApplicationStatus.REJECTED) == len(WORKERS) - 1
        finally:
            await services["repository"].close()

    _run(scenario())


def test_cancel_cascade_and_unknown_ids_against_postgres(database_url: str) -> None:
    async def scenario() -> None:
        services = _services(database_url)
        try:
            job_id = await _seed(services)
            first = await services["engine"].apply(job_id, WORKERS[0])
            await services["engine"].accept(first.id, EMPLOYER)

            result = await services["engagements"].cancel_by_job(job_id, EMPLOYER, "weather")
            assert result.job.status is JobStatus.CANCELLED
            assert result.engagement.status is EngagementStatus.CANCELLED
            assert result.engagement.cancellation_reason == "weather"

            with pytest.raises(NotFoundError):
                await services["jobs"].get("not-a-uuid")
            with pytest.raises(NotFoundError):
                await services["engine"].withdraw("00000000-0000-0000-0000-000000000000", WORKERS[0])
        finally:
            await services["repository"].close()

    _run(scenario())


def test_skill_posts_and_notification_deletes_against_postgres(database_url: str) -> None:
    async def scenario() -> None:
        services = _services(database_url)
        try:
            await _seed(services)
            posts = services["skill_posts"]
            post = await posts.create(WORKERS[0], SkillPostDraft(skill="Plumbing", description="100%_leaks"))
            await posts.create(WORKERS[1], SkillPostDraft(skill="Tiling", description="floors"))

            assert [p.id for p in await posts.list_active(search="%_")] == [post.id]
            assert (await posts.view(post.id)).views == 1

            requested = await posts.request_job(post.id, EMPLOYER, "Monday")
            assert requested.request_count == 1
            inbox = await services["inbox"].list_for_user(WORKERS[0])
            assert [n.type for n in inbox] == [NotificationType.SKILL_REQUEST]

            with pytest.raises(NotFoundError):
                await services["inbox"].delete(inbox[0].id, WORKERS[1])
            await services["inbox"].delete(inbox[0].id, WORKERS[0])
            assert await services["inbox"].list_for_user(WORKERS[0]) == []

            await posts.delete(post.id, WORKERS[0])
            assert await posts.list_for_owner(WORKERS[0]) == []

            with pytest.raises(InvalidInputError):
                await services["jobs"].create(
                    EMPLOYER, JobDraft(title="x" * 201, description="", payment="1", location_text="Pune")
                )
        finally:
            await services["repository"].close()

    _run(scenario())


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


async def _apply_schema(database_url: str) -> None:
    conn = await asyncpg.connect(database_url)
    try:
        await conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
    finally:
        await conn.close()


async def _truncate_tables(database_url: str) -> None:
    conn = await asyncpg.connect(database_url)
    try:
        await conn.execute(
            """
            truncate table
              skill_posts,
              notifications,
              accepted_jobs,
              job_applications,
              jobs,
              users
            restart identity cascade
            """
        )
    finally:
        await conn.close()
