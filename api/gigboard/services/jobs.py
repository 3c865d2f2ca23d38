from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import uuid4

from gigboard.services.errors import ConflictError, ConflictReason, ForbiddenError, InvalidInputError, NotFoundError
from gigboard.services.records import (
    EDITABLE_JOB_FIELDS,
    TERMINAL_JOB_STATUSES,
    Job,
    JobApplication,
    JobDraft,
    JobStatus,
    normalize_skills,
    utc_now,
)
from gigboard.services.store import Store

logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = ("title", "payment", "location_text")


def _required_text(name: str, value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise InvalidInputError(f"{name} must not be blank")
    return stripped


class JobService:
    """Owner-side job operations that sit outside the application lifecycle."""

    def __init__(self, store: Store, *, clock: Callable[[], datetime] = utc_now) -> None:
        self.store = store
        self.clock = clock

    async def create(self, owner_id: str, draft: JobDraft) -> Job:
        if draft.max_workers < 1:
            raise InvalidInputError("max_workers must be at least 1")
        job = Job(
            id=str(uuid4()),
            owner_id=owner_id,
            title=_required_text("title", draft.title),
            description=draft.description,
            payment=_required_text("payment", draft.payment),
            location_text=_required_text("location_text", draft.location_text),
            start_time=draft.start_time,
            total_time=draft.total_time,
            required_skills=normalize_skills(draft.required_skills),
            max_workers=draft.max_workers,
            created_at=self.clock(),
        )
        async with self.store.transaction() as session:
            job = await session.insert_job(job)
        logger.info("job created id=%s owner=%s", job.id, owner_id)
        return job

    async def get(self, job_id: str) -> Job:
        async with self.store.transaction() as session:
            job = await session.get_job(job_id)
        if job is None:
            raise NotFoundError("job not found")
        return job

    async def update(self, job_id: str, caller_id: str, changes: dict[str, Any]) -> Job:
        unknown = set(changes) - set(EDITABLE_JOB_FIELDS)
        if unknown:
            raise InvalidInputError(f"fields not editable: {sorted(unknown)}")
        if "max_workers" in changes and changes["max_workers"] < 1:
            raise InvalidInputError("max_workers must be at least 1")
        changes = {
            name: _required_text(name, value) if name in REQUIRED_TEXT_FIELDS and value is not None else value
            for name, value in changes.items()
        }

        async with self.store.transaction() as session:
            job = await session.get_job(job_id, for_update=True)
            if job is None:
                raise NotFoundError("job not found")
            if job.owner_id != caller_id:
                raise ForbiddenError("not authorized to update this job")
            if job.status in TERMINAL_JOB_STATUSES:
                raise ConflictError(
                    ConflictReason.JOB_NOT_EDITABLE, f"cannot update a {job.status.value.lower()} job"
                )

            for name, value in changes.items():
                if name == "required_skills":
                    value = normalize_skills(value)
                setattr(job, name, value)
            job = await session.update_job(job)

        logger.info("job updated id=%s fields=%s", job.id, sorted(changes))
        return job

    async def close(self, job_id: str, caller_id: str) -> Job:
        async with self.store.transaction() as session:
            job = await session.get_job(job_id, for_update=True)
            if job is None:
                raise NotFoundError("job not found")
            if job.owner_id != caller_id:
                raise ForbiddenError("not authorized to close this job")
            if job.status is JobStatus.CANCELLED:
                raise ConflictError(ConflictReason.ALREADY_CANCELLED, "job is already cancelled")
            if job.status is not JobStatus.OPEN:
                raise ConflictError(
                    ConflictReason.JOB_NOT_EDITABLE, f"cannot close a {job.status.value.lower()} job"
                )

            now = self.clock()
            job.status = JobStatus.CLOSED
            job.closed_at = now
            job = await session.update_job(job)
            rejected = await session.reject_pending_applications(job_id, rejected_at=now)

        logger.info("job closed id=%s rejected_applications=%s", job.id, rejected)
        return job

    async def list_for_owner(
        self, owner_id: str, *, status: JobStatus | None = None, limit: int = 20, offset: int = 0
    ) -> list[Job]:
        async with self.store.transaction() as session:
            return await session.list_jobs(owner_id=owner_id, status=status, limit=limit, offset=offset)

    async def list_open(
        self,
        viewer_id: str,
        *,
        skills: list[str] | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Job]:
        async with self.store.transaction() as session:
            return await session.list_jobs(
                exclude_owner_id=viewer_id,
                status=JobStatus.OPEN,
                skills=normalize_skills(skills) or None,
                limit=limit,
                offset=offset,
            )

    async def list_applicants(self, job_id: str, caller_id: str, *, limit: int = 100) -> list[JobApplication]:
        async with self.store.transaction() as session:
            job = await session.get_job(job_id)
            if job is None:
                raise NotFoundError("job not found")
            if job.owner_id != caller_id:
                raise ForbiddenError("not authorized to view applicants")
            return await session.list_applications(job_id=job_id, limit=limit)
