from __future__ import annotations

import asyncio
import copy
import itertools
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import AsyncContextManager, AsyncIterator, Protocol, TypeVar

from gigboard.services.errors import ConflictError, ConflictReason, UnavailableError
from gigboard.services.records import (
    AcceptedJob,
    ApplicationStatus,
    EngagementStatus,
    Job,
    JobApplication,
    JobStatus,
    Notification,
    RatingSummary,
    SkillPost,
    SkillPostStatus,
    UserRecord,
    utc_now,
)

T = TypeVar("T")


class StoreSession(Protocol):
    """Operations available inside one store transaction.

    Every write made through a session commits or rolls back together with the
    transaction that produced it. ``for_update`` reads lock the row until commit;
    callers lock in the order job, application, engagement, user.
    """

    async def get_user(self, user_id: str, *, for_update: bool = False) -> UserRecord | None: ...

    async def upsert_user(self, user_id: str, *, phone: str | None) -> UserRecord: ...

    async def update_user_profile(
        self, user_id: str, *, name: str | None, device_token: str | None
    ) -> UserRecord | None: ...

    async def update_user_rating(self, user_id: str, summary: RatingSummary) -> None: ...

    async def insert_job(self, job: Job) -> Job: ...

    async def get_job(self, job_id: str, *, for_update: bool = False) -> Job | None: ...

    async def update_job(self, job: Job) -> Job: ...

    async def adjust_applicant_count(self, job_id: str, delta: int) -> Job: ...

    async def list_jobs(
        self,
        *,
        owner_id: str | None = None,
        exclude_owner_id: str | None = None,
        status: JobStatus | None = None,
        skills: list[str] | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Job]: ...

    async def insert_application(self, application: JobApplication) -> JobApplication: ...

    async def get_application(self, application_id: str, *, for_update: bool = False) -> JobApplication | None: ...

    async def find_application(self, job_id: str, applicant_id: str) -> JobApplication | None: ...

    async def update_application(self, application: JobApplication) -> JobApplication: ...

    async def reject_pending_applications(
        self, job_id: str, *, rejected_at: datetime, exclude_id: str | None = None
    ) -> int: ...

    async def list_applications(
        self,
        *,
        job_id: str | None = None,
        applicant_id: str | None = None,
        status: ApplicationStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[JobApplication]: ...

    async def insert_engagement(self, engagement: AcceptedJob) -> AcceptedJob: ...

    async def get_engagement(self, engagement_id: str, *, for_update: bool = False) -> AcceptedJob | None: ...

    async def get_engagement_for_job(self, job_id: str, *, for_update: bool = False) -> AcceptedJob | None: ...

    async def update_engagement(self, engagement: AcceptedJob) -> AcceptedJob: ...

    async def list_engagements(
        self,
        *,
        worker_id: str | None = None,
        employer_id: str | None = None,
        status: EngagementStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AcceptedJob]: ...

    async def insert_notification(self, notification: Notification) -> Notification: ...

    async def mark_push_sent(self, notification_id: str) -> None: ...

    async def list_notifications(
        self, user_id: str, *, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> list[Notification]: ...

    async def count_unread_notifications(self, user_id: str) -> int: ...

    async def mark_notification_read(
        self, notification_id: str, user_id: str, *, read_at: datetime
    ) -> Notification | None: ...

    async def mark_all_notifications_read(self, user_id: str, *, read_at: datetime) -> int: ...

    async def delete_notification(self, notification_id: str, user_id: str) -> bool: ...

    async def delete_all_notifications(self, user_id: str) -> int: ...

    async def purge_notifications(self, created_before: datetime) -> int: ...

    async def insert_skill_post(self, post: SkillPost) -> SkillPost: ...

    async def get_skill_post(self, post_id: str, *, for_update: bool = False) -> SkillPost | None: ...

    async def update_skill_post(self, post: SkillPost) -> SkillPost: ...

    async def list_skill_posts(
        self,
        *,
        owner_id: str | None = None,
        statuses: tuple[SkillPostStatus, ...] | None = None,
        category: str | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[SkillPost]: ...


class Store(Protocol):
    def transaction(self) -> AsyncContextManager[StoreSession]: ...

    async def close(self) -> None: ...


@dataclass(slots=True)
class _Tables:
    users: dict[str, UserRecord] = field(default_factory=dict)
    jobs: dict[str, Job] = field(default_factory=dict)
    applications: dict[str, JobApplication] = field(default_factory=dict)
    engagements: dict[str, AcceptedJob] = field(default_factory=dict)
    notifications: dict[str, Notification] = field(default_factory=dict)
    skill_posts: dict[str, SkillPost] = field(default_factory=dict)


class InMemoryStore:
    """Store for local development and tests.

    Transactions are serialized by a single lock and run against a private copy of
    the tables that replaces the committed state only when the block exits cleanly,
    so an exception or cancellation leaves nothing behind. Unique keys mirror the
    Postgres schema: one application per (job, applicant), one engagement per job.
    """

    def __init__(self, *, lock_timeout_seconds: float = 5.0) -> None:
        self._tables = _Tables()
        self._lock = asyncio.Lock()
        self._lock_timeout_seconds = lock_timeout_seconds
        self._sequence = itertools.count(1)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemorySession]:
        try:
            async with asyncio.timeout(self._lock_timeout_seconds):
                await self._lock.acquire()
        except TimeoutError as exc:
            raise UnavailableError("store transaction timed out") from exc

        try:
            working = copy.deepcopy(self._tables)
            yield InMemorySession(working, self._sequence)
            self._tables = working
        finally:
            self._lock.release()

    async def close(self) -> None:
        return None


class InMemorySession:
    def __init__(self, tables: _Tables, sequence: itertools.count) -> None:
        self._tables = tables
        self._sequence = sequence

    # === Users ===

    async def get_user(self, user_id: str, *, for_update: bool = False) -> UserRecord | None:
        return _copy(self._tables.users.get(user_id))

    async def upsert_user(self, user_id: str, *, phone: str | None) -> UserRecord:
        now = utc_now()
        user = self._tables.users.get(user_id)
        if user is None:
            user = UserRecord(id=user_id, phone=phone, created_at=now, updated_at=now)
            self._tables.users[user_id] = user
        elif phone and user.phone != phone:
            user.phone = phone
            user.updated_at = now
        return _copy(user)

    async def update_user_profile(
        self, user_id: str, *, name: str | None, device_token: str | None
    ) -> UserRecord | None:
        user = self._tables.users.get(user_id)
        if user is None:
            return None
        if name is not None:
            user.name = name or None
        if device_token is not None:
            user.device_token = device_token or None
        user.updated_at = utc_now()
        return _copy(user)

    async def update_user_rating(self, user_id: str, summary: RatingSummary) -> None:
        user = self._tables.users.get(user_id)
        if user is not None:
            user.rating = summary
            user.updated_at = utc_now()

    # === Jobs ===

    async def insert_job(self, job: Job) -> Job:
        now = utc_now()
        stored = replace(job, seq=next(self._sequence), created_at=job.created_at or now, updated_at=now)
        self._tables.jobs[stored.id] = stored
        return _copy(stored)

    async def get_job(self, job_id: str, *, for_update: bool = False) -> Job | None:
        return _copy(self._tables.jobs.get(job_id))

    async def update_job(self, job: Job) -> Job:
        existing = self._tables.jobs[job.id]
        stored = replace(
            job,
            applicant_count=existing.applicant_count,
            seq=existing.seq,
            created_at=existing.created_at,
            updated_at=utc_now(),
        )
        self._tables.jobs[job.id] = stored
        return _copy(stored)

    async def adjust_applicant_count(self, job_id: str, delta: int) -> Job:
        job = self._tables.jobs[job_id]
        job.applicant_count = max(0, job.applicant_count + delta)
        job.updated_at = utc_now()
        return _copy(job)

    async def list_jobs(
        self,
        *,
        owner_id: str | None = None,
        exclude_owner_id: str | None = None,
        status: JobStatus | None = None,
        skills: list[str] | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Job]:
        jobs = list(self._tables.jobs.values())
        if owner_id is not None:
            jobs = [j for j in jobs if j.owner_id == owner_id]
        if exclude_owner_id is not None:
            jobs = [j for j in jobs if j.owner_id != exclude_owner_id]
        if status is not None:
            jobs = [j for j in jobs if j.status == status]
        if skills:
            jobs = [j for j in jobs if any(s in j.required_skills for s in skills)]
        jobs.sort(key=lambda j: j.seq, reverse=True)
        return [_copy(j) for j in jobs[offset : offset + limit]]

    # === Applications ===

    async def insert_application(self, application: JobApplication) -> JobApplication:
        if await self.find_application(application.job_id, application.applicant_id) is not None:
            raise ConflictError(ConflictReason.DUPLICATE_APPLICATION, "you have already applied for this job")
        now = utc_now()
        stored = replace(
            application,
            seq=next(self._sequence),
            applied_at=application.applied_at or now,
            updated_at=now,
        )
        self._tables.applications[stored.id] = stored
        return _copy(stored)

    async def get_application(self, application_id: str, *, for_update: bool = False) -> JobApplication | None:
        return _copy(self._tables.applications.get(application_id))

    async def find_application(self, job_id: str, applicant_id: str) -> JobApplication | None:
        for application in self._tables.applications.values():
            if application.job_id == job_id and application.applicant_id == applicant_id:
                return _copy(application)
        return None

    async def update_application(self, application: JobApplication) -> JobApplication:
        existing = self._tables.applications[application.id]
        stored = replace(application, seq=existing.seq, applied_at=existing.applied_at, updated_at=utc_now())
        self._tables.applications[application.id] = stored
        return _copy(stored)

    async def reject_pending_applications(
        self, job_id: str, *, rejected_at: datetime, exclude_id: str | None = None
    ) -> int:
        rejected = 0
        for application in self._tables.applications.values():
            if application.job_id != job_id or application.id == exclude_id:
                continue
            if application.status is not ApplicationStatus.APPLIED:
                continue
            application.status = ApplicationStatus.REJECTED
            application.rejected_at = rejected_at
            application.updated_at = rejected_at
            rejected += 1
        return rejected

    async def list_applications(
        self,
        *,
        job_id: str | None = None,
        applicant_id: str | None = None,
        status: ApplicationStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[JobApplication]:
        apps = list(self._tables.applications.values())
        if job_id is not None:
            apps = [a for a in apps if a.job_id == job_id]
        if applicant_id is not None:
            apps = [a for a in apps if a.applicant_id == applicant_id]
        if status is not None:
            apps = [a for a in apps if a.status == status]
        apps.sort(key=lambda a: a.seq, reverse=True)
        return [_copy(a) for a in apps[offset : offset + limit]]

    # === Engagements ===

    async def insert_engagement(self, engagement: AcceptedJob) -> AcceptedJob:
        if await self.get_engagement_for_job(engagement.job_id) is not None:
            raise ConflictError(ConflictReason.WORKER_EXISTS, "this job already has an accepted worker")
        now = utc_now()
        stored = replace(
            engagement,
            seq=next(self._sequence),
            accepted_at=engagement.accepted_at or now,
            updated_at=now,
        )
        self._tables.engagements[stored.id] = stored
        return _copy(stored)

    async def get_engagement(self, engagement_id: str, *, for_update: bool = False) -> AcceptedJob | None:
        return _copy(self._tables.engagements.get(engagement_id))

    async def get_engagement_for_job(self, job_id: str, *, for_update: bool = False) -> AcceptedJob | None:
        for engagement in self._tables.engagements.values():
            if engagement.job_id == job_id:
                return _copy(engagement)
        return None

    async def update_engagement(self, engagement: AcceptedJob) -> AcceptedJob:
        existing = self._tables.engagements[engagement.id]
        stored = replace(engagement, seq=existing.seq, accepted_at=existing.accepted_at, updated_at=utc_now())
        self._tables.engagements[engagement.id] = stored
        return _copy(stored)

    async def list_engagements(
        self,
        *,
        worker_id: str | None = None,
        employer_id: str | None = None,
        status: EngagementStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AcceptedJob]:
        rows = list(self._tables.engagements.values())
        if worker_id is not None:
            rows = [e for e in rows if e.worker_id == worker_id]
        if employer_id is not None:
            rows = [e for e in rows if e.employer_id == employer_id]
        if status is not None:
            rows = [e for e in rows if e.status == status]
        rows.sort(key=lambda e: e.seq, reverse=True)
        return [_copy(e) for e in rows[offset : offset + limit]]

    # === Notifications ===

    async def insert_notification(self, notification: Notification) -> Notification:
        stored = replace(
            notification,
            seq=next(self._sequence),
            created_at=notification.created_at or utc_now(),
        )
        self._tables.notifications[stored.id] = stored
        return _copy(stored)

    async def mark_push_sent(self, notification_id: str) -> None:
        notification = self._tables.notifications.get(notification_id)
        if notification is not None:
            notification.push_sent = True

    async def list_notifications(
        self, user_id: str, *, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> list[Notification]:
        rows = [n for n in self._tables.notifications.values() if n.user_id == user_id]
        if unread_only:
            rows = [n for n in rows if not n.is_read]
        rows.sort(key=lambda n: n.seq, reverse=True)
        return [_copy(n) for n in rows[offset : offset + limit]]

    async def count_unread_notifications(self, user_id: str) -> int:
        return sum(1 for n in self._tables.notifications.values() if n.user_id == user_id and not n.is_read)

    async def mark_notification_read(
        self, notification_id: str, user_id: str, *, read_at: datetime
    ) -> Notification | None:
        notification = self._tables.notifications.get(notification_id)
        if notification is None or notification.user_id != user_id:
            return None
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = read_at
        return _copy(notification)

    async def mark_all_notifications_read(self, user_id: str, *, read_at: datetime) -> int:
        updated = 0
        for notification in self._tables.notifications.values():
            if notification.user_id == user_id and not notification.is_read:
                notification.is_read = True
                notification.read_at = read_at
                updated += 1
        return updated

    async def purge_notifications(self, created_before: datetime) -> int:
        expired = [
            n.id
            for n in self._tables.notifications.values()
            if n.created_at is not None and n.created_at < created_before
        ]
        for notification_id in expired:
            del self._tables.notifications[notification_id]
        return len(expired)

    async def delete_notification(self, notification_id: str, user_id: str) -> bool:
        notification = self._tables.notifications.get(notification_id)
        if notification is None or notification.user_id != user_id:
            return False
        del self._tables.notifications[notification_id]
        return True

    async def delete_all_notifications(self, user_id: str) -> int:
        owned = [n.id for n in self._tables.notifications.values() if n.user_id == user_id]
        for notification_id in owned:
            del self._tables.notifications[notification_id]
        return len(owned)

    # === Skill posts ===

    async def insert_skill_post(self, post: SkillPost) -> SkillPost:
        now = utc_now()
        stored = replace(post, seq=next(self._sequence), created_at=post.created_at or now, updated_at=now)
        self._tables.skill_posts[stored.id] = stored
        return _copy(stored)

    async def get_skill_post(self, post_id: str, *, for_update: bool = False) -> SkillPost | None:
        return _copy(self._tables.skill_posts.get(post_id))

    async def update_skill_post(self, post: SkillPost) -> SkillPost:
        existing = self._tables.skill_posts[post.id]
        stored = replace(post, seq=existing.seq, created_at=existing.created_at, updated_at=utc_now())
        self._tables.skill_posts[post.id] = stored
        return _copy(stored)

    async def list_skill_posts(
        self,
        *,
        owner_id: str | None = None,
        statuses: tuple[SkillPostStatus, ...] | None = None,
        category: str | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[SkillPost]:
        posts = list(self._tables.skill_posts.values())
        if owner_id is not None:
            posts = [p for p in posts if p.owner_id == owner_id]
        if statuses is not None:
            posts = [p for p in posts if p.status in statuses]
        if category is not None:
            posts = [p for p in posts if p.category.lower() == category.lower()]
        if search:
            needle = search.lower()
            posts = [p for p in posts if needle in p.skill.lower() or needle in p.description.lower()]
        posts.sort(key=lambda p: p.seq, reverse=True)
        return [_copy(p) for p in posts[offset : offset + limit]]


def _copy(value: T | None) -> T | None:
    return copy.deepcopy(value) if value is not None else None
