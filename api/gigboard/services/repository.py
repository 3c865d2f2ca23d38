from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache
from typing import Any, AsyncIterator
from uuid import UUID

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from gigboard.core.config import get_settings
from gigboard.services.errors import ConflictError, ConflictReason, InvalidInputError, UnavailableError
from gigboard.services.records import (
    AcceptedJob,
    ApplicationStatus,
    EngagementStatus,
    Job,
    JobApplication,
    JobStatus,
    Notification,
    NotificationType,
    RatingRecord,
    RatingSummary,
    SkillPost,
    SkillPostStatus,
    UserRecord,
)

USER_COLUMNS = """
  id,
  phone,
  name,
  device_token,
  rating_average,
  rating_count,
  created_at,
  updated_at
"""

JOB_COLUMNS = """
  id::text as id,
  seq,
  owner_id,
  title,
  description,
  payment,
  location_text,
  start_time,
  total_time,
  required_skills,
  max_workers,
  status::text as status,
  applicant_count,
  created_at,
  updated_at,
  closed_at
"""

APPLICATION_COLUMNS = """
  id::text as id,
  seq,
  job_id::text as job_id,
  applicant_id,
  status::text as status,
  message,
  applied_at,
  accepted_at,
  rejected_at,
  withdrawn_at,
  updated_at
"""

ENGAGEMENT_COLUMNS = """
  id::text as id,
  seq,
  job_id::text as job_id,
  worker_id,
  employer_id,
  chat_room_id,
  status::text as status,
  accepted_at,
  completed_at,
  cancelled_at,
  cancelled_by,
  cancellation_reason,
  employer_rating,
  employer_review,
  employer_rated_at,
  worker_rating,
  worker_review,
  worker_rated_at,
  updated_at
"""

NOTIFICATION_COLUMNS = """
  id::text as id,
  seq,
  user_id,
  type::text as type,
  title,
  body,
  data,
  is_read,
  read_at,
  push_sent,
  created_at
"""

SKILL_POST_COLUMNS = """
  id::text as id,
  seq,
  owner_id,
  skill,
  description,
  photo,
  price_range,
  category,
  availability,
  location_text,
  status::text as status,
  views,
  request_count,
  created_at,
  updated_at
"""

ENGAGEMENT_JOB_CONSTRAINT = "accepted_jobs_job_id_key"
APPLICATION_PAIR_CONSTRAINT = "job_applications_job_applicant_key"


def _is_uuid(value: str) -> bool:
    try:
        UUID(value)
    except (TypeError, ValueError):
        return False
    return True


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _lock_clause(for_update: bool) -> str:
    return "for update" if for_update else ""


def _affected_rows(status: str) -> int:
    # asyncpg returns the command tag, e.g. "UPDATE 3".
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0


class PostgresRepository:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        command_timeout_seconds: float = 15.0,
        acquire_timeout_seconds: float = 5.0,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.command_timeout_seconds = command_timeout_seconds
        self.acquire_timeout_seconds = acquire_timeout_seconds
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PostgresSession]:
        pool = await self._get_pool()
        try:
            async with pool.acquire(timeout=self.acquire_timeout_seconds) as conn:
                async with conn.transaction():
                    yield PostgresSession(conn)
        except (
            OSError,
            asyncio.TimeoutError,
            asyncpg.InterfaceError,
            pg_exc.PostgresConnectionError,
        ) as exc:
            raise UnavailableError("database unavailable") from exc
        except (pg_exc.InvalidTextRepresentationError, pg_exc.CheckViolationError, asyncpg.DataError) as exc:
            raise InvalidInputError(str(exc)) from exc
        except pg_exc.PostgresError as exc:
            raise UnavailableError(f"database error: {exc.__class__.__name__}") from exc

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise UnavailableError("GB_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=self.command_timeout_seconds,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise UnavailableError("database unavailable") from exc


class PostgresSession:
    def __init__(self, conn: asyncpg.Connection) -> None:
        self.conn = conn

    # === Users ===

    async def get_user(self, user_id: str, *, for_update: bool = False) -> UserRecord | None:
        row = await self.conn.fetchrow(
            f"""
            select {USER_COLUMNS}
            from users
            where id = $1
            {_lock_clause(for_update)}
            """,
            user_id,
        )
        return self._user_from_row(row) if row is not None else None

    async def upsert_user(self, user_id: str, *, phone: str | None) -> UserRecord:
        row = await self.conn.fetchrow(
            f"""
            insert into users (id, phone)
            values ($1, nullif($2, ''))
            on conflict (id) do update
            set
              phone = coalesce(excluded.phone, users.phone),
              updated_at = case
                when excluded.phone is not null and excluded.phone is distinct from users.phone then now()
                else users.updated_at
              end
            returning {USER_COLUMNS}
            """,
            user_id,
            phone,
        )
        return self._user_from_row(row)

    async def update_user_profile(
        self, user_id: str, *, name: str | None, device_token: str | None
    ) -> UserRecord | None:
        row = await self.conn.fetchrow(
            f"""
            update users
            set
              name = case when $2::text is null then name else nullif($2::text, '') end,
              device_token = case when $3::text is null then device_token else nullif($3::text, '') end,
              updated_at = now()
            where id = $1
            returning {USER_COLUMNS}
            """,
            user_id,
            name,
            device_token,
        )
        return self._user_from_row(row) if row is not None else None

    async def update_user_rating(self, user_id: str, summary: RatingSummary) -> None:
        await self.conn.execute(
            """
            update users
            set rating_average = $2, rating_count = $3, updated_at = now()
            where id = $1
            """,
            user_id,
            summary.average,
            summary.count,
        )

    # === Jobs ===

    async def insert_job(self, job: Job) -> Job:
        row = await self.conn.fetchrow(
            f"""
            insert into jobs (
              id,
              owner_id,
              title,
              description,
              payment,
              location_text,
              start_time,
              total_time,
              required_skills,
              max_workers,
              status,
              created_at,
              updated_at
            )
            values (
              $1::uuid, $2, $3, $4, $5, $6, $7, $8, $9::text[], $10, $11::job_status,
              coalesce($12, now()), now()
            )
            returning {JOB_COLUMNS}
            """,
            job.id,
            job.owner_id,
            job.title,
            job.description,
            job.payment,
            job.location_text,
            job.start_time,
            job.total_time,
            list(job.required_skills),
            job.max_workers,
            job.status.value,
            job.created_at,
        )
        return self._job_from_row(row)

    async def get_job(self, job_id: str, *, for_update: bool = False) -> Job | None:
        if not _is_uuid(job_id):
            return None
        row = await self.conn.fetchrow(
            f"""
            select {JOB_COLUMNS}
            from jobs
            where id = $1::uuid
            {_lock_clause(for_update)}
            """,
            job_id,
        )
        return self._job_from_row(row) if row is not None else None

    async def update_job(self, job: Job) -> Job:
        row = await self.conn.fetchrow(
            f"""
            update jobs
            set
              title = $2,
              description = $3,
              payment = $4,
              location_text = $5,
              start_time = $6,
              total_time = $7,
              required_skills = $8::text[],
              max_workers = $9,
              status = $10::job_status,
              closed_at = $11,
              updated_at = now()
            where id = $1::uuid
            returning {JOB_COLUMNS}
            """,
            job.id,
            job.title,
            job.description,
            job.payment,
            job.location_text,
            job.start_time,
            job.total_time,
            list(job.required_skills),
            job.max_workers,
            job.status.value,
            job.closed_at,
        )
        return self._job_from_row(row)

    async def adjust_applicant_count(self, job_id: str, delta: int) -> Job:
        row = await self.conn.fetchrow(
            f"""
            update jobs
            set applicant_count = greatest(0, applicant_count + $2), updated_at = now()
            where id = $1::uuid
            returning {JOB_COLUMNS}
            """,
            job_id,
            delta,
        )
        return self._job_from_row(row)

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
        conditions: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        if owner_id is not None:
            conditions.append(f"owner_id = {bind(owner_id)}")
        if exclude_owner_id is not None:
            conditions.append(f"owner_id <> {bind(exclude_owner_id)}")
        if status is not None:
            conditions.append(f"status = {bind(status.value)}::job_status")
        if skills:
            conditions.append(f"required_skills && {bind(list(skills))}::text[]")

        where_sql = " and ".join(conditions) if conditions else "true"
        limit_token = bind(limit)
        offset_token = bind(offset)
        rows = await self.conn.fetch(
            f"""
            select {JOB_COLUMNS}
            from jobs
            where {where_sql}
            order by seq desc
            limit {limit_token}
            offset {offset_token}
            """,
            *params,
        )
        return [self._job_from_row(row) for row in rows]

    # === Applications ===

    async def insert_application(self, application: JobApplication) -> JobApplication:
        try:
            row = await self.conn.fetchrow(
                f"""
                insert into job_applications (id, job_id, applicant_id, status, message, applied_at, updated_at)
                values ($1::uuid, $2::uuid, $3, $4::application_status, $5, coalesce($6, now()), now())
                returning {APPLICATION_COLUMNS}
                """,
                application.id,
                application.job_id,
                application.applicant_id,
                application.status.value,
                application.message,
                application.applied_at,
            )
        except pg_exc.UniqueViolationError as exc:
            if exc.constraint_name == APPLICATION_PAIR_CONSTRAINT:
                raise ConflictError(
                    ConflictReason.DUPLICATE_APPLICATION, "you have already applied for this job"
                ) from exc
            raise
        return self._application_from_row(row)

    async def get_application(self, application_id: str, *, for_update: bool = False) -> JobApplication | None:
        if not _is_uuid(application_id):
            return None
        row = await self.conn.fetchrow(
            f"""
            select {APPLICATION_COLUMNS}
            from job_applications
            where id = $1::uuid
            {_lock_clause(for_update)}
            """,
            application_id,
        )
        return self._application_from_row(row) if row is not None else None

    async def find_application(self, job_id: str, applicant_id: str) -> JobApplication | None:
        if not _is_uuid(job_id):
            return None
        row = await self.conn.fetchrow(
            f"""
            select {APPLICATION_COLUMNS}
            from job_applications
            where job_id = $1::uuid and applicant_id = $2
            """,
            job_id,
            applicant_id,
        )
        return self._application_from_row(row) if row is not None else None

    async def update_application(self, application: JobApplication) -> JobApplication:
        row = await self.conn.fetchrow(
            f"""
            update job_applications
            set
              status = $2::application_status,
              message = $3,
              accepted_at = $4,
              rejected_at = $5,
              withdrawn_at = $6,
              updated_at = now()
            where id = $1::uuid
            returning {APPLICATION_COLUMNS}
            """,
            application.id,
            application.status.value,
            application.message,
            application.accepted_at,
            application.rejected_at,
            application.withdrawn_at,
        )
        return self._application_from_row(row)

    async def reject_pending_applications(
        self, job_id: str, *, rejected_at: datetime, exclude_id: str | None = None
    ) -> int:
        status = await self.conn.execute(
            """
            update job_applications
            set status = 'Rejected', rejected_at = $2, updated_at = $2
            where job_id = $1::uuid
              and status = 'Applied'
              and ($3::uuid is null or id <> $3::uuid)
            """,
            job_id,
            rejected_at,
            exclude_id,
        )
        return _affected_rows(status)

    async def list_applications(
        self,
        *,
        job_id: str | None = None,
        applicant_id: str | None = None,
        status: ApplicationStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[JobApplication]:
        conditions: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        if job_id is not None:
            if not _is_uuid(job_id):
                return []
            conditions.append(f"job_id = {bind(job_id)}::uuid")
        if applicant_id is not None:
            conditions.append(f"applicant_id = {bind(applicant_id)}")
        if status is not None:
            conditions.append(f"status = {bind(status.value)}::application_status")

        where_sql = " and ".join(conditions) if conditions else "true"
        limit_token = bind(limit)
        offset_token = bind(offset)
        rows = await self.conn.fetch(
            f"""
            select {APPLICATION_COLUMNS}
            from job_applications
            where {where_sql}
            order by seq desc
            limit {limit_token}
            offset {offset_token}
            """,
            *params,
        )
        return [self._application_from_row(row) for row in rows]

    # === Engagements ===

    async def insert_engagement(self, engagement: AcceptedJob) -> AcceptedJob:
        try:
            row = await self.conn.fetchrow(
                f"""
                insert into accepted_jobs (
                  id,
                  job_id,
                  worker_id,
                  employer_id,
                  chat_room_id,
                  status,
                  accepted_at,
                  updated_at
                )
                values ($1::uuid, $2::uuid, $3, $4, $5, $6::engagement_status, coalesce($7, now()), now())
                returning {ENGAGEMENT_COLUMNS}
                """,
                engagement.id,
                engagement.job_id,
                engagement.worker_id,
                engagement.employer_id,
                engagement.chat_room_id,
                engagement.status.value,
                engagement.accepted_at,
            )
        except pg_exc.UniqueViolationError as exc:
            if exc.constraint_name == ENGAGEMENT_JOB_CONSTRAINT:
                raise ConflictError(
                    ConflictReason.WORKER_EXISTS, "this job already has an accepted worker"
                ) from exc
            raise
        return self._engagement_from_row(row)

    async def get_engagement(self, engagement_id: str, *, for_update: bool = False) -> AcceptedJob | None:
        if not _is_uuid(engagement_id):
            return None
        row = await self.conn.fetchrow(
            f"""
            select {ENGAGEMENT_COLUMNS}
            from accepted_jobs
            where id = $1::uuid
            {_lock_clause(for_update)}
            """,
            engagement_id,
        )
        return self._engagement_from_row(row) if row is not None else None

    async def get_engagement_for_job(self, job_id: str, *, for_update: bool = False) -> AcceptedJob | None:
        if not _is_uuid(job_id):
            return None
        row = await self.conn.fetchrow(
            f"""
            select {ENGAGEMENT_COLUMNS}
            from accepted_jobs
            where job_id = $1::uuid
            {_lock_clause(for_update)}
            """,
            job_id,
        )
        return self._engagement_from_row(row) if row is not None else None

    async def update_engagement(self, engagement: AcceptedJob) -> AcceptedJob:
        employer_rating = engagement.employer_rating
        worker_rating = engagement.worker_rating
        row = await self.conn.fetchrow(
            f"""
            update accepted_jobs
            set
              status = $2::engagement_status,
              completed_at = $3,
              cancelled_at = $4,
              cancelled_by = $5,
              cancellation_reason = $6,
              employer_rating = $7,
              employer_review = $8,
              employer_rated_at = $9,
              worker_rating = $10,
              worker_review = $11,
              worker_rated_at = $12,
              updated_at = now()
            where id = $1::uuid
            returning {ENGAGEMENT_COLUMNS}
            """,
            engagement.id,
            engagement.status.value,
            engagement.completed_at,
            engagement.cancelled_at,
            engagement.cancelled_by,
            engagement.cancellation_reason,
            employer_rating.rating if employer_rating else None,
            employer_rating.review if employer_rating else None,
            employer_rating.rated_at if employer_rating else None,
            worker_rating.rating if worker_rating else None,
            worker_rating.review if worker_rating else None,
            worker_rating.rated_at if worker_rating else None,
        )
        return self._engagement_from_row(row)

    async def list_engagements(
        self,
        *,
        worker_id: str | None = None,
        employer_id: str | None = None,
        status: EngagementStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AcceptedJob]:
        conditions: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        if worker_id is not None:
            conditions.append(f"worker_id = {bind(worker_id)}")
        if employer_id is not None:
            conditions.append(f"employer_id = {bind(employer_id)}")
        if status is not None:
            conditions.append(f"status = {bind(status.value)}::engagement_status")

        where_sql = " and ".join(conditions) if conditions else "true"
        limit_token = bind(limit)
        offset_token = bind(offset)
        rows = await self.conn.fetch(
            f"""
            select {ENGAGEMENT_COLUMNS}
            from accepted_jobs
            where {where_sql}
            order by seq desc
            limit {limit_token}
            offset {offset_token}
            """,
            *params,
        )
        return [self._engagement_from_row(row) for row in rows]

    # === Notifications ===

    async def insert_notification(self, notification: Notification) -> Notification:
        row = await self.conn.fetchrow(
            f"""
            insert into notifications (id, user_id, type, title, body, data, created_at)
            values ($1::uuid, $2, $3::notification_type, $4, $5, $6::jsonb, coalesce($7, now()))
            returning {NOTIFICATION_COLUMNS}
            """,
            notification.id,
            notification.user_id,
            notification.type.value,
            notification.title,
            notification.body,
            json.dumps(notification.data),
            notification.created_at,
        )
        return self._notification_from_row(row)

    async def mark_push_sent(self, notification_id: str) -> None:
        await self.conn.execute(
            "update notifications set push_sent = true where id = $1::uuid",
            notification_id,
        )

    async def list_notifications(
        self, user_id: str, *, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> list[Notification]:
        rows = await self.conn.fetch(
            f"""
            select {NOTIFICATION_COLUMNS}
            from notifications
            where user_id = $1 and ($2::boolean = false or is_read = false)
            order by seq desc
            limit $3
            offset $4
            """,
            user_id,
            unread_only,
            limit,
            offset,
        )
        return [self._notification_from_row(row) for row in rows]

    async def count_unread_notifications(self, user_id: str) -> int:
        count = await self.conn.fetchval(
            "select count(*) from notifications where user_id = $1 and is_read = false",
            user_id,
        )
        return int(count or 0)

    async def mark_notification_read(
        self, notification_id: str, user_id: str, *, read_at: datetime
    ) -> Notification | None:
        if not _is_uuid(notification_id):
            return None
        row = await self.conn.fetchrow(
            f"""
            update notifications
            set is_read = true, read_at = coalesce(read_at, $3)
            where id = $1::uuid and user_id = $2
            returning {NOTIFICATION_COLUMNS}
            """,
            notification_id,
            user_id,
            read_at,
        )
        return self._notification_from_row(row) if row is not None else None

    async def mark_all_notifications_read(self, user_id: str, *, read_at: datetime) -> int:
        status = await self.conn.execute(
            """
            update notifications
            set is_read = true, read_at = $2
            where user_id = $1 and is_read = false
            """,
            user_id,
            read_at,
        )
        return _affected_rows(status)

    async def purge_notifications(self, created_before: datetime) -> int:
        status = await self.conn.execute(
            "delete from notifications where created_at < $1",
            created_before,
        )
        return _affected_rows(status)

    async def delete_notification(self, notification_id: str, user_id: str) -> bool:
        if not _is_uuid(notification_id):
            return False
        status = await self.conn.execute(
            "delete from notifications where id = $1::uuid and user_id = $2",
            notification_id,
            user_id,
        )
        return _affected_rows(status) > 0

    async def delete_all_notifications(self, user_id: str) -> int:
        status = await self.conn.execute("delete from notifications where user_id = $1", user_id)
        return _affected_rows(status)

    # === Skill posts ===

    async def insert_skill_post(self, post: SkillPost) -> SkillPost:
        row = await self.conn.fetchrow(
            f"""
            insert into skill_posts (
              id,
              owner_id,
              skill,
              description,
              photo,
              price_range,
              category,
              availability,
              location_text,
              status,
              created_at,
              updated_at
            )
            values (
              $1::uuid, $2, $3, $4, $5, $6, $7, $8, $9, $10::skill_post_status,
              coalesce($11, now()), now()
            )
            returning {SKILL_POST_COLUMNS}
            """,
            post.id,
            post.owner_id,
            post.skill,
            post.description,
            post.photo,
            post.price_range,
            post.category,
            post.availability,
            post.location_text,
            post.status.value,
            post.created_at,
        )
        return self._skill_post_from_row(row)

    async def get_skill_post(self, post_id: str, *, for_update: bool = False) -> SkillPost | None:
        if not _is_uuid(post_id):
            return None
        row = await self.conn.fetchrow(
            f"""
            select {SKILL_POST_COLUMNS}
            from skill_posts
            where id = $1::uuid
            {_lock_clause(for_update)}
            """,
            post_id,
        )
        return self._skill_post_from_row(row) if row is not None else None

    async def update_skill_post(self, post: SkillPost) -> SkillPost:
        row = await self.conn.fetchrow(
            f"""
            update skill_posts
            set
              skill = $2,
              description = $3,
              photo = $4,
              price_range = $5,
              category = $6,
              availability = $7,
              status = $8::skill_post_status,
              views = $9,
              request_count = $10,
              updated_at = now()
            where id = $1::uuid
            returning {SKILL_POST_COLUMNS}
            """,
            post.id,
            post.skill,
            post.description,
            post.photo,
            post.price_range,
            post.category,
            post.availability,
            post.status.value,
            post.views,
            post.request_count,
        )
        return self._skill_post_from_row(row)

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
        conditions: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        if owner_id is not None:
            conditions.append(f"owner_id = {bind(owner_id)}")
        if statuses is not None:
            conditions.append(f"status::text = any({bind([s.value for s in statuses])}::text[])")
        if category is not None:
            conditions.append(f"lower(category) = lower({bind(category)})")
        if search:
            pattern = bind(f"%{_escape_like(search)}%")
            conditions.append(f"(skill ilike {pattern} or description ilike {pattern})")

        where_sql = " and ".join(conditions) if conditions else "true"
        limit_token = bind(limit)
        offset_token = bind(offset)
        rows = await self.conn.fetch(
            f"""
            select {SKILL_POST_COLUMNS}
            from skill_posts
            where {where_sql}
            order by seq desc
            limit {limit_token}
            offset {offset_token}
            """,
            *params,
        )
        return [self._skill_post_from_row(row) for row in rows]

    # === Row mapping ===

    @staticmethod
    def _user_from_row(row: asyncpg.Record) -> UserRecord:
        return UserRecord(
            id=row["id"],
            phone=row["phone"],
            name=row["name"],
            device_token=row["device_token"],
            rating=RatingSummary(average=float(row["rating_average"] or 0), count=int(row["rating_count"] or 0)),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _job_from_row(row: asyncpg.Record) -> Job:
        return Job(
            id=row["id"],
            owner_id=row["owner_id"],
            title=row["title"],
            description=row["description"],
            payment=row["payment"],
            location_text=row["location_text"],
            start_time=row["start_time"],
            total_time=row["total_time"],
            required_skills=list(row["required_skills"] or []),
            max_workers=row["max_workers"],
            status=JobStatus(row["status"]),
            applicant_count=row["applicant_count"],
            seq=row["seq"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            closed_at=row["closed_at"],
        )

    @staticmethod
    def _application_from_row(row: asyncpg.Record) -> JobApplication:
        return JobApplication(
            id=row["id"],
            job_id=row["job_id"],
            applicant_id=row["applicant_id"],
            status=ApplicationStatus(row["status"]),
            message=row["message"],
            seq=row["seq"],
            applied_at=row["applied_at"],
            accepted_at=row["accepted_at"],
            rejected_at=row["rejected_at"],
            withdrawn_at=row["withdrawn_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _rating_from_row(row: asyncpg.Record, prefix: str) -> RatingRecord | None:
        rating = row[f"{prefix}_rating"]
        if rating is None:
            return None
        return RatingRecord(
            rating=int(rating),
            review=row[f"{prefix}_review"] or "",
            rated_at=row[f"{prefix}_rated_at"],
        )

    @classmethod
    def _engagement_from_row(cls, row: asyncpg.Record) -> AcceptedJob:
        return AcceptedJob(
            id=row["id"],
            job_id=row["job_id"],
            worker_id=row["worker_id"],
            employer_id=row["employer_id"],
            chat_room_id=row["chat_room_id"],
            status=EngagementStatus(row["status"]),
            seq=row["seq"],
            accepted_at=row["accepted_at"],
            completed_at=row["completed_at"],
            cancelled_at=row["cancelled_at"],
            cancelled_by=row["cancelled_by"],
            cancellation_reason=row["cancellation_reason"],
            employer_rating=cls._rating_from_row(row, "employer"),
            worker_rating=cls._rating_from_row(row, "worker"),
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _notification_from_row(row: asyncpg.Record) -> Notification:
        data = row["data"]
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError:
                data = {}
        if not isinstance(data, dict):
            data = {}
        return Notification(
            id=row["id"],
            user_id=row["user_id"],
            type=NotificationType(row["type"]),
            title=row["title"],
            body=row["body"],
            data=data,
            seq=row["seq"],
            is_read=bool(row["is_read"]),
            read_at=row["read_at"],
            push_sent=bool(row["push_sent"]),
            created_at=row["created_at"],
        )

    @staticmethod
    def _skill_post_from_row(row: asyncpg.Record) -> SkillPost:
        return SkillPost(
            id=row["id"],
            owner_id=row["owner_id"],
            skill=row["skill"],
            description=row["description"],
            photo=row["photo"],
            price_range=row["price_range"],
            category=row["category"],
            availability=row["availability"],
            location_text=row["location_text"],
            status=SkillPostStatus(row["status"]),
            views=row["views"],
            request_count=row["request_count"],
            seq=row["seq"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
        command_timeout_seconds=settings.database_command_timeout_seconds,
        acquire_timeout_seconds=settings.database_acquire_timeout_seconds,
    )
