"""Engagement manager: completion, job-cancellation cascade and rating exchange."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from gigboard.core.telemetry import lifecycle_span
from gigboard.services.errors import (
    ConflictError,
    ConflictReason,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from gigboard.services.notifications import NotificationEmitter
from gigboard.services.ratings import record_rating, validate_rating
from gigboard.services.records import (
    AcceptedJob,
    EngagementStatus,
    Job,
    JobStatus,
    NotificationType,
    RatingRecord,
    RatingSummary,
    utc_now,
)
from gigboard.services.store import Store

logger = logging.getLogger(__name__)

DEFAULT_CANCELLATION_REASON = "Job cancelled by employer"
MAX_REVIEW_LENGTH = 500

EngagementRole = Literal["worker", "employer"]


@dataclass(slots=True)
class Cancellation:
    job: Job
    engagement: AcceptedJob | None
    rejected_count: int


@dataclass(slots=True)
class RatingOutcome:
    engagement: AcceptedJob
    rated_user_id: str
    summary: RatingSummary


class EngagementManager:
    def __init__(
        self,
        store: Store,
        notifier: NotificationEmitter,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.clock = clock

    async def complete(self, accepted_job_id: str, caller_id: str) -> AcceptedJob:
        with lifecycle_span("complete", accepted_job_id=accepted_job_id):
            async with self.store.transaction() as session:
                engagement = await session.get_engagement(accepted_job_id)
                if engagement is None:
                    raise NotFoundError("accepted job not found")
                job = await session.get_job(engagement.job_id, for_update=True)
                engagement = await session.get_engagement(accepted_job_id, for_update=True)
                if job is None or engagement is None:
                    raise NotFoundError("accepted job not found")
                if engagement.employer_id != caller_id:
                    raise ForbiddenError("only the employer can complete this job")
                if engagement.status is not EngagementStatus.ACTIVE:
                    raise ConflictError(ConflictReason.JOB_NOT_ACTIVE, "job is not active")

                now = self.clock()
                engagement.status = EngagementStatus.COMPLETED
                engagement.completed_at = now
                engagement = await session.update_engagement(engagement)
                job.status = JobStatus.COMPLETED
                job.closed_at = now
                job = await session.update_job(job)

        logger.info("engagement completed id=%s job=%s", engagement.id, job.id)
        await self.notifier.notify(
            engagement.worker_id,
            NotificationType.JOB_COMPLETED,
            "Job Completed",
            f'The job "{job.title}" has been marked as completed',
            {"jobId": job.id, "acceptedJobId": engagement.id},
        )
        return engagement

    async def cancel_by_job(self, job_id: str, caller_id: str, reason: str | None = None) -> Cancellation:
        with lifecycle_span("cancel_by_job", job_id=job_id):
            async with self.store.transaction() as session:
                job = await session.get_job(job_id, for_update=True)
                if job is None:
                    raise NotFoundError("job not found")
                if job.owner_id != caller_id:
                    raise ForbiddenError("not authorized to cancel this job")
                if job.status is JobStatus.CANCELLED:
                    raise ConflictError(ConflictReason.ALREADY_CANCELLED, "job is already cancelled")
                if job.status in (JobStatus.CLOSED, JobStatus.COMPLETED):
                    raise ConflictError(
                        ConflictReason.JOB_NOT_EDITABLE, f"cannot cancel a {job.status.value.lower()} job"
                    )

                engagement = await session.get_engagement_for_job(job_id, for_update=True)
                if engagement is not None and engagement.status is EngagementStatus.DISPUTED:
                    raise ConflictError(
                        ConflictReason.ENGAGEMENT_DISPUTED, "cannot cancel a job whose engagement is disputed"
                    )

                now = self.clock()
                job.status = JobStatus.CANCELLED
                job.closed_at = now
                job = await session.update_job(job)
                rejected_count = await session.reject_pending_applications(job_id, rejected_at=now)

                cancelled: AcceptedJob | None = None
                if engagement is not None and engagement.status is EngagementStatus.ACTIVE:
                    engagement.status = EngagementStatus.CANCELLED
                    engagement.cancelled_at = now
                    engagement.cancelled_by = caller_id
                    engagement.cancellation_reason = (reason or "").strip() or DEFAULT_CANCELLATION_REASON
                    cancelled = await session.update_engagement(engagement)
                    engagement = cancelled

        logger.info(
            "job cancelled id=%s rejected_applications=%s engagement_cancelled=%s",
            job.id,
            rejected_count,
            cancelled is not None,
        )
        if cancelled is not None:
            await self.notifier.notify(
                cancelled.worker_id,
                NotificationType.JOB_CANCELLED,
                "Job Cancelled",
                f'The job "{job.title}" has been cancelled by the employer',
                {"jobId": job.id, "acceptedJobId": cancelled.id, "fromUserId": caller_id},
            )
        return Cancellation(job=job, engagement=engagement, rejected_count=rejected_count)

    async def rate(
        self,
        accepted_job_id: str,
        caller_id: str,
        rating: int,
        review: str | None = None,
    ) -> RatingOutcome:
        validate_rating(rating)
        review_text = (review or "").strip()
        if len(review_text) > MAX_REVIEW_LENGTH:
            raise InvalidInputError(f"review cannot exceed {MAX_REVIEW_LENGTH} characters")

        with lifecycle_span("rate", accepted_job_id=accepted_job_id, rater_id=caller_id):
            async with self.store.transaction() as session:
                engagement = await session.get_engagement(accepted_job_id, for_update=True)
                if engagement is None:
                    raise NotFoundError("accepted job not found")
                if engagement.status is not EngagementStatus.COMPLETED:
                    raise ConflictError(ConflictReason.JOB_NOT_COMPLETED, "can only rate completed jobs")

                role = engagement.party_role(caller_id)
                if role is None:
                    raise ForbiddenError("not authorized to rate this job")

                record = RatingRecord(rating=rating, review=review_text, rated_at=self.clock())
                if role == "employer":
                    if engagement.employer_rating is not None:
                        raise ConflictError(ConflictReason.ALREADY_RATED, "you have already rated this job")
                    engagement.employer_rating = record
                    rated_user_id = engagement.worker_id
                else:
                    if engagement.worker_rating is not None:
                        raise ConflictError(ConflictReason.ALREADY_RATED, "you have already rated this job")
                    engagement.worker_rating = record
                    rated_user_id = engagement.employer_id

                engagement = await session.update_engagement(engagement)
                summary = await record_rating(session, rated_user_id, rating)

        logger.info(
            "engagement rated id=%s by=%s rated_user=%s rating=%s",
            engagement.id,
            role,
            rated_user_id,
            rating,
        )
        await self.notifier.notify(
            rated_user_id,
            NotificationType.RATING_RECEIVED,
            "New Rating",
            f"You received a {rating}-star rating",
            {"jobId": engagement.job_id, "acceptedJobId": engagement.id, "fromUserId": caller_id},
        )
        return RatingOutcome(engagement=engagement, rated_user_id=rated_user_id, summary=summary)

    async def list_for_user(
        self,
        user_id: str,
        *,
        role: EngagementRole = "worker",
        status: EngagementStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AcceptedJob]:
        async with self.store.transaction() as session:
            if role == "employer":
                return await session.list_engagements(employer_id=user_id, status=status, limit=limit, offset=offset)
            return await session.list_engagements(worker_id=user_id, status=status, limit=limit, offset=offset)
