"""Application lifecycle engine.

Owns the ``JobApplication`` transitions (apply, withdraw, accept, reject) and the
accept protocol that also moves the job to ``InProgress`` and creates its single
``AcceptedJob``. Each operation runs its checks and writes in one store
transaction and emits notifications only after that transaction has committed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from gigboard.core.telemetry import lifecycle_span
from gigboard.services.errors import ConflictError, ConflictReason, ForbiddenError, NotFoundError
from gigboard.services.notifications import NotificationEmitter
from gigboard.services.records import (
    AcceptedJob,
    ApplicationStatus,
    Job,
    JobApplication,
    JobStatus,
    NotificationType,
    utc_now,
)
from gigboard.services.store import Store, StoreSession

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Acceptance:
    application: JobApplication
    engagement: AcceptedJob
    job: Job
    rejected_count: int


def new_chat_room_id(job_id: str) -> str:
    return f"chat_{job_id}_{uuid4().hex[:12]}"


class ApplicationLifecycleEngine:
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

    async def apply(self, job_id: str, applicant_id: str, message: str | None = None) -> JobApplication:
        with lifecycle_span("apply", job_id=job_id, applicant_id=applicant_id):
            async with self.store.transaction() as session:
                job = await session.get_job(job_id, for_update=True)
                if job is None:
                    raise NotFoundError("job not found")
                if job.status is not JobStatus.OPEN:
                    raise ConflictError(ConflictReason.JOB_CLOSED, "this job is no longer accepting applications")
                if job.owner_id == applicant_id:
                    raise ConflictError(ConflictReason.OWN_JOB, "cannot apply to your own job")
                if await session.find_application(job_id, applicant_id) is not None:
                    raise ConflictError(
                        ConflictReason.DUPLICATE_APPLICATION, "you have already applied for this job"
                    )

                application = await session.insert_application(
                    JobApplication(
                        id=str(uuid4()),
                        job_id=job_id,
                        applicant_id=applicant_id,
                        message=(message or "").strip() or None,
                        applied_at=self.clock(),
                    )
                )
                job = await session.adjust_applicant_count(job_id, 1)
                applicant = await session.get_user(applicant_id)

        logger.info("application created id=%s job=%s applicant=%s", application.id, job_id, applicant_id)
        applicant_name = applicant.name if applicant is not None and applicant.name else "Someone"
        await self.notifier.notify(
            job.owner_id,
            NotificationType.JOB_REQUEST,
            "New Job Application",
            f'{applicant_name} applied for "{job.title}"',
            {"jobId": job.id, "applicationId": application.id, "fromUserId": applicant_id},
        )
        return application

    async def withdraw(self, application_id: str, caller_id: str) -> JobApplication:
        async with self.store.transaction() as session:
            application, _ = await self._lock_application(session, application_id)
            if application.applicant_id != caller_id:
                raise ForbiddenError("not authorized to withdraw this application")
            if application.status is not ApplicationStatus.APPLIED:
                raise ConflictError(ConflictReason.CANNOT_WITHDRAW, "can only withdraw pending applications")

            application.status = ApplicationStatus.WITHDRAWN
            application.withdrawn_at = self.clock()
            application = await session.update_application(application)
            await session.adjust_applicant_count(application.job_id, -1)

        logger.info("application withdrawn id=%s job=%s", application.id, application.job_id)
        return application

    async def accept(self, application_id: str, caller_id: str) -> Acceptance:
        with lifecycle_span("accept", application_id=application_id) as span:
            async with self.store.transaction() as session:
                application, job = await self._lock_application(session, application_id)
                if job.owner_id != caller_id:
                    raise ForbiddenError("not authorized to handle this application")
                if await session.get_engagement_for_job(job.id) is not None:
                    raise ConflictError(ConflictReason.WORKER_EXISTS, "this job already has an accepted worker")
                if application.status is not ApplicationStatus.APPLIED:
                    raise ConflictError(
                        ConflictReason.ALREADY_PROCESSED,
                        f"application has already been {application.status.value.lower()}",
                    )
                if job.status is not JobStatus.OPEN:
                    raise ConflictError(ConflictReason.JOB_CLOSED, "this job is no longer accepting applications")

                now = self.clock()
                application.status = ApplicationStatus.ACCEPTED
                application.accepted_at = now
                application = await session.update_application(application)

                # The unique job_id key on accepted jobs is the exclusivity gate.
                engagement = await session.insert_engagement(
                    AcceptedJob(
                        id=str(uuid4()),
                        job_id=job.id,
                        worker_id=application.applicant_id,
                        employer_id=caller_id,
                        chat_room_id=new_chat_room_id(job.id),
                        accepted_at=now,
                    )
                )

                job.status = JobStatus.IN_PROGRESS
                job = await session.update_job(job)
                rejected_count = await session.reject_pending_applications(
                    job.id, rejected_at=now, exclude_id=application.id
                )
            span.set_attribute("gigboard.applications.rejected", rejected_count)

        logger.info(
            "application accepted id=%s job=%s engagement=%s rejected_siblings=%s",
            application.id,
            job.id,
            engagement.id,
            rejected_count,
        )
        await self.notifier.notify(
            application.applicant_id,
            NotificationType.JOB_ACCEPTED,
            "Application Accepted!",
            f'Your application for "{job.title}" has been accepted',
            {
                "jobId": job.id,
                "applicationId": application.id,
                "acceptedJobId": engagement.id,
                "chatRoomId": engagement.chat_room_id,
            },
        )
        return Acceptance(application=application, engagement=engagement, job=job, rejected_count=rejected_count)

    async def reject(self, application_id: str, caller_id: str) -> JobApplication:
        async with self.store.transaction() as session:
            application, job = await self._lock_application(session, application_id)
            if job.owner_id != caller_id:
                raise ForbiddenError("not authorized to handle this application")
            if application.status is not ApplicationStatus.APPLIED:
                raise ConflictError(
                    ConflictReason.ALREADY_PROCESSED,
                    f"application has already been {application.status.value.lower()}",
                )

            application.status = ApplicationStatus.REJECTED
            application.rejected_at = self.clock()
            application = await session.update_application(application)

        logger.info("application rejected id=%s job=%s", application.id, job.id)
        await self.notifier.notify(
            application.applicant_id,
            NotificationType.JOB_REJECTED,
            "Application Update",
            f'Your application for "{job.title}" was not selected',
            {"jobId": job.id, "applicationId": application.id},
        )
        return application

    async def list_for_applicant(
        self,
        applicant_id: str,
        *,
        status: ApplicationStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[JobApplication]:
        async with self.store.transaction() as session:
            return await session.list_applications(
                applicant_id=applicant_id, status=status, limit=limit, offset=offset
            )

    @staticmethod
    async def _lock_application(session: StoreSession, application_id: str) -> tuple[JobApplication, Job]:
        application = await session.get_application(application_id)
        if application is None:
            raise NotFoundError("application not found")
        job = await session.get_job(application.job_id, for_update=True)
        if job is None:
            raise NotFoundError("job not found")
        # Re-read under lock: the job row lock serializes deciders on this job.
        application = await session.get_application(application_id, for_update=True)
        if application is None:
            raise NotFoundError("application not found")
        return application, job
