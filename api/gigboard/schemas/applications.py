from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from gigboard.schemas.engagements import EngagementOut
from gigboard.schemas.jobs import JobOut
from gigboard.services.lifecycle import Acceptance
from gigboard.services.records import JobApplication

ApplicationStatusName = Literal["Applied", "Accepted", "Rejected", "Withdrawn"]


class ApplicationCreateRequest(BaseModel):
    job_id: str = Field(min_length=1)
    message: str | None = Field(default=None, max_length=500)


class ApplicationOut(BaseModel):
    id: str
    job_id: str
    applicant_id: str
    status: ApplicationStatusName
    message: str | None = None
    applied_at: datetime | None = None
    accepted_at: datetime | None = None
    rejected_at: datetime | None = None
    withdrawn_at: datetime | None = None

    @classmethod
    def from_record(cls, application: JobApplication) -> "ApplicationOut":
        return cls(
            id=application.id,
            job_id=application.job_id,
            applicant_id=application.applicant_id,
            status=application.status.value,
            message=application.message,
            applied_at=application.applied_at,
            accepted_at=application.accepted_at,
            rejected_at=application.rejected_at,
            withdrawn_at=application.withdrawn_at,
        )


class AcceptOut(BaseModel):
    application: ApplicationOut
    engagement: EngagementOut
    job: JobOut
    rejected_applications: int

    @classmethod
    def from_result(cls, result: Acceptance) -> "AcceptOut":
        return cls(
            application=ApplicationOut.from_record(result.application),
            engagement=EngagementOut.from_record(result.engagement),
            job=JobOut.from_record(result.job),
            rejected_applications=result.rejected_count,
        )
