from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from gigboard.schemas.engagements import EngagementOut
from gigboard.services.engagements import Cancellation
from gigboard.services.records import Job, JobDraft

JobStatusName = Literal["Open", "InProgress", "Closed", "Cancelled", "Completed"]


class JobCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    payment: str = Field(min_length=1, max_length=100)
    location_text: str = Field(min_length=1, max_length=300)
    start_time: str | None = Field(default=None, max_length=100)
    total_time: str | None = Field(default=None, max_length=100)
    required_skills: list[str] = Field(default_factory=list, max_length=20)
    max_workers: int = Field(default=1, ge=1)

    def to_draft(self) -> JobDraft:
        return JobDraft(**self.model_dump())


class JobUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    payment: str | None = Field(default=None, min_length=1, max_length=100)
    location_text: str | None = Field(default=None, min_length=1, max_length=300)
    start_time: str | None = Field(default=None, max_length=100)
    total_time: str | None = Field(default=None, max_length=100)
    required_skills: list[str] | None = Field(default=None, max_length=20)
    max_workers: int | None = Field(default=None, ge=1)

    def to_changes(self) -> dict[str, Any]:
        # Only start_time and total_time can be cleared with an explicit null.
        return {
            name: value
            for name, value in self.model_dump(exclude_unset=True).items()
            if value is not None or name in {"start_time", "total_time"}
        }


class JobOut(BaseModel):
    id: str
    owner_id: str
    title: str
    description: str
    payment: str
    location_text: str
    start_time: str | None = None
    total_time: str | None = None
    required_skills: list[str] = Field(default_factory=list)
    max_workers: int
    status: JobStatusName
    applicant_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    closed_at: datetime | None = None

    @classmethod
    def from_record(cls, job: Job) -> "JobOut":
        return cls(
            id=job.id,
            owner_id=job.owner_id,
            title=job.title,
            description=job.description,
            payment=job.payment,
            location_text=job.location_text,
            start_time=job.start_time,
            total_time=job.total_time,
            required_skills=list(job.required_skills),
            max_workers=job.max_workers,
            status=job.status.value,
            applicant_count=job.applicant_count,
            created_at=job.created_at,
            updated_at=job.updated_at,
            closed_at=job.closed_at,
        )


class JobCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class JobCancelOut(BaseModel):
    job: JobOut
    engagement: EngagementOut | None = None
    rejected_applications: int

    @classmethod
    def from_result(cls, result: Cancellation) -> "JobCancelOut":
        return cls(
            job=JobOut.from_record(result.job),
            engagement=EngagementOut.from_record(result.engagement) if result.engagement is not None else None,
            rejected_applications=result.rejected_count,
        )
