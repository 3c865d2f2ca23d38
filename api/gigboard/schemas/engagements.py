from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from gigboard.services.engagements import RatingOutcome
from gigboard.services.records import AcceptedJob, RatingRecord

EngagementStatusName = Literal["Active", "Completed", "Cancelled", "Disputed"]


class RatingOut(BaseModel):
    rating: int
    review: str = ""
    rated_at: datetime

    @classmethod
    def from_record(cls, record: RatingRecord | None) -> "RatingOut | None":
        if record is None:
            return None
        return cls(rating=record.rating, review=record.review, rated_at=record.rated_at)


class EngagementOut(BaseModel):
    id: str
    job_id: str
    worker_id: str
    employer_id: str
    chat_room_id: str
    status: EngagementStatusName
    accepted_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    employer_rating: RatingOut | None = None
    worker_rating: RatingOut | None = None

    @classmethod
    def from_record(cls, engagement: AcceptedJob) -> "EngagementOut":
        return cls(
            id=engagement.id,
            job_id=engagement.job_id,
            worker_id=engagement.worker_id,
            employer_id=engagement.employer_id,
            chat_room_id=engagement.chat_room_id,
            status=engagement.status.value,
            accepted_at=engagement.accepted_at,
            completed_at=engagement.completed_at,
            cancelled_at=engagement.cancelled_at,
            cancelled_by=engagement.cancelled_by,
            cancellation_reason=engagement.cancellation_reason,
            employer_rating=RatingOut.from_record(engagement.employer_rating),
            worker_rating=RatingOut.from_record(engagement.worker_rating),
        )


class RatingRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    review: str | None = Field(default=None, max_length=500)


class RatingResultOut(BaseModel):
    engagement: EngagementOut
    rated_user_id: str
    rating_average: float
    rating_count: int

    @classmethod
    def from_result(cls, result: RatingOutcome) -> "RatingResultOut":
        return cls(
            engagement=EngagementOut.from_record(result.engagement),
            rated_user_id=result.rated_user_id,
            rating_average=round(result.summary.average, 2),
            rating_count=result.summary.count,
        )
