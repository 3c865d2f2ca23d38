"""Plain entity records shared by the store implementations and the services.

Records carry no transition logic: state changes live in the lifecycle engine, the
engagement manager and the rating aggregator, which receive a record plus a store
session and write the result back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    CLOSED = "Closed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class ApplicationStatus(str, Enum):
    APPLIED = "Applied"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    WITHDRAWN = "Withdrawn"


class EngagementStatus(str, Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    DISPUTED = "Disputed"


class SkillPostStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DELETED = "Deleted"


class NotificationType(str, Enum):
    JOB_REQUEST = "job_request"
    JOB_ACCEPTED = "job_accepted"
    JOB_REJECTED = "job_rejected"
    NEW_MESSAGE = "new_message"
    JOB_COMPLETED = "job_completed"
    JOB_CANCELLED = "job_cancelled"
    RATING_RECEIVED = "rating_received"
    SKILL_REQUEST = "skill_request"
    SYSTEM = "system"


TERMINAL_JOB_STATUSES = frozenset({JobStatus.CLOSED, JobStatus.CANCELLED, JobStatus.COMPLETED})

EDITABLE_JOB_FIELDS = (
    "title",
    "description",
    "payment",
    "location_text",
    "start_time",
    "total_time",
    "required_skills",
    "max_workers",
)

EDITABLE_SKILL_POST_FIELDS = (
    "skill",
    "description",
    "photo",
    "price_range",
    "category",
    "availability",
    "status",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_skills(skills: list[str] | None) -> list[str]:
    seen: list[str] = []
    for skill in skills or []:
        stripped = skill.strip()
        if stripped and stripped not in seen:
            seen.append(stripped)
    return seen


@dataclass(frozen=True, slots=True)
class RatingSummary:
    average: float = 0.0
    count: int = 0


@dataclass(frozen=True, slots=True)
class RatingRecord:
    rating: int
    review: str
    rated_at: datetime


@dataclass(slots=True)
class UserRecord:
    id: str
    phone: str | None = None
    name: str | None = None
    device_token: str | None = None
    rating: RatingSummary = field(default_factory=RatingSummary)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(slots=True)
class JobDraft:
    title: str
    description: str
    payment: str
    location_text: str
    start_time: str | None = None
    total_time: str | None = None
    required_skills: list[str] = field(default_factory=list)
    max_workers: int = 1


@dataclass(slots=True)
class Job:
    id: str
    owner_id: str
    title: str
    description: str
    payment: str
    location_text: str
    start_time: str | None = None
    total_time: str | None = None
    required_skills: list[str] = field(default_factory=list)
    max_workers: int = 1
    status: JobStatus = JobStatus.OPEN
    applicant_count: int = 0
    seq: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    closed_at: datetime | None = None


@dataclass(slots=True)
class JobApplication:
    id: str
    job_id: str
    applicant_id: str
    status: ApplicationStatus = ApplicationStatus.APPLIED
    message: str | None = None
    seq: int = 0
    applied_at: datetime | None = None
    accepted_at: datetime | None = None
    rejected_at: datetime | None = None
    withdrawn_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(slots=True)
class AcceptedJob:
    id: str
    job_id: str
    worker_id: str
    employer_id: str
    chat_room_id: str
    status: EngagementStatus = EngagementStatus.ACTIVE
    seq: int = 0
    accepted_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    employer_rating: RatingRecord | None = None
    worker_rating: RatingRecord | None = None
    updated_at: datetime | None = None

    def party_role(self, user_id: str) -> str | None:
        if user_id == self.employer_id:
            return "employer"
        if user_id == self.worker_id:
            return "worker"
        return None


@dataclass(slots=True)
class Notification:
    id: str
    user_id: str
    type: NotificationType
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)
    seq: int = 0
    is_read: bool = False
    read_at: datetime | None = None
    push_sent: bool = False
    created_at: datetime | None = None


@dataclass(slots=True)
class SkillPostDraft:
    skill: str
    description: str
    photo: str | None = None
    price_range: str = ""
    category: str = ""
    availability: str = "Available"
    location_text: str = ""


@dataclass(slots=True)
class SkillPost:
    id: str
    owner_id: str
    skill: str
    description: str
    photo: str | None = None
    price_range: str = ""
    category: str = ""
    availability: str = "Available"
    location_text: str = ""
    status: SkillPostStatus = SkillPostStatus.ACTIVE
    views: int = 0
    request_count: int = 0
    seq: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
