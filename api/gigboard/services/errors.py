from enum import Enum


class ConflictReason(str, Enum):
    JOB_CLOSED = "JOB_CLOSED"
    OWN_JOB = "OWN_JOB"
    DUPLICATE_APPLICATION = "DUPLICATE_APPLICATION"
    ALREADY_PROCESSED = "ALREADY_PROCESSED"
    WORKER_EXISTS = "WORKER_EXISTS"
    CANNOT_WITHDRAW = "CANNOT_WITHDRAW"
    ALREADY_RATED = "ALREADY_RATED"
    JOB_NOT_COMPLETED = "JOB_NOT_COMPLETED"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    JOB_NOT_ACTIVE = "JOB_NOT_ACTIVE"
    JOB_NOT_EDITABLE = "JOB_NOT_EDITABLE"
    ENGAGEMENT_DISPUTED = "ENGAGEMENT_DISPUTED"
    OWN_POST = "OWN_POST"


class LifecycleError(Exception):
    """Base error for lifecycle operations."""


class UnavailableError(LifecycleError):
    """Raised when the store is unavailable, not configured or timed out."""


class NotFoundError(LifecycleError):
    """Raised when a referenced entity does not exist."""


class ForbiddenError(LifecycleError):
    """Raised when the caller does not own the entity or play the required role."""


class InvalidInputError(LifecycleError):
    """Raised when an argument fails validation before any write."""


class ConflictError(LifecycleError):
    """Raised when an operation would violate a lifecycle invariant."""

    def __init__(self, reason: ConflictReason, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or reason.value.lower().replace("_", " "))
