from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from gigboard.services.records import Notification


class NotificationOut(BaseModel):
    id: str
    type: str
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    read_at: datetime | None = None
    push_sent: bool
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, notification: Notification) -> "NotificationOut":
        return cls(
            id=notification.id,
            type=notification.type.value,
            title=notification.title,
            body=notification.body,
            data=dict(notification.data),
            is_read=notification.is_read,
            read_at=notification.read_at,
            push_sent=notification.push_sent,
            created_at=notification.created_at,
        )


class UnreadCountOut(BaseModel):
    count: int


class MarkAllReadOut(BaseModel):
    updated: int


class DeleteAllOut(BaseModel):
    deleted: int
