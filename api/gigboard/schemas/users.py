from datetime import datetime

from pydantic import BaseModel, Field

from gigboard.services.records import UserRecord


class UserOut(BaseModel):
    id: str
    phone: str | None = None
    name: str | None = None
    rating_average: float = 0.0
    rating_count: int = 0
    push_enabled: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserOut":
        return cls(
            id=user.id,
            phone=user.phone,
            name=user.name,
            rating_average=round(user.rating.average, 2),
            rating_count=user.rating.count,
            push_enabled=bool(user.device_token),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserPatchRequest(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    device_token: str | None = Field(default=None, max_length=4096)


class PublicUserOut(BaseModel):
    id: str
    name: str | None = None
    rating_average: float = 0.0
    rating_count: int = 0

    @classmethod
    def from_record(cls, user: UserRecord) -> "PublicUserOut":
        return cls(
            id=user.id,
            name=user.name,
            rating_average=round(user.rating.average, 2),
            rating_count=user.rating.count,
        )
