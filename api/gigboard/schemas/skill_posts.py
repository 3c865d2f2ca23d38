from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from gigboard.services.records import SkillPost, SkillPostDraft


class SkillPostCreateRequest(BaseModel):
    skill: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=1000)
    photo: str | None = Field(default=None, max_length=2048)
    price_range: str = Field(default="", max_length=100)
    category: str = Field(default="", max_length=100)
    availability: str = Field(default="Available", max_length=100)
    location_text: str = Field(default="", max_length=300)

    def to_draft(self) -> SkillPostDraft:
        return SkillPostDraft(**self.model_dump())


class SkillPostUpdateRequest(BaseModel):
    skill: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    photo: str | None = Field(default=None, max_length=2048)
    price_range: str | None = Field(default=None, max_length=100)
    category: str | None = Field(default=None, max_length=100)
    availability: str | None = Field(default=None, max_length=100)
    status: Literal["Active", "Inactive"] | None = None

    def to_changes(self) -> dict[str, Any]:
        # photo is the only field that can be cleared with an explicit null.
        return {
            name: value
            for name, value in self.model_dump(exclude_unset=True).items()
            if value is not None or name == "photo"
        }


class SkillRequestRequest(BaseModel):
    message: str | None = Field(default=None, max_length=500)


class SkillPostOut(BaseModel):
    id: str
    owner_id: str
    skill: str
    description: str
    photo: str | None = None
    price_range: str
    category: str
    availability: str
    location_text: str
    status: Literal["Active", "Inactive", "Deleted"]
    views: int
    request_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, post: SkillPost) -> "SkillPostOut":
        return cls(
            id=post.id,
            owner_id=post.owner_id,
            skill=post.skill,
            description=post.description,
            photo=post.photo,
            price_range=post.price_range,
            category=post.category,
            availability=post.availability,
            location_text=post.location_text,
            status=post.status.value,
            views=post.views,
            request_count=post.request_count,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )
