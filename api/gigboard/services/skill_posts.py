"""Skill posts: workers advertise a skill and employers send job requests against it."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import uuid4

from gigboard.services.errors import ConflictError, ConflictReason, ForbiddenError, InvalidInputError, NotFoundError
from gigboard.services.notifications import NotificationEmitter
from gigboard.services.records import (
    EDITABLE_SKILL_POST_FIELDS,
    NotificationType,
    SkillPost,
    SkillPostDraft,
    SkillPostStatus,
    utc_now,
)
from gigboard.services.store import Store

logger = logging.getLogger(__name__)

MAX_REQUEST_MESSAGE_LENGTH = 500
VISIBLE_TO_OWNER = (SkillPostStatus.ACTIVE, SkillPostStatus.INACTIVE)


class SkillPostService:
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

    async def create(self, owner_id: str, draft: SkillPostDraft) -> SkillPost:
        skill = draft.skill.strip()
        if not skill:
            raise InvalidInputError("skill must not be blank")
        post = SkillPost(
            id=str(uuid4()),
            owner_id=owner_id,
            skill=skill,
            description=draft.description.strip(),
            photo=draft.photo or None,
            price_range=draft.price_range.strip(),
            category=draft.category.strip(),
            availability=draft.availability.strip() or "Available",
            location_text=draft.location_text.strip(),
            created_at=self.clock(),
        )
        async with self.store.transaction() as session:
            post = await session.insert_skill_post(post)
        logger.info("skill post created id=%s owner=%s", post.id, owner_id)
        return post

    async def list_active(
        self,
        *,
        category: str | None = None,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[SkillPost]:
        async with self.store.transaction() as session:
            return await session.list_skill_posts(
                statuses=(SkillPostStatus.ACTIVE,),
                category=(category or "").strip() or None,
                search=(search or "").strip() or None,
                limit=limit,
                offset=offset,
            )

    async def list_for_owner(self, owner_id: str, *, limit: int = 50, offset: int = 0) -> list[SkillPost]:
        async with self.store.transaction() as session:
            return await session.list_skill_posts(
                owner_id=owner_id, statuses=VISIBLE_TO_OWNER, limit=limit, offset=offset
            )

    async def view(self, post_id: str) -> SkillPost:
        """Return a post and count the view."""
        async with self.store.transaction() as session:
            post = await session.get_skill_post(post_id, for_update=True)
            if post is None or post.status is SkillPostStatus.DELETED:
                raise NotFoundError("skill post not found")
            post.views += 1
            return await session.update_skill_post(post)

    async def update(self, post_id: str, caller_id: str, changes: dict[str, Any]) -> SkillPost:
        unknown = set(changes) - set(EDITABLE_SKILL_POST_FIELDS)
        if unknown:
            raise InvalidInputError(f"fields not editable: {sorted(unknown)}")
        if "skill" in changes:
            changes = {**changes, "skill": (changes["skill"] or "").strip()}
            if not changes["skill"]:
                raise InvalidInputError("skill must not be blank")
        if "status" in changes:
            try:
                status = SkillPostStatus(changes["status"])
            except ValueError as exc:
                raise InvalidInputError(f"unknown skill post status: {changes['status']}") from exc
            if status is SkillPostStatus.DELETED:
                raise InvalidInputError("use delete to remove a skill post")
            changes = {**changes, "status": status}

        async with self.store.transaction() as session:
            post = await session.get_skill_post(post_id, for_update=True)
            if post is None or post.status is SkillPostStatus.DELETED:
                raise NotFoundError("skill post not found")
            if post.owner_id != caller_id:
                raise ForbiddenError("not authorized to update this post")
            for name, value in changes.items():
                setattr(post, name, value)
            post = await session.update_skill_post(post)

        logger.info("skill post updated id=%s fields=%s", post.id, sorted(changes))
        return post

    async def delete(self, post_id: str, caller_id: str) -> SkillPost:
        async with self.store.transaction() as session:
            post = await session.get_skill_post(post_id, for_update=True)
            if post is None:
                raise NotFoundError("skill post not found")
            if post.owner_id != caller_id:
                raise ForbiddenError("not authorized to delete this post")
            post.status = SkillPostStatus.DELETED
            post = await session.update_skill_post(post)

        logger.info("skill post deleted id=%s", post.id)
        return post

    async def request_job(self, post_id: str, requester_id: str, message: str | None = None) -> SkillPost:
        text = (message or "").strip()
        if len(text) > MAX_REQUEST_MESSAGE_LENGTH:
            raise InvalidInputError(f"message cannot exceed {MAX_REQUEST_MESSAGE_LENGTH} characters")

        async with self.store.transaction() as session:
            post = await session.get_skill_post(post_id, for_update=True)
            if post is None or post.status is not SkillPostStatus.ACTIVE:
                raise NotFoundError("skill post not found")
            if post.owner_id == requester_id:
                raise ConflictError(ConflictReason.OWN_POST, "cannot request from your own post")
            post.request_count += 1
            post = await session.update_skill_post(post)
            requester = await session.get_user(requester_id)

        logger.info("skill request sent post=%s from=%s", post.id, requester_id)
        requester_name = requester.name if requester is not None and requester.name else "Someone"
        await self.notifier.notify(
            post.owner_id,
            NotificationType.SKILL_REQUEST,
            "New Job Request",
            f'{requester_name} is interested in your "{post.skill}" skill',
            {"skillPostId": post.id, "fromUserId": requester_id, "message": text or None},
        )
        return post
