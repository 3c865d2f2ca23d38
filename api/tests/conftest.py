from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

import pytest

os.environ.setdefault("GB_OTEL_ENABLED", "false")
os.environ.setdefault("GB_NOTIFICATION_REAPER_ENABLED", "false")

from gigboard.services.engagements import EngagementManager  # noqa: E402
from gigboard.services.jobs import JobService  # noqa: E402
from gigboard.services.lifecycle import ApplicationLifecycleEngine  # noqa: E402
from gigboard.services.notifications import NotificationEmitter, NotificationInbox  # noqa: E402
from gigboard.services.push import PushDeliveryError  # noqa: E402
from gigboard.services.records import Job, JobDraft  # noqa: E402
from gigboard.services.skill_posts import SkillPostService  # noqa: E402
from gigboard.services.store import InMemoryStore  # noqa: E402
from gigboard.services.users import UserService  # noqa: E402

EMPLOYER = "employer-1"
WORKERS = ("worker-1", "worker-2", "worker-3")


@dataclass
class RecordingPushGateway:
    fail: bool = False
    sent: list[dict[str, Any]] = field(default_factory=list)

    async def send(self, device_token: str, title: str, body: str, data: dict[str, Any]) -> str:
        if self.fail:
            raise PushDeliveryError("push gateway responded with status 500")
        self.sent.append({"token": device_token, "title": title, "body": body, "data": data})
        return f"projects/test/messages/{len(self.sent)}"


@dataclass
class Harness:
    store: InMemoryStore
    push: RecordingPushGateway
    notifier: NotificationEmitter
    engine: ApplicationLifecycleEngine
    engagements: EngagementManager
    jobs: JobService
    users: UserService
    inbox: NotificationInbox
    skill_posts: SkillPostService

    async def seed_users(self, *user_ids: str) -> None:
        for user_id in user_ids or (EMPLOYER, *WORKERS):
            await self.users.ensure(user_id, phone=None)

    async def open_job(self, owner_id: str = EMPLOYER, title: str = "Fix the fence", **extra: Any) -> Job:
        draft = JobDraft(title=title, description="Two panels", payment="500", location_text="Pune", **extra)
        return await self.jobs.create(owner_id, draft)

    async def notifications_for(self, user_id: str) -> list[Any]:
        return await self.inbox.list_for_user(user_id)


@pytest.fixture
def harness() -> Harness:
    store = InMemoryStore(lock_timeout_seconds=2.0)
    push = RecordingPushGateway()
    notifier = NotificationEmitter(store, push)
    return Harness(
        store=store,
        push=push,
        notifier=notifier,
        engine=ApplicationLifecycleEngine(store, notifier),
        engagements=EngagementManager(store, notifier),
        jobs=JobService(store),
        users=UserService(store),
        inbox=NotificationInbox(store),
        skill_posts=SkillPostService(store, notifier),
    )
