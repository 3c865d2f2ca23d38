from fastapi import Depends

from gigboard.core.config import Settings, get_settings
from gigboard.services.engagements import EngagementManager
from gigboard.services.jobs import JobService
from gigboard.services.lifecycle import ApplicationLifecycleEngine
from gigboard.services.notifications import NotificationEmitter, NotificationInbox
from gigboard.services.push import build_push_gateway
from gigboard.services.repository import get_repository
from gigboard.services.skill_posts import SkillPostService
from gigboard.services.users import UserService


def get_notification_emitter(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
) -> NotificationEmitter:
    return NotificationEmitter(repository, build_push_gateway(settings))


def get_lifecycle_engine(
    repository=Depends(get_repository),
    notifier: NotificationEmitter = Depends(get_notification_emitter),
) -> ApplicationLifecycleEngine:
    return ApplicationLifecycleEngine(repository, notifier)


def get_engagement_manager(
    repository=Depends(get_repository),
    notifier: NotificationEmitter = Depends(get_notification_emitter),
) -> EngagementManager:
    return EngagementManager(repository, notifier)


def get_job_service(repository=Depends(get_repository)) -> JobService:
    return JobService(repository)


def get_user_service(repository=Depends(get_repository)) -> UserService:
    return UserService(repository)


def get_inbox(repository=Depends(get_repository)) -> NotificationInbox:
    return NotificationInbox(repository)


def get_skill_post_service(
    repository=Depends(get_repository),
    notifier: NotificationEmitter = Depends(get_notification_emitter),
) -> SkillPostService:
    return SkillPostService(repository, notifier)
