from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from gigboard.services.errors import LifecycleError, NotFoundError
from gigboard.services.push import PushDeliveryError, PushGateway
from gigboard.services.records import Notification, NotificationType, utc_now
from gigboard.services.store import Store

logger = logging.getLogger(__name__)


class NotificationEmitter:
    """Records in-app notifications and makes one push attempt per notification.

    Nothing raised here reaches the caller: notifications are advisory and sit
    outside the transaction of the transition that triggered them.
    """

    def __init__(self, store: Store, push_gateway: PushGateway | None = None) -> None:
        self.store = store
        self.push_gateway = push_gateway

    async def notify(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> Notification | None:
        payload = {key: value for key, value in (data or {}).items() if value is not None}
        try:
            async with self.store.transaction() as session:
                notification = await session.insert_notification(
                    Notification(
                        id=str(uuid4()),
                        user_id=user_id,
                        type=notification_type,
                        title=title,
                        body=body,
                        data=payload,
                    )
                )
                recipient = await session.get_user(user_id)
        except LifecycleError as exc:
            logger.warning(
                "notification not recorded user=%s type=%s: %s",
                user_id,
                notification_type.value,
                exc,
            )
            return None

        device_token = recipient.device_token if recipient is not None else None
        if not device_token or self.push_gateway is None:
            return notification

        try:
            message_id = await self.push_gateway.send(
                device_token,
                title,
                body,
                {"type": notification_type.value, **payload},
            )
        except PushDeliveryError as exc:
            logger.warning("push delivery failed notification=%s user=%s: %s", notification.id, user_id, exc)
            return notification
        except Exception:
            logger.exception("push delivery crashed notification=%s user=%s", notification.id, user_id)
            return notification

        logger.info("push sent notification=%s message_id=%s", notification.id, message_id)
        try:
            async with self.store.transaction() as session:
                await session.mark_push_sent(notification.id)
        except LifecycleError as exc:
            logger.warning("push_sent flag not recorded notification=%s: %s", notification.id, exc)
            return notification

        notification.push_sent = True
        return notification


class NotificationInbox:
    def __init__(self, store: Store) -> None:
        self.store = store

    async def list_for_user(
        self, user_id: str, *, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> list[Notification]:
        async with self.store.transaction() as session:
            return await session.list_notifications(user_id, unread_only=unread_only, limit=limit, offset=offset)

    async def unread_count(self, user_id: str) -> int:
        async with self.store.transaction() as session:
            return await session.count_unread_notifications(user_id)

    async def mark_read(self, notification_id: str, user_id: str) -> Notification:
        async with self.store.transaction() as session:
            notification = await session.mark_notification_read(notification_id, user_id, read_at=utc_now())
        if notification is None:
            raise NotFoundError("notification not found")
        return notification

    async def mark_all_read(self, user_id: str) -> int:
        async with self.store.transaction() as session:
            return await session.mark_all_notifications_read(user_id, read_at=utc_now())

    async def delete(self, notification_id: str, user_id: str) -> None:
        # Another user's notification is reported as missing, same as mark_read.
        async with self.store.transaction() as session:
            deleted = await session.delete_notification(notification_id, user_id)
        if not deleted:
            raise NotFoundError("notification not found")

    async def delete_all(self, user_id: str) -> int:
        async with self.store.transaction() as session:
            return await session.delete_all_notifications(user_id)
