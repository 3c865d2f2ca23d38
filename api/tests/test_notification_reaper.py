from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from gigboard.core.config import Settings
from gigboard.jobs import notification_reaper
from gigboard.jobs.notification_reaper import (
    purge_expired_notifications,
    retention_cutoff,
    run_notification_reaper,
)
from gigboard.services.records import Notification, NotificationType
from gigboard.services.store import InMemoryStore

NOW = datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)


def _notification(notification_id: str, age: timedelta) -> Notification:
    return Notification(
        id=notification_id,
        user_id="user-1",
        type=NotificationType.SYSTEM,
        title=notification_id,
        body="",
        created_at=NOW - age,
    )


def test_retention_cutoff() -> None:
    assert retention_cutoff(NOW, 30) == NOW - timedelta(days=30)
    assert retention_cutoff(NOW, 0) == NOW - timedelta(days=1)


def test_purge_expired_notifications_keeps_recent_rows() -> None:
    async def scenario() -> list[str]:
        store = InMemoryStore()
        async with store.transaction() as session:
            await session.insert_notification(_notification("expired", timedelta(days=30, seconds=1)))
            await session.insert_notification(_notification("boundary", timedelta(days=30)))
            await session.insert_notification(_notification("fresh", timedelta(hours=1)))

        purged = await purge_expired_notifications(store, retention_days=30, now=NOW)
        assert purged == 1

        async with store.transaction() as session:
            return [n.id for n in await session.list_notifications("user-1")]

    assert asyncio.run(scenario()) == ["fresh", "boundary"]


def test_run_notification_reaper_purges_until_cancelled(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[int] = []

    async def fake_purge(store, *, retention_days: int, now=None) -> int:
        calls.append(retention_days)
        if len(calls) == 1:
            raise RuntimeError("transient failure")
        return 0

    monkeypatch.setattr(notification_reaper, "purge_expired_notifications", fake_purge)

    async def scenario() -> None:
        settings = Settings(notification_reaper_interval_seconds=1.0, notification_retention_days=7)
        real_sleep = asyncio.sleep

        async def fast_sleep(_: float) -> None:
            await real_sleep(0)

        monkeypatch.setattr(notification_reaper.asyncio, "sleep", fast_sleep)
        task = asyncio.create_task(run_notification_reaper(InMemoryStore(), settings))
        while len(calls) < 3:
            await real_sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert calls[:3] == [7, 7, 7]
