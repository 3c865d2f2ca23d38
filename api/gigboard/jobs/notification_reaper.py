from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from opentelemetry import trace

from gigboard.core.config import Settings
from gigboard.services.records import utc_now
from gigboard.services.store import Store

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def retention_cutoff(now: datetime, retention_days: int) -> datetime:
    return now - timedelta(days=max(1, retention_days))


async def purge_expired_notifications(store: Store, *, retention_days: int, now: datetime | None = None) -> int:
    cutoff = retention_cutoff(now or utc_now(), retention_days)
    async with store.transaction() as session:
        purged = await session.purge_notifications(cutoff)
    if purged:
        logger.info("purged expired notifications: %s (cutoff=%s)", purged, cutoff.isoformat())
    return purged


async def run_notification_reaper(store: Store, settings: Settings) -> None:
    """Purge notifications past retention until cancelled."""
    interval = max(1.0, settings.notification_reaper_interval_seconds)
    while True:
        await asyncio.sleep(interval)
        try:
            with tracer.start_as_current_span("notification_reaper.pass"):
                await purge_expired_notifications(store, retention_days=settings.notification_retention_days)
        except asyncio.CancelledError:
            raise
        except Exception:  # pragma: no cover - background robustness
            logger.exception("notification reaper pass failed")
