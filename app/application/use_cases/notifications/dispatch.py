"""Use case delivering a stored notification on its pending channels."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from functools import partial

import anyio
from sqlalchemy.orm import Session

from app.domain.entities import Notification, NotificationChannel, SendResult
from app.infrastructure.notifications import ChannelProviders, DispatchOrchestrator
from app.infrastructure.notifications.dispatchers import DEFAULT_SEND_TIMEOUT_SECONDS
from app.utils import now_in_app_timezone

from .retry import DEFAULT_MAX_ATTEMPTS, schedule_retry_after_failure

logger = logging.getLogger(__name__)


async def dispatch_notification(
    session: Session,
    notification: Notification,
    providers: ChannelProviders,
    *,
    channels: Iterable[NotificationChannel | str] | None = None,
    timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    now: datetime | None = None,
) -> dict[NotificationChannel, SendResult]:
    """Run the orchestrator and leave failed channels due for the next sweep."""

    orchestrator = DispatchOrchestrator(session, providers, timeout=timeout)
    results = await orchestrator.dispatch(notification, channels)
    await anyio.to_thread.run_sync(
        partial(
            schedule_retry_after_failure,
            session,
            notification,
            results,
            now=now or now_in_app_timezone(),
            max_attempts=max_attempts,
        )
    )
    return results


__all__ = ["dispatch_notification"]
