"""Use case for creating a notification addressed to a single user."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Literal

from sqlalchemy.orm import Session

from app.domain.entities import Notification, NotificationRequest
from app.infrastructure.repositories import NotificationRepository
from app.utils import ensure_app_timezone, now_in_app_timezone

from ..notification_settings import resolve_settings
from .quiet_hours import is_quiet, quiet_hours_end
from .validators import build_notification

logger = logging.getLogger(__name__)

QuietHoursPolicy = Literal["proceed", "defer"]


def create_notification(
    session: Session,
    request: NotificationRequest,
    *,
    now: datetime | None = None,
    quiet_hours_policy: QuietHoursPolicy = "proceed",
    schedule_dispatch: Callable[[Notification], Any] | None = None,
) -> Notification | None:
    """Validate, filter and persist a notification.

    Returns ``None`` when the recipient opted out of the notification type.
    Channels not allowed by the recipient's settings are dropped, keeping the
    requested order. When the resulting channel list is not empty and the
    delivery is not deferred by quiet hours, ``schedule_dispatch`` receives the
    stored notification.
    """

    notification = build_notification(request)
    settings = resolve_settings(session, user_id=notification.recipient_id)
    if not settings.allows(notification.type):
        logger.info(
            "User %s disabled %s notifications, nothing created",
            notification.recipient_id,
            notification.type.value,
        )
        return None

    allowed_channels = settings.allowed_channels(notification.type)
    notification.channels = [
        channel for channel in notification.channels if channel in allowed_channels
    ]

    current_time = ensure_app_timezone(now) if now is not None else now_in_app_timezone()
    notification.created_at = current_time
    notification.retry_count = 0
    notification.next_retry_at = None

    deferred = False
    if is_quiet(settings.quiet_hours, current_time):
        if quiet_hours_policy == "defer" and notification.channels:
            notification.next_retry_at = quiet_hours_end(settings.quiet_hours, current_time)
            deferred = True
            logger.info(
                "User %s is in quiet hours, delivery deferred until %s",
                notification.recipient_id,
                notification.next_retry_at.isoformat(),
            )
        else:
            logger.info(
                "User %s is in quiet hours, delivering anyway", notification.recipient_id
            )

    saved = NotificationRepository(session).create(notification)

    if saved.channels and not deferred and schedule_dispatch is not None:
        schedule_dispatch(saved)
    return saved


__all__ = ["QuietHoursPolicy", "create_notification"]
