"""Entry point used by the API and by other modules to work with notifications."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from functools import partial
from typing import Any, Callable, Mapping, TypeVar

import anyio
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.domain.entities import (
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationRequest,
    NotificationSettings,
    NotificationType,
    PushPlatform,
    RetrySweepReport,
    SendResult,
)
from app.infrastructure.channels import (
    FirebasePushProvider,
    SendGridEmailProvider,
    TwilioSmsProvider,
)
from app.infrastructure.notifications import (
    ChannelProviders,
    DispatchTaskTracker,
    notification_publisher,
)
from app.infrastructure.repositories import NotificationRepository
from app.utils import now_in_app_timezone

from .use_cases import notification_settings as settings_use_cases
from .use_cases import notifications as notification_use_cases

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_channel_providers(settings: Settings) -> ChannelProviders:
    """Instantiate the provider clients enabled by ``settings``."""

    email = SendGridEmailProvider(settings)
    sms = TwilioSmsProvider(settings)
    providers = ChannelProviders(
        push=FirebasePushProvider(settings) if settings.firebase_credentials_path else None,
        email=email if email.configured else None,
        sms=sms if sms.configured else None,
        publisher=notification_publisher,
    )
    disabled = [
        name
        for name, provider in (
            ("push", providers.push),
            ("email", providers.email),
            ("sms", providers.sms),
        )
        if provider is None
    ]
    if disabled:
        logger.warning("Notification channels without provider: %s", ", ".join(disabled))
    return providers


class NotificationService:
    """Create, deliver and query notifications.

    Every call opens its own session from ``session_factory`` and runs the
    blocking storage work in a worker thread. Deliveries
    triggered by :meth:`create` run on tasks spawned by ``tracker`` and never
    raise into the caller; await :meth:`drain` to wait for them.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        providers: ChannelProviders,
        *,
        settings: Settings | None = None,
        tracker: DispatchTaskTracker | None = None,
        clock: Callable[[], datetime] = now_in_app_timezone,
    ) -> None:
        self._session_factory = session_factory
        self._providers = providers
        self._settings = settings or get_settings()
        self._tracker = tracker or DispatchTaskTracker(self._settings.dispatch_max_concurrency)
        self._clock = clock

    @property
    def tracker(self) -> DispatchTaskTracker:
        return self._tracker

    async def create(self, request: NotificationRequest) -> Notification | None:
        scheduled: list[Notification] = []
        notification = await self._run(
            notification_use_cases.create_notification,
            request,
            now=self._clock(),
            quiet_hours_policy=self._settings.quiet_hours_policy,
            schedule_dispatch=scheduled.append,
        )
        self._schedule_all(scheduled)
        return notification

    async def create_batch(
        self, requests: Iterable[NotificationRequest], *, batch_id: str | None = None
    ) -> list[Notification]:
        scheduled: list[Notification] = []
        notifications = await self._run(
            notification_use_cases.create_notification_batch,
            list(requests),
            batch_id=batch_id,
            now=self._clock(),
            quiet_hours_policy=self._settings.quiet_hours_policy,
            schedule_dispatch=scheduled.append,
        )
        self._schedule_all(scheduled)
        return notifications

    async def create_system_notification(
        self, recipient_id: int, *, title: str, content: str, **options: Any
    ) -> Notification | None:
        return await self.create(
            notification_use_cases.build_system_request(
                recipient_id, title=title, content=content, **options
            )
        )

    async def create_achievement_notification(
        self, recipient_id: int, *, achievement_id: str | int, name: str, **options: Any
    ) -> Notification | None:
        return await self.create(
            notification_use_cases.build_achievement_request(
                recipient_id, achievement_id=achievement_id, name=name, **options
            )
        )

    async def create_interaction_notification(
        self,
        recipient_id: int,
        *,
        notification_type: NotificationType | str,
        sender_id: int,
        sender_name: str,
        **options: Any,
    ) -> Notification | None:
        return await self.create(
            notification_use_cases.build_interaction_request(
                recipient_id,
                notification_type=notification_type,
                sender_id=sender_id,
                sender_name=sender_name,
                **options,
            )
        )

    async def dispatch(
        self,
        notification_id: int,
        channels: Sequence[NotificationChannel | str] | None = None,
        *,
        user_id: int | None = None,
    ) -> dict[NotificationChannel, SendResult]:
        """Deliver the pending channels of a notification right away."""

        session = self._session_factory()
        try:
            repository = NotificationRepository(session)
            if user_id is not None:
                notification = await anyio.to_thread.run_sync(
                    partial(repository.get_for_user, notification_id, user_id=user_id)
                )
            else:
                notification = await anyio.to_thread.run_sync(repository.get, notification_id)
            if notification is None:
                raise ValueError("Notificación no encontrada")
            return await self._dispatch(session, notification, channels)
        finally:
            await anyio.to_thread.run_sync(session.close)

    async def get_settings(self, user_id: int) -> NotificationSettings:
        return await self._run(settings_use_cases.resolve_settings, user_id=user_id)

    async def update_settings(
        self,
        user_id: int,
        *,
        enabled: bool | None = None,
        quiet_hours: Mapping[str, Any] | None = None,
        types: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> NotificationSettings:
        return await self._run(
            settings_use_cases.update_settings,
            user_id=user_id,
            enabled=enabled,
            quiet_hours=quiet_hours,
            types=types,
        )

    async def add_push_token(
        self, user_id: int, *, token: str, device_id: str, platform: PushPlatform | str
    ) -> NotificationSettings:
        return await self._run(
            settings_use_cases.add_push_token,
            user_id=user_id,
            token=token,
            device_id=device_id,
            platform=platform,
        )

    async def remove_push_token(self, user_id: int, *, device_id: str) -> bool:
        return await self._run(
            settings_use_cases.remove_push_token, user_id=user_id, device_id=device_id
        )

    async def run_retry_sweep(self, now: datetime | None = None) -> RetrySweepReport:
        return await notification_use_cases.run_retry_sweep(
            self._session_factory,
            self._providers,
            now=now or self._clock(),
            max_attempts=self._settings.retry_max_attempts,
            base_delay_minutes=self._settings.retry_base_delay_minutes,
            batch_size=self._settings.retry_batch_size,
            timeout=self._settings.channel_send_timeout_seconds,
        )

    async def run_expiry_cleanup(self, now: datetime | None = None) -> int:
        return await self._run(notification_use_cases.cleanup_expired, now=now or self._clock())

    async def list_notifications(
        self,
        user_id: int,
        *,
        notification_type: NotificationType | None = None,
        is_read: bool | None = None,
        priority: NotificationPriority | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[Notification]:
        return await self._run(
            notification_use_cases.list_notifications,
            user_id=user_id,
            notification_type=notification_type,
            is_read=is_read,
            priority=priority,
            limit=limit,
            offset=offset,
        )

    async def get_notification(self, user_id: int, notification_id: int) -> Notification:
        return await self._run(
            notification_use_cases.get_notification,
            user_id=user_id,
            notification_id=notification_id,
        )

    async def mark_as_read(self, user_id: int, notification_ids: Iterable[int]) -> int:
        return await self._run(
            notification_use_cases.mark_notifications_as_read,
            user_id=user_id,
            notification_ids=list(notification_ids),
        )

    async def mark_all_as_read(self, user_id: int) -> int:
        return await self._run(
            notification_use_cases.mark_all_notifications_as_read, user_id=user_id
        )

    async def delete(self, user_id: int, notification_id: int) -> None:
        await self._run(
            notification_use_cases.delete_notification,
            user_id=user_id,
            notification_id=notification_id,
        )

    async def delete_many(self, user_id: int, notification_ids: Iterable[int]) -> int:
        return await self._run(
            notification_use_cases.delete_notifications,
            user_id=user_id,
            notification_ids=list(notification_ids),
        )

    async def unread_count(self, user_id: int) -> int:
        return await self._run(notification_use_cases.count_unread_notifications, user_id=user_id)

    async def stats(self, user_id: int) -> dict[str, object]:
        return await self._run(notification_use_cases.get_notification_stats, user_id=user_id)

    async def drain(self) -> None:
        await self._tracker.drain()

    async def _run(self, function: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
        """Call ``function(session, *args, **kwargs)`` in a worker thread."""

        def _call() -> T:
            with self._session_factory() as session:
                return function(session, *args, **kwargs)

        return await anyio.to_thread.run_sync(_call)

    def _schedule_all(self, notifications: Iterable[Notification]) -> None:
        for notification in notifications:
            self._schedule_dispatch(notification)

    def _schedule_dispatch(self, notification: Notification) -> None:
        self._tracker.spawn(
            self._dispatch_in_background,
            notification.id,
            name=f"dispatch-notification-{notification.id}",
        )

    async def _dispatch_in_background(self, notification_id: int) -> None:
        session = self._session_factory()
        try:
            notification = await anyio.to_thread.run_sync(
                NotificationRepository(session).get, notification_id
            )
            if notification is None:
                logger.info("Notification %s vanished before delivery", notification_id)
                return
            await self._dispatch(session, notification, None)
        finally:
            await anyio.to_thread.run_sync(session.close)

    async def _dispatch(
        self,
        session: Session,
        notification: Notification,
        channels: Sequence[NotificationChannel | str] | None,
    ) -> dict[NotificationChannel, SendResult]:
        return await notification_use_cases.dispatch_notification(
            session,
            notification,
            self._providers,
            channels=channels,
            timeout=self._settings.channel_send_timeout_seconds,
            max_attempts=self._settings.retry_max_attempts,
            now=self._clock(),
        )


__all__ = ["NotificationService", "build_channel_providers"]
