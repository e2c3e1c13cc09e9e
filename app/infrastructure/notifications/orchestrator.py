"""Fan a notification out to its channel dispatchers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

import anyio
from sqlalchemy.orm import Session

from app.domain.entities import Notification, NotificationChannel, SendResult
from app.infrastructure.channels import (
    ContactDirectory,
    EmailProvider,
    PushProvider,
    SmsProvider,
)
from app.infrastructure.repositories import (
    NotificationRepository,
    NotificationSettingsRepository,
    UserContactRepository,
)

from .dispatchers import (
    DEFAULT_SEND_TIMEOUT_SECONDS,
    ChannelDispatcher,
    EmailDispatcher,
    InAppDispatcher,
    PushDispatcher,
    SmsDispatcher,
)
from .publisher import NotificationPublisher

logger = logging.getLogger(__name__)


@dataclass
class ChannelProviders:
    """External clients injected into the dispatchers.

    A ``None`` provider leaves the channel unconfigured: attempts fail with a
    descriptive error and stay eligible for retry. When ``contacts`` is
    ``None`` the ``user_contact`` table of the current session is used.
    """

    push: PushProvider | None = None
    email: EmailProvider | None = None
    sms: SmsProvider | None = None
    contacts: ContactDirectory | None = None
    publisher: NotificationPublisher | None = None


class DispatchOrchestrator:
    """Run one dispatcher per channel concurrently and collect their results."""

    def __init__(
        self,
        session: Session,
        providers: ChannelProviders,
        *,
        timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
    ) -> None:
        repository = NotificationRepository(session)
        contacts = providers.contacts or UserContactRepository(session)
        storage_lock = anyio.Lock()
        self._dispatchers: dict[NotificationChannel, ChannelDispatcher] = {
            NotificationChannel.IN_APP: InAppDispatcher(
                repository,
                publisher=providers.publisher,
                timeout=timeout,
                storage_lock=storage_lock,
            ),
            NotificationChannel.PUSH: PushDispatcher(
                repository,
                settings_repository=NotificationSettingsRepository(session),
                provider=providers.push,
                timeout=timeout,
                storage_lock=storage_lock,
            ),
            NotificationChannel.EMAIL: EmailDispatcher(
                repository,
                contacts=contacts,
                provider=providers.email,
                timeout=timeout,
                storage_lock=storage_lock,
            ),
            NotificationChannel.SMS: SmsDispatcher(
                repository,
                contacts=contacts,
                provider=providers.sms,
                timeout=timeout,
                storage_lock=storage_lock,
            ),
        }

    async def dispatch(
        self,
        notification: Notification,
        channels: Iterable[NotificationChannel | str] | None = None,
    ) -> dict[NotificationChannel, SendResult]:
        """Attempt delivery on ``channels`` (defaults to the planned channels).

        Channels already marked as sent are skipped. The returned mapping only
        contains the channels that were attempted.
        """

        targets = self._resolve_targets(
            notification, notification.channels if channels is None else channels
        )
        results: dict[NotificationChannel, SendResult] = {}
        if not targets:
            return results

        async def _send(channel: NotificationChannel) -> None:
            results[channel] = await self._dispatchers[channel].send(notification)

        async with anyio.create_task_group() as task_group:
            for channel in targets:
                task_group.start_soon(_send, channel)

        failed = [channel.value for channel, result in results.items() if not result.success]
        logger.info(
            "Dispatched notification %s on %s channel(s), %s failed%s",
            notification.id,
            len(results),
            len(failed),
            f" ({', '.join(failed)})" if failed else "",
        )
        return results

    @staticmethod
    def _resolve_targets(
        notification: Notification, channels: Iterable[NotificationChannel | str]
    ) -> list[NotificationChannel]:
        targets: list[NotificationChannel] = []
        for raw_channel in channels:
            try:
                channel = NotificationChannel(raw_channel)
            except ValueError:
                logger.warning(
                    "Unknown notification channel %r for notification %s",
                    raw_channel,
                    notification.id,
                )
                continue
            if channel in targets or notification.channel_status(channel).sent:
                continue
            targets.append(channel)
        return targets


__all__ = ["ChannelProviders", "DispatchOrchestrator"]
