"""Single-channel senders used by the dispatch orchestrator.

Every dispatcher exposes ``send(notification) -> SendResult`` and never raises:
missing contact details, provider errors and timeouts all resolve to a failed
result. After each attempt the dispatcher writes the status columns of its own
channel and nothing else.

Storage reads and writes go through :meth:`ChannelDispatcher._storage`, which
runs them in a worker thread. Dispatchers of the same notification share one
session, so they share one lock as well.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

import anyio
from sqlalchemy.exc import SQLAlchemyError

from app.domain.entities import (
    ChannelStatus,
    ContactInfo,
    Notification,
    NotificationChannel,
    SendResult,
)
from app.infrastructure.channels import (
    ChannelProviderError,
    ContactDirectory,
    EmailProvider,
    PushProvider,
    SmsProvider,
    render_notification_html,
)
from app.infrastructure.repositories import (
    NotificationRepository,
    NotificationSettingsRepository,
)
from app.utils import now_in_app_timezone

from .publisher import NotificationPublisher

logger = logging.getLogger(__name__)

DEFAULT_SEND_TIMEOUT_SECONDS = 10.0

T = TypeVar("T")


class RecipientUnreachableError(Exception):
    """The recipient has no address registered for the channel."""


class ChannelDispatcher:
    """Base class handling timeouts, error translation and status bookkeeping."""

    channel: NotificationChannel

    def __init__(
        self,
        repository: NotificationRepository,
        *,
        timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
        storage_lock: anyio.Lock | None = None,
    ) -> None:
        self._repository = repository
        self._timeout = timeout
        self._storage_lock = storage_lock or anyio.Lock()

    async def send(self, notification: Notification) -> SendResult:
        try:
            with anyio.fail_after(self._timeout):
                result = await self._deliver(notification)
        except TimeoutError:
            result = SendResult.failure(
                self.channel, f"{self.channel.value} delivery timed out after {self._timeout:g}s"
            )
        except (RecipientUnreachableError, ChannelProviderError) as exc:
            result = SendResult.failure(self.channel, str(exc))
        except Exception as exc:
            logger.exception(
                "Unexpected error delivering notification %s via %s",
                notification.id,
                self.channel.value,
            )
            result = SendResult.failure(self.channel, str(exc) or exc.__class__.__name__)

        return await self._record(notification, result)

    async def _deliver(self, notification: Notification) -> SendResult:
        raise NotImplementedError

    async def _storage(self, function: Callable[..., T], *args: Any) -> T:
        """Run a blocking session call in a worker thread."""

        async with self._storage_lock:
            return await anyio.to_thread.run_sync(function, *args)

    def _success(self, message_id: str | None = None) -> SendResult:
        return SendResult(
            channel=self.channel,
            success=True,
            sent_at=now_in_app_timezone(),
            message_id=message_id,
        )

    def _write_status(self, notification: Notification, result: SendResult) -> bool:
        try:
            return self._repository.update_channel_status(
                notification.id, self.channel, result.to_status()
            )
        except SQLAlchemyError:
            self._repository.session.rollback()
            raise

    async def _record(self, notification: Notification, result: SendResult) -> SendResult:
        status = result.to_status()
        try:
            updated = await self._storage(self._write_status, notification, result)
        except SQLAlchemyError as exc:
            logger.exception(
                "Could not store %s status of notification %s", self.channel.value, notification.id
            )
            return SendResult.failure(self.channel, f"status update failed: {exc}")

        if not updated:
            # Another dispatch delivered this channel first.
            logger.info(
                "Channel %s of notification %s was already delivered",
                self.channel.value,
                notification.id,
            )
            if not notification.channel_status(self.channel).sent:
                notification.status[self.channel] = ChannelStatus(sent=True)
            return result

        notification.status[self.channel] = status
        if result.success:
            logger.info("Notification %s sent via %s", notification.id, self.channel.value)
        else:
            logger.warning(
                "Notification %s not sent via %s: %s",
                notification.id,
                self.channel.value,
                result.error,
            )
        return result


class InAppDispatcher(ChannelDispatcher):
    """Mark the notification as visible in-app and notify open websockets."""

    channel = NotificationChannel.IN_APP

    def __init__(
        self,
        repository: NotificationRepository,
        *,
        publisher: NotificationPublisher | None = None,
        timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
        storage_lock: anyio.Lock | None = None,
    ) -> None:
        super().__init__(repository, timeout=timeout, storage_lock=storage_lock)
        self._publisher = publisher

    async def _deliver(self, notification: Notification) -> SendResult:
        if self._publisher is not None:
            try:
                await self._publisher.publish(notification)
            except Exception as exc:  # pragma: no cover - websocket failures are cosmetic
                logger.debug("Realtime publish of notification %s failed: %s", notification.id, exc)
        return self._success()


class PushDispatcher(ChannelDispatcher):
    channel = NotificationChannel.PUSH

    def __init__(
        self,
        repository: NotificationRepository,
        *,
        settings_repository: NotificationSettingsRepository,
        provider: PushProvider | None,
        timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
        storage_lock: anyio.Lock | None = None,
    ) -> None:
        super().__init__(repository, timeout=timeout, storage_lock=storage_lock)
        self._settings_repository = settings_repository
        self._provider = provider

    def _active_tokens(self, user_id: int) -> list[str]:
        settings = self._settings_repository.get_by_user(user_id)
        return settings.active_push_tokens() if settings else []

    async def _deliver(self, notification: Notification) -> SendResult:
        tokens = await self._storage(self._active_tokens, notification.recipient_id)
        if not tokens:
            raise RecipientUnreachableError("Recipient has no active push tokens")
        if self._provider is None:
            raise ChannelProviderError("Push provider is not configured")

        receipt = await anyio.to_thread.run_sync(
            self._provider.send_to_tokens,
            tokens,
            build_push_payload(notification),
            abandon_on_cancel=True,
        )
        return self._success(receipt.message_id)


class _ContactDispatcher(ChannelDispatcher):
    """Dispatcher that needs the recipient's contact details."""

    def __init__(
        self,
        repository: NotificationRepository,
        *,
        contacts: ContactDirectory,
        provider: Any,
        timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
        storage_lock: anyio.Lock | None = None,
    ) -> None:
        super().__init__(repository, timeout=timeout, storage_lock=storage_lock)
        self._contacts = contacts
        self._provider = provider

    async def _contact_info(self, user_id: int) -> ContactInfo:
        return await self._storage(self._contacts.get_contact_info, user_id)


class EmailDispatcher(_ContactDispatcher):
    channel = NotificationChannel.EMAIL
    _provider: EmailProvider | None

    async def _deliver(self, notification: Notification) -> SendResult:
        if self._provider is None:
            raise ChannelProviderError("Email provider is not configured")
        contact = await self._contact_info(notification.recipient_id)
        if not contact.email:
            raise RecipientUnreachableError("Recipient has no email address")

        body = render_notification_html(
            notification.title, notification.content, notification.action_url
        )
        receipt = await anyio.to_thread.run_sync(
            self._provider.send,
            contact.email,
            notification.title,
            body,
            abandon_on_cancel=True,
        )
        return self._success(receipt.message_id)


class SmsDispatcher(_ContactDispatcher):
    channel = NotificationChannel.SMS
    _provider: SmsProvider | None

    async def _deliver(self, notification: Notification) -> SendResult:
        if self._provider is None:
            raise ChannelProviderError("SMS provider is not configured")
        contact = await self._contact_info(notification.recipient_id)
        if not contact.phone:
            raise RecipientUnreachableError("Recipient has no phone number")

        receipt = await anyio.to_thread.run_sync(
            self._provider.send,
            contact.phone,
            f"{notification.title}: {notification.content}",
            abandon_on_cancel=True,
        )
        return self._success(receipt.message_id)


def build_push_payload(notification: Notification) -> dict[str, Any]:
    data = notification.data
    return {
        "title": notification.title,
        "body": notification.content,
        "image": notification.image,
        "data": {
            "notification_id": notification.id,
            "type": notification.type.value,
            "object_type": data.object_type.value if data.object_type else None,
            "object_id": data.object_id,
            "action_url": notification.action_url,
        },
    }


__all__ = [
    "ChannelDispatcher",
    "EmailDispatcher",
    "InAppDispatcher",
    "PushDispatcher",
    "RecipientUnreachableError",
    "SmsDispatcher",
    "build_push_payload",
]
