"""Value objects exchanged by the dispatch pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .notification import (
    ChannelStatus,
    NotificationAction,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)


@dataclass
class NotificationRequest:
    """Input accepted by the notification factory.

    ``type``, ``priority`` and ``channels`` are accepted as raw strings so that
    validation can reject unknown values with a readable message.
    """

    recipient_id: int
    type: NotificationType | str
    title: str
    content: str
    sender_id: int | None = None
    data: dict[str, Any] | None = None
    icon: str | None = None
    image: str | None = None
    action_url: str | None = None
    actions: list[NotificationAction | dict[str, Any]] = field(default_factory=list)
    priority: NotificationPriority | str = NotificationPriority.NORMAL
    channels: list[NotificationChannel | str] | None = None
    expires_at: datetime | None = None
    batch_id: str | None = None


@dataclass
class ContactInfo:
    email: str | None = None
    phone: str | None = None


@dataclass
class SendResult:
    """Outcome of one channel send attempt."""

    channel: NotificationChannel
    success: bool
    sent_at: datetime | None = None
    message_id: str | None = None
    error: str | None = None

    @classmethod
    def failure(cls, channel: NotificationChannel, error: str) -> "SendResult":
        return cls(channel=channel, success=False, error=error)

    def to_status(self) -> ChannelStatus:
        return ChannelStatus(
            sent=self.success,
            sent_at=self.sent_at if self.success else None,
            message_id=self.message_id,
            error=None if self.success else self.error,
        )


@dataclass
class RetrySweepReport:
    total: int = 0
    delivered: int = 0
    rescheduled: int = 0
    abandoned: int = 0
    skipped: int = 0
    errors: int = 0


__all__ = ["ContactInfo", "NotificationRequest", "RetrySweepReport", "SendResult"]
