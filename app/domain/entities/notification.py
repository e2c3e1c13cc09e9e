"""Domain entities describing a user notification and its delivery state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"
    MENTION = "mention"
    SHARE = "share"
    ACHIEVEMENT = "achievement"
    REMINDER = "reminder"
    SYSTEM = "system"
    UPDATE = "update"
    SECURITY = "security"
    INVITATION = "invitation"
    MILESTONE = "milestone"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class NotificationChannel(str, Enum):
    IN_APP = "in_app"
    PUSH = "push"
    EMAIL = "email"
    SMS = "sms"


class ActionStyle(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"


class ObjectType(str, Enum):
    MOMENT = "moment"
    PROFILE = "profile"
    USER = "user"
    ACHIEVEMENT = "achievement"
    COMMENT = "comment"
    LOCATION = "location"
    SYSTEM = "system"


@dataclass
class NotificationAction:
    """Button rendered by the client next to the notification."""

    label: str
    action: str
    style: ActionStyle = ActionStyle.PRIMARY


@dataclass
class NotificationData:
    """Reference to the domain object the notification talks about."""

    object_type: ObjectType | None = None
    object_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class ChannelStatus:
    """Delivery state of a single channel.

    ``sent`` is false and ``error`` empty until the channel is attempted; a
    failed attempt keeps ``sent`` false and records ``error``.
    """

    sent: bool = False
    sent_at: datetime | None = None
    message_id: str | None = None
    error: str | None = None

    @property
    def attempted(self) -> bool:
        return self.sent or self.error is not None

    @property
    def failed(self) -> bool:
        return not self.sent and self.error is not None


@dataclass
class Notification:
    """Unit of delivery addressed to a single recipient."""

    id: int | None
    recipient_id: int
    type: NotificationType
    title: str
    content: str
    sender_id: int | None = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: NotificationData = field(default_factory=NotificationData)
    icon: str | None = None
    image: str | None = None
    action_url: str | None = None
    actions: list[NotificationAction] = field(default_factory=list)
    channels: list[NotificationChannel] = field(default_factory=list)
    status: dict[NotificationChannel, ChannelStatus] = field(
        default_factory=lambda: {channel: ChannelStatus() for channel in NotificationChannel}
    )
    batch_id: str | None = None
    retry_count: int = 0
    next_retry_at: datetime | None = None
    expires_at: datetime | None = None
    is_read: bool = False
    read_at: datetime | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def channel_status(self, channel: NotificationChannel) -> ChannelStatus:
        return self.status.setdefault(channel, ChannelStatus())

    def pending_channels(
        self, channels: list[NotificationChannel] | None = None
    ) -> list[NotificationChannel]:
        """Return the planned channels that have not been delivered yet."""

        candidates = self.channels if channels is None else channels
        return [channel for channel in candidates if not self.channel_status(channel).sent]

    def is_delivered(self) -> bool:
        return not self.pending_channels()


__all__ = [
    "ActionStyle",
    "ChannelStatus",
    "Notification",
    "NotificationAction",
    "NotificationChannel",
    "NotificationData",
    "NotificationPriority",
    "NotificationType",
    "ObjectType",
]
