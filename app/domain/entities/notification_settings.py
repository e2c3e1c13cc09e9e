"""Domain entities describing per-user notification preferences."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .notification import NotificationChannel, NotificationType

DEFAULT_QUIET_HOURS_START = "22:00"
DEFAULT_QUIET_HOURS_END = "08:00"


class PushPlatform(str, Enum):
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"


@dataclass
class QuietHours:
    """Do-not-disturb window expressed as ``HH:MM`` wall-clock times."""

    enabled: bool = False
    start: str = DEFAULT_QUIET_HOURS_START
    end: str = DEFAULT_QUIET_HOURS_END


@dataclass
class TypePreference:
    enabled: bool = True
    channels: list[NotificationChannel] = field(
        default_factory=lambda: [NotificationChannel.IN_APP]
    )


@dataclass
class PushToken:
    token: str
    device_id: str
    platform: PushPlatform
    is_active: bool = True
    last_used: datetime | None = None


def default_type_preferences() -> dict[NotificationType, TypePreference]:
    """Every known type enabled and delivered in-app only."""

    return {notification_type: TypePreference() for notification_type in NotificationType}


@dataclass
class NotificationSettings:
    """Notification preferences owned by a single user."""

    id: int | None
    user_id: int
    enabled: bool = True
    quiet_hours: QuietHours = field(default_factory=QuietHours)
    types: dict[NotificationType, TypePreference] = field(
        default_factory=default_type_preferences
    )
    push_tokens: list[PushToken] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def preference_for(self, notification_type: NotificationType) -> TypePreference | None:
        """Return the preference for ``notification_type``; ``None`` means disabled."""

        return self.types.get(notification_type)

    def allows(self, notification_type: NotificationType) -> bool:
        if not self.enabled:
            return False
        preference = self.preference_for(notification_type)
        return preference is not None and preference.enabled

    def allowed_channels(
        self, notification_type: NotificationType
    ) -> list[NotificationChannel]:
        preference = self.preference_for(notification_type)
        if preference is None or not preference.enabled:
            return []
        return list(preference.channels)

    def active_push_tokens(self, platform: PushPlatform | None = None) -> list[str]:
        return [
            token.token
            for token in self.push_tokens
            if token.is_active and (platform is None or token.platform == platform)
        ]


__all__ = [
    "DEFAULT_QUIET_HOURS_END",
    "DEFAULT_QUIET_HOURS_START",
    "NotificationSettings",
    "PushPlatform",
    "PushToken",
    "QuietHours",
    "TypePreference",
    "default_type_preferences",
]
