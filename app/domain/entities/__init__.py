"""Domain entities exposed by the application."""

from .dispatch import ContactInfo, NotificationRequest, RetrySweepReport, SendResult
from .notification import (
    ActionStyle,
    ChannelStatus,
    Notification,
    NotificationAction,
    NotificationChannel,
    NotificationData,
    NotificationPriority,
    NotificationType,
    ObjectType,
)
from .notification_settings import (
    NotificationSettings,
    PushPlatform,
    PushToken,
    QuietHours,
    TypePreference,
    default_type_preferences,
)

__all__ = [
    "ActionStyle",
    "ChannelStatus",
    "ContactInfo",
    "Notification",
    "NotificationAction",
    "NotificationChannel",
    "NotificationData",
    "NotificationPriority",
    "NotificationRequest",
    "NotificationSettings",
    "NotificationType",
    "ObjectType",
    "PushPlatform",
    "PushToken",
    "QuietHours",
    "RetrySweepReport",
    "SendResult",
    "TypePreference",
    "default_type_preferences",
]
