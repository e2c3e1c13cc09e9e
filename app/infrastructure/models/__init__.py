"""ORM models used by the application infrastructure."""

from .notification import CHANNEL_COLUMN_PREFIXES, NotificationModel
from .notification_settings import NotificationSettingsModel, PushTokenModel
from .user_contact import UserContactModel

__all__ = [
    "CHANNEL_COLUMN_PREFIXES",
    "NotificationModel",
    "NotificationSettingsModel",
    "PushTokenModel",
    "UserContactModel",
]
