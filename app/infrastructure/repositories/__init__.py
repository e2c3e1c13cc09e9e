"""Repository implementations for infrastructure layer."""

from .notification_repository import NotificationRepository
from .notification_settings_repository import NotificationSettingsRepository
from .user_contact_repository import UserContactRepository

__all__ = [
    "NotificationRepository",
    "NotificationSettingsRepository",
    "UserContactRepository",
]
