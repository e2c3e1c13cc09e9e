"""Aggregate application use cases."""

from .notification_settings import resolve_settings
from .notifications import create_notification, create_notification_batch

__all__ = [
    "create_notification",
    "create_notification_batch",
    "resolve_settings",
]
