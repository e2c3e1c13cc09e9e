"""Notification delivery helpers for the infrastructure layer."""

from .dispatchers import (
    ChannelDispatcher,
    EmailDispatcher,
    InAppDispatcher,
    PushDispatcher,
    RecipientUnreachableError,
    SmsDispatcher,
)
from .manager import NotificationConnectionManager, notification_manager
from .orchestrator import ChannelProviders, DispatchOrchestrator
from .publisher import (
    NotificationPublisher,
    notification_publisher,
    serialize_notification,
)
from .tasks import DispatchTaskTracker, run_periodically

__all__ = [
    "ChannelDispatcher",
    "ChannelProviders",
    "DispatchOrchestrator",
    "DispatchTaskTracker",
    "EmailDispatcher",
    "InAppDispatcher",
    "NotificationConnectionManager",
    "NotificationPublisher",
    "PushDispatcher",
    "RecipientUnreachableError",
    "SmsDispatcher",
    "notification_manager",
    "notification_publisher",
    "run_periodically",
    "serialize_notification",
]
