"""Use cases for creating, delivering and querying notifications."""

from .create_batch import create_notification_batch, generate_batch_id
from .create_notification import QuietHoursPolicy, create_notification
from .dispatch import dispatch_notification
from .expiry import cleanup_expired
from .queries import (
    count_unread_notifications,
    delete_notification,
    delete_notifications,
    get_notification,
    get_notification_stats,
    list_notifications,
    mark_all_notifications_as_read,
    mark_notifications_as_read,
)
from .quiet_hours import is_quiet, quiet_hours_end
from .retry import compute_next_retry_at, run_retry_sweep, schedule_retry_after_failure
from .templates import (
    build_achievement_request,
    build_interaction_request,
    build_system_request,
)
from .validators import NotificationValidationError, build_notification

__all__ = [
    "NotificationValidationError",
    "QuietHoursPolicy",
    "build_achievement_request",
    "build_interaction_request",
    "build_notification",
    "build_system_request",
    "cleanup_expired",
    "compute_next_retry_at",
    "count_unread_notifications",
    "create_notification",
    "create_notification_batch",
    "delete_notification",
    "delete_notifications",
    "dispatch_notification",
    "generate_batch_id",
    "get_notification",
    "get_notification_stats",
    "is_quiet",
    "list_notifications",
    "mark_all_notifications_as_read",
    "mark_notifications_as_read",
    "quiet_hours_end",
    "run_retry_sweep",
    "schedule_retry_after_failure",
]
