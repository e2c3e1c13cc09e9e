from .maintenance import ExpiryCleanupRead, RetrySweepRead
from .notification import (
    ChannelStatusRead,
    DispatchResultRead,
    NotificationActionSchema,
    NotificationBatchCreate,
    NotificationBatchRead,
    NotificationCreate,
    NotificationDataSchema,
    NotificationDeleteRequest,
    NotificationMarkReadRequest,
    NotificationRead,
    NotificationResendRequest,
    NotificationStatsRead,
    SendResultRead,
    UnreadCountRead,
    UpdatedCountRead,
)
from .notification_settings import (
    NotificationSettingsRead,
    NotificationSettingsUpdate,
    PushTokenCreate,
    PushTokenRead,
    QuietHoursSchema,
    QuietHoursUpdate,
    TypePreferenceSchema,
    TypePreferenceUpdate,
)

__all__ = [
    "ChannelStatusRead",
    "DispatchResultRead",
    "ExpiryCleanupRead",
    "NotificationActionSchema",
    "NotificationBatchCreate",
    "NotificationBatchRead",
    "NotificationCreate",
    "NotificationDataSchema",
    "NotificationDeleteRequest",
    "NotificationMarkReadRequest",
    "NotificationRead",
    "NotificationResendRequest",
    "NotificationSettingsRead",
    "NotificationSettingsUpdate",
    "NotificationStatsRead",
    "PushTokenCreate",
    "PushTokenRead",
    "QuietHoursSchema",
    "QuietHoursUpdate",
    "RetrySweepRead",
    "SendResultRead",
    "TypePreferenceSchema",
    "TypePreferenceUpdate",
    "UnreadCountRead",
    "UpdatedCountRead",
]
