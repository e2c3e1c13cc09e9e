"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _unique(values: list[int]) -> list[int]:
    unique: list[int] = []
    seen: set[int] = set()
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        unique.append(value)
    return unique


class NotificationIdsRequest(BaseModel):
    """Payload carrying a set of notification identifiers."""

    ids: list[int] = Field(..., min_length=1, description="Identificadores de notificaciones")

    def unique_ids(self) -> list[int]:
        """Return the list of identifiers without duplicates preserving order."""

        return _unique(self.ids)


class NotificationMarkReadRequest(NotificationIdsRequest):
    """Payload used to mark a batch of notifications as read."""


class NotificationDeleteRequest(NotificationIdsRequest):
    """Payload used to delete a batch of notifications."""


class NotificationDataSchema(BaseModel):
    object_type: str | None = None
    object_id: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)


class NotificationActionSchema(BaseModel):
    label: str
    action: str
    style: str = "primary"


class NotificationCreate(BaseModel):
    """Payload required to create a notification.

    Enumerated values are kept as plain strings; the use case validates them.
    """

    model_config = ConfigDict(extra="forbid")

    recipient_id: int
    sender_id: int | None = None
    type: str
    title: str
    content: str
    data: NotificationDataSchema | None = None
    icon: str | None = None
    image: str | None = None
    action_url: str | None = None
    actions: list[NotificationActionSchema] = Field(default_factory=list)
    priority: str = "normal"
    channels: list[str] | None = None
    expires_at: datetime | None = None


class NotificationBatchCreate(BaseModel):
    notifications: list[NotificationCreate] = Field(..., min_length=1)
    batch_id: str | None = Field(default=None, max_length=64)


class NotificationResendRequest(BaseModel):
    channels: list[str] | None = None


class ChannelStatusRead(BaseModel):
    sent: bool
    sent_at: datetime | None = None
    message_id: str | None = None
    error: str | None = None


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    id: int
    recipient_id: int
    sender_id: int | None = None
    type: str
    priority: str
    title: str
    content: str
    data: NotificationDataSchema
    icon: str | None = None
    image: str | None = None
    action_url: str | None = None
    actions: list[NotificationActionSchema] = Field(default_factory=list)
    channels: list[str] = Field(default_factory=list)
    status: dict[str, ChannelStatusRead] = Field(default_factory=dict)
    batch_id: str | None = None
    retry_count: int = 0
    next_retry_at: datetime | None = None
    expires_at: datetime | None = None
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime | None = None


class NotificationBatchRead(BaseModel):
    batch_id: str | None
    created: int
    notifications: list[NotificationRead]


class SendResultRead(BaseModel):
    success: bool
    sent_at: datetime | None = None
    message_id: str | None = None
    error: str | None = None


class DispatchResultRead(BaseModel):
    notification_id: int
    results: dict[str, SendResultRead]


class UnreadCountRead(BaseModel):
    unread: int


class UpdatedCountRead(BaseModel):
    count: int


class NotificationStatsRead(BaseModel):
    total: int
    unread: int
    by_type: dict[str, int] = Field(default_factory=dict)


__all__ = [
    "ChannelStatusRead",
    "DispatchResultRead",
    "NotificationActionSchema",
    "NotificationBatchCreate",
    "NotificationBatchRead",
    "NotificationCreate",
    "NotificationDataSchema",
    "NotificationDeleteRequest",
    "NotificationMarkReadRequest",
    "NotificationRead",
    "NotificationResendRequest",
    "NotificationStatsRead",
    "SendResultRead",
    "UnreadCountRead",
    "UpdatedCountRead",
]
