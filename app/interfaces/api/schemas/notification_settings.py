"""Schemas for notification preference endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class QuietHoursSchema(BaseModel):
    enabled: bool
    start: str
    end: str


class QuietHoursUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool | None = None
    start: str | None = None
    end: str | None = None


class TypePreferenceSchema(BaseModel):
    enabled: bool
    channels: list[str]


class TypePreferenceUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool | None = None
    channels: list[str] | None = None


class PushTokenRead(BaseModel):
    device_id: str
    platform: str
    is_active: bool
    last_used: datetime | None = None


class NotificationSettingsRead(BaseModel):
    user_id: int
    enabled: bool
    quiet_hours: QuietHoursSchema
    types: dict[str, TypePreferenceSchema]
    push_tokens: list[PushTokenRead] = Field(default_factory=list)
    updated_at: datetime | None = None


class NotificationSettingsUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool | None = None
    quiet_hours: QuietHoursUpdate | None = None
    types: dict[str, TypePreferenceUpdate] | None = None


class PushTokenCreate(BaseModel):
    token: str = Field(..., min_length=1)
    device_id: str = Field(..., min_length=1, max_length=255)
    platform: str


__all__ = [
    "NotificationSettingsRead",
    "NotificationSettingsUpdate",
    "PushTokenCreate",
    "PushTokenRead",
    "QuietHoursSchema",
    "QuietHoursUpdate",
    "TypePreferenceSchema",
    "TypePreferenceUpdate",
]
