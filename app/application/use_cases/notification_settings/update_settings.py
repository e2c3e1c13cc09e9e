"""Use case for updating notification preferences."""

from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from sqlalchemy.orm import Session

from app.domain.entities import (
    NotificationChannel,
    NotificationSettings,
    NotificationType,
    QuietHours,
    TypePreference,
)
from app.infrastructure.repositories import NotificationSettingsRepository
from app.utils import format_clock_time, parse_clock_time

from .resolve_settings import resolve_settings


def _normalize_clock(value: Any, label: str) -> str:
    try:
        return format_clock_time(parse_clock_time(value))
    except ValueError:
        raise ValueError(f"La hora de {label} debe tener el formato HH:MM") from None


def _merge_quiet_hours(current: QuietHours, changes: Mapping[str, Any]) -> QuietHours:
    enabled = changes.get("enabled")
    start = changes.get("start")
    end = changes.get("end")
    return QuietHours(
        enabled=current.enabled if enabled is None else bool(enabled),
        start=current.start if start is None else _normalize_clock(start, "inicio"),
        end=current.end if end is None else _normalize_clock(end, "fin"),
    )


def _parse_channels(raw_channels: Any) -> list[NotificationChannel]:
    if isinstance(raw_channels, (str, bytes)) or not isinstance(raw_channels, Sequence):
        raise ValueError("Los canales deben enviarse como una lista")
    channels: list[NotificationChannel] = []
    for raw_channel in raw_channels:
        try:
            channel = NotificationChannel(raw_channel)
        except ValueError:
            raise ValueError(f"Canal de notificación no válido: {raw_channel}") from None
        if channel not in channels:
            channels.append(channel)
    return channels


def _merge_types(
    current: dict[NotificationType, TypePreference],
    changes: Mapping[str, Mapping[str, Any]],
) -> dict[NotificationType, TypePreference]:
    merged = dict(current)
    for raw_type, raw_preference in changes.items():
        try:
            notification_type = NotificationType(raw_type)
        except ValueError:
            raise ValueError(f"Tipo de notificación no válido: {raw_type}") from None
        if not isinstance(raw_preference, Mapping):
            raise ValueError(f"La preferencia de '{raw_type}' debe ser un objeto")

        previous = merged.get(notification_type) or TypePreference(enabled=False, channels=[])
        enabled = raw_preference.get("enabled")
        channels = raw_preference.get("channels")
        merged[notification_type] = TypePreference(
            enabled=previous.enabled if enabled is None else bool(enabled),
            channels=list(previous.channels) if channels is None else _parse_channels(channels),
        )
    return merged


def update_settings(
    session: Session,
    *,
    user_id: int,
    enabled: bool | None = None,
    quiet_hours: Mapping[str, Any] | None = None,
    types: Mapping[str, Mapping[str, Any]] | None = None,
) -> NotificationSettings:
    """Apply a partial update to the preferences of ``user_id``."""

    current = resolve_settings(session, user_id=user_id)
    updated = replace(
        current,
        enabled=current.enabled if enabled is None else enabled,
        quiet_hours=(
            _merge_quiet_hours(current.quiet_hours, quiet_hours)
            if quiet_hours is not None
            else current.quiet_hours
        ),
        types=_merge_types(current.types, types) if types is not None else current.types,
    )
    return NotificationSettingsRepository(session).update(updated)


__all__ = ["update_settings"]
