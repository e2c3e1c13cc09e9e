"""Builders for the notifications emitted by other parts of the platform."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from app.domain.entities import (
    NotificationChannel,
    NotificationPriority,
    NotificationRequest,
    NotificationType,
    ObjectType,
)

ACHIEVEMENT_ICON = "🏆"

_INTERACTION_TEXTS = {
    NotificationType.LIKE: (
        "Alguien reaccionó a tu contenido",
        "{sender} le dio me gusta a tu {target}",
        "👍",
    ),
    NotificationType.COMMENT: (
        "Alguien comentó tu contenido",
        "{sender} comentó tu {target}",
        "💬",
    ),
    NotificationType.FOLLOW: ("Tienes un nuevo seguidor", "{sender} comenzó a seguirte", "👥"),
}
_DEFAULT_INTERACTION_TEXT = ("Nueva interacción", "Tienes una nueva interacción", "🔔")


def build_system_request(
    recipient_id: int,
    *,
    title: str,
    content: str,
    priority: NotificationPriority | str = NotificationPriority.HIGH,
    channels: list[NotificationChannel | str] | None = None,
    action_url: str | None = None,
    expires_at: datetime | None = None,
    data: dict[str, Any] | None = None,
) -> NotificationRequest:
    """Platform announcement without sender, shown in-app and emailed by default."""

    return NotificationRequest(
        recipient_id=recipient_id,
        sender_id=None,
        type=NotificationType.SYSTEM,
        title=title,
        content=content,
        priority=priority,
        channels=channels or [NotificationChannel.IN_APP, NotificationChannel.EMAIL],
        action_url=action_url,
        expires_at=expires_at,
        data=data,
    )


def build_achievement_request(
    recipient_id: int,
    *,
    achievement_id: str | int,
    name: str,
    description: str | None = None,
    points: int | None = None,
) -> NotificationRequest:
    return NotificationRequest(
        recipient_id=recipient_id,
        type=NotificationType.ACHIEVEMENT,
        title="🎉 ¡Nuevo logro desbloqueado!",
        content=f"Has desbloqueado el logro «{name}»",
        data={
            "object_type": ObjectType.ACHIEVEMENT,
            "object_id": str(achievement_id),
            "extra": {
                "achievement_name": name,
                "achievement_description": description,
                "points": points,
            },
        },
        icon=ACHIEVEMENT_ICON,
        priority=NotificationPriority.HIGH,
        channels=[NotificationChannel.IN_APP, NotificationChannel.PUSH],
    )


def build_interaction_request(
    recipient_id: int,
    *,
    notification_type: NotificationType | str,
    sender_id: int,
    sender_name: str,
    object_type: ObjectType | str | None = None,
    object_id: str | int | None = None,
    extra: dict[str, Any] | None = None,
) -> NotificationRequest:
    """Social interaction (like, comment, follow) between two users."""

    try:
        parsed_type = NotificationType(notification_type)
    except ValueError:
        parsed_type = None
    title, template, icon = _INTERACTION_TEXTS.get(parsed_type, _DEFAULT_INTERACTION_TEXT)
    target = "momento" if object_type == ObjectType.MOMENT else "contenido"

    return NotificationRequest(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=notification_type,
        title=title,
        content=template.format(sender=sender_name, target=target),
        data={
            "object_type": object_type,
            "object_id": str(object_id) if object_id is not None else None,
            "extra": {**(extra or {}), "sender_name": sender_name},
        },
        icon=icon,
        priority=NotificationPriority.NORMAL,
        channels=[NotificationChannel.IN_APP, NotificationChannel.PUSH],
    )


__all__ = [
    "ACHIEVEMENT_ICON",
    "build_achievement_request",
    "build_interaction_request",
    "build_system_request",
]
