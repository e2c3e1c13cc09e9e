"""Serialize notifications and push them to websocket subscribers."""

from __future__ import annotations

from typing import Any

from app.domain.entities import Notification

from .manager import NotificationConnectionManager, notification_manager


def _isoformat(value) -> str | None:
    return value.isoformat() if value else None


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the JSON representation shared by the websocket and the API."""

    return {
        "id": notification.id,
        "recipient_id": notification.recipient_id,
        "sender_id": notification.sender_id,
        "type": notification.type.value,
        "priority": notification.priority.value,
        "title": notification.title,
        "content": notification.content,
        "data": {
            "object_type": notification.data.object_type.value
            if notification.data.object_type
            else None,
            "object_id": notification.data.object_id,
            "extra": notification.data.extra or {},
        },
        "icon": notification.icon,
        "image": notification.image,
        "action_url": notification.action_url,
        "actions": [
            {"label": action.label, "action": action.action, "style": action.style.value}
            for action in notification.actions
        ],
        "batch_id": notification.batch_id,
        "is_read": notification.is_read,
        "created_at": _isoformat(notification.created_at),
        "read_at": _isoformat(notification.read_at),
        "expires_at": _isoformat(notification.expires_at),
    }


class NotificationPublisher:
    """Deliver serialized notifications to the recipient's open connections."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    async def publish(self, notification: Notification) -> int:
        message = {"type": "notification", "data": serialize_notification(notification)}
        return await self._manager.send_to_user(notification.recipient_id, message)


notification_publisher = NotificationPublisher(notification_manager)


__all__ = [
    "NotificationPublisher",
    "notification_publisher",
    "serialize_notification",
]
