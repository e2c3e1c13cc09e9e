"""Inbox operations over the notifications of a user."""

from collections.abc import Iterable, Sequence

from sqlalchemy.orm import Session

from app.domain.entities import Notification, NotificationPriority, NotificationType
from app.infrastructure.repositories import NotificationRepository

MAX_PAGE_SIZE = 100


def list_notifications(
    session: Session,
    *,
    user_id: int,
    notification_type: NotificationType | None = None,
    is_read: bool | None = None,
    priority: NotificationPriority | None = None,
    limit: int = 20,
    offset: int = 0,
) -> Sequence[Notification]:
    """Return the notifications of ``user_id``, newest first."""

    return NotificationRepository(session).list_for_user(
        user_id,
        notification_type=notification_type,
        is_read=is_read,
        priority=priority,
        limit=max(1, min(limit, MAX_PAGE_SIZE)),
        offset=max(0, offset),
    )


def get_notification(session: Session, *, user_id: int, notification_id: int) -> Notification:
    """Return a notification owned by ``user_id`` or raise an error."""

    notification = NotificationRepository(session).get_for_user(notification_id, user_id=user_id)
    if notification is None:
        raise ValueError("Notificación no encontrada")
    return notification


def mark_notifications_as_read(
    session: Session, *, user_id: int, notification_ids: Iterable[int]
) -> int:
    return NotificationRepository(session).mark_as_read(notification_ids, user_id=user_id)


def mark_all_notifications_as_read(session: Session, *, user_id: int) -> int:
    return NotificationRepository(session).mark_all_as_read(user_id)


def delete_notification(session: Session, *, user_id: int, notification_id: int) -> None:
    """Delete a notification owned by ``user_id`` or raise an error."""

    if not NotificationRepository(session).delete(notification_id, user_id=user_id):
        raise ValueError("Notificación no encontrada")


def delete_notifications(
    session: Session, *, user_id: int, notification_ids: Iterable[int]
) -> int:
    return NotificationRepository(session).delete_many(notification_ids, user_id=user_id)


def count_unread_notifications(session: Session, *, user_id: int) -> int:
    return NotificationRepository(session).count_unread(user_id)


def get_notification_stats(session: Session, *, user_id: int) -> dict[str, object]:
    """Return totals and the per-type breakdown of the user's inbox."""

    repository = NotificationRepository(session)
    by_type = repository.count_by_type(user_id)
    return {
        "total": sum(by_type.values()),
        "unread": repository.count_unread(user_id),
        "by_type": by_type,
    }


__all__ = [
    "MAX_PAGE_SIZE",
    "count_unread_notifications",
    "delete_notification",
    "delete_notifications",
    "get_notification",
    "get_notification_stats",
    "list_notifications",
    "mark_all_notifications_as_read",
    "mark_notifications_as_read",
]
