"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.domain.entities import (
    ActionStyle,
    ChannelStatus,
    Notification,
    NotificationAction,
    NotificationChannel,
    NotificationData,
    NotificationPriority,
    NotificationType,
    ObjectType,
)
from app.infrastructure.models import NotificationModel
from app.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


def _channel_column(channel: NotificationChannel, suffix: str):
    return getattr(NotificationModel, f"{channel.value}_{suffix}")


class NotificationRepository:
    """Provide CRUD and delivery bookkeeping for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _visible(self):
        """Query over the notifications that were not deleted by their owner."""

        return self.session.query(NotificationModel).filter(
            NotificationModel.is_deleted.is_(False)
        )

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get(self, notification_id: int) -> Notification | None:
        model = (
            self._visible()
            .populate_existing()
            .filter(NotificationModel.id == notification_id)
            .one_or_none()
        )
        return self._to_entity(model) if model else None

    def get_for_user(self, notification_id: int, *, user_id: int) -> Notification | None:
        model = (
            self._visible()
            .populate_existing()
            .filter(NotificationModel.id == notification_id)
            .filter(NotificationModel.recipient_id == user_id)
            .one_or_none()
        )
        return self._to_entity(model) if model else None

    def list_for_user(
        self,
        user_id: int,
        *,
        notification_type: NotificationType | None = None,
        is_read: bool | None = None,
        priority: NotificationPriority | None = None,
        limit: int | None = 50,
        offset: int = 0,
    ) -> Sequence[Notification]:
        query = (
            self._visible()
            .populate_existing()
            .filter(NotificationModel.recipient_id == user_id)
        )
        if notification_type is not None:
            query = query.filter(NotificationModel.type == notification_type.value)
        if is_read is not None:
            query = query.filter(NotificationModel.is_read.is_(is_read))
        if priority is not None:
            query = query.filter(NotificationModel.priority == priority.value)
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def list_by_batch(self, batch_id: str) -> Sequence[Notification]:
        query = (
            self._visible()
            .populate_existing()
            .filter(NotificationModel.batch_id == batch_id)
            .order_by(NotificationModel.id.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def count_unread(self, user_id: int) -> int:
        return (
            self.session.query(func.count(NotificationModel.id))
            .filter(NotificationModel.recipient_id == user_id)
            .filter(NotificationModel.is_read.is_(False))
            .filter(NotificationModel.is_deleted.is_(False))
            .scalar()
            or 0
        )

    def count_by_type(self, user_id: int) -> dict[str, int]:
        rows = (
            self.session.query(NotificationModel.type, func.count(NotificationModel.id))
            .filter(NotificationModel.recipient_id == user_id)
            .filter(NotificationModel.is_deleted.is_(False))
            .group_by(NotificationModel.type)
            .all()
        )
        return {notification_type: count for notification_type, count in rows}

    def mark_as_read(self, notification_ids: Iterable[int], *, user_id: int) -> int:
        ids = [notification_id for notification_id in notification_ids if notification_id is not None]
        if not ids:
            return 0
        updated = (
            self._visible()
            .filter(
                NotificationModel.id.in_(ids),
                NotificationModel.recipient_id == user_id,
                NotificationModel.is_read.is_(False),
            )
            .update(
                {
                    NotificationModel.is_read: True,
                    NotificationModel.read_at: ensure_app_naive_datetime(
                        now_in_app_timezone()
                    ),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def mark_all_as_read(self, user_id: int) -> int:
        updated = (
            self._visible()
            .filter(
                NotificationModel.recipient_id == user_id,
                NotificationModel.is_read.is_(False),
            )
            .update(
                {
                    NotificationModel.is_read: True,
                    NotificationModel.read_at: ensure_app_naive_datetime(
                        now_in_app_timezone()
                    ),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def delete(self, notification_id: int, *, user_id: int | None = None) -> bool:
        return self.delete_many([notification_id], user_id=user_id) > 0

    def delete_many(self, notification_ids: Iterable[int], *, user_id: int | None = None) -> int:
        """Flag notifications as deleted; the rows stay until they expire.

        Deleted notifications are hidden from every query and never retried.
        """

        ids = [notification_id for notification_id in notification_ids if notification_id is not None]
        if not ids:
            return 0
        query = self._visible().filter(NotificationModel.id.in_(ids))
        if user_id is not None:
            query = query.filter(NotificationModel.recipient_id == user_id)
        deleted = query.update(
            {
                NotificationModel.is_deleted: True,
                NotificationModel.deleted_at: ensure_app_naive_datetime(now_in_app_timezone()),
                NotificationModel.next_retry_at: None,
            },
            synchronize_session=False,
        )
        self.session.commit()
        return deleted

    def delete_expired(self, now: datetime) -> int:
        """Remove expired rows, deleted or not. The only physical delete."""

        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.expires_at.is_not(None))
            .filter(NotificationModel.expires_at <= ensure_app_naive_datetime(now))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def update_channel_status(
        self,
        notification_id: int,
        channel: NotificationChannel,
        status: ChannelStatus,
    ) -> bool:
        """Write the status columns of ``channel`` only.

        A channel already marked as sent is left untouched; the return value
        tells whether the row was updated.
        """

        updated = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification_id)
            .filter(_channel_column(channel, "sent").is_(False))
            .update(
                {
                    _channel_column(channel, "sent"): status.sent,
                    _channel_column(channel, "sent_at"): ensure_app_naive_datetime(
                        status.sent_at
                    ),
                    _channel_column(channel, "message_id"): status.message_id,
                    _channel_column(channel, "error"): status.error,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated > 0

    def list_retry_candidates(
        self, now: datetime, *, max_attempts: int, limit: int | None = 100
    ) -> Sequence[Notification]:
        query = (
            self._visible()
            .populate_existing()
            .filter(NotificationModel.next_retry_at.is_not(None))
            .filter(NotificationModel.next_retry_at <= ensure_app_naive_datetime(now))
            .filter(NotificationModel.retry_count < max_attempts)
            .order_by(NotificationModel.next_retry_at.asc(), NotificationModel.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def claim_retry(self, notification: Notification) -> bool:
        """Clear ``next_retry_at`` if nobody else picked the notification up."""

        if notification.id is None or notification.next_retry_at is None:
            return False
        claimed = (
            self._visible()
            .filter(NotificationModel.id == notification.id)
            .filter(
                NotificationModel.next_retry_at
                == ensure_app_naive_datetime(notification.next_retry_at)
            )
            .filter(NotificationModel.retry_count == notification.retry_count)
            .update({NotificationModel.next_retry_at: None}, synchronize_session=False)
        )
        self.session.commit()
        return claimed > 0

    def record_retry_outcome(
        self,
        notification_id: int,
        *,
        retry_count: int,
        next_retry_at: datetime | None,
    ) -> None:
        (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification_id)
            .filter(NotificationModel.retry_count <= retry_count)
            .update(
                {
                    NotificationModel.retry_count: retry_count,
                    NotificationModel.next_retry_at: ensure_app_naive_datetime(
                        next_retry_at
                    ),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()

    def schedule_retry(self, notification_id: int, next_retry_at: datetime) -> bool:
        """Set ``next_retry_at`` unless a retry is already scheduled."""

        scheduled = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification_id)
            .filter(NotificationModel.next_retry_at.is_(None))
            .update(
                {NotificationModel.next_retry_at: ensure_app_naive_datetime(next_retry_at)},
                synchronize_session=False,
            )
        )
        self.session.commit()
        return scheduled > 0

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        model.created_at = ensure_app_naive_datetime(
            notification.created_at or now_in_app_timezone()
        )
        model.recipient_id = notification.recipient_id
        model.sender_id = notification.sender_id
        model.type = NotificationType(notification.type).value
        model.priority = NotificationPriority(notification.priority).value
        model.title = notification.title
        model.content = notification.content
        model.data = _data_to_payload(notification.data)
        model.icon = notification.icon
        model.image = notification.image
        model.action_url = notification.action_url
        model.actions = [
            {"label": action.label, "action": action.action, "style": action.style.value}
            for action in notification.actions
        ]
        model.channels = [NotificationChannel(channel).value for channel in notification.channels]
        for channel in NotificationChannel:
            status = notification.channel_status(channel)
            setattr(model, f"{channel.value}_sent", status.sent)
            setattr(model, f"{channel.value}_sent_at", ensure_app_naive_datetime(status.sent_at))
            setattr(model, f"{channel.value}_message_id", status.message_id)
            setattr(model, f"{channel.value}_error", status.error)
        model.batch_id = notification.batch_id
        model.retry_count = notification.retry_count
        model.next_retry_at = ensure_app_naive_datetime(notification.next_retry_at)
        model.expires_at = ensure_app_naive_datetime(notification.expires_at)
        model.is_read = notification.is_read
        model.read_at = ensure_app_naive_datetime(notification.read_at)

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            recipient_id=model.recipient_id,
            sender_id=model.sender_id,
            type=NotificationType(model.type),
            priority=NotificationPriority(model.priority),
            title=model.title,
            content=model.content,
            data=_payload_to_data(model.data),
            icon=model.icon,
            image=model.image,
            action_url=model.action_url,
            actions=[
                NotificationAction(
                    label=item.get("label", ""),
                    action=item.get("action", ""),
                    style=ActionStyle(item.get("style") or ActionStyle.PRIMARY.value),
                )
                for item in (model.actions or [])
            ],
            channels=[NotificationChannel(channel) for channel in (model.channels or [])],
            status={
                channel: ChannelStatus(
                    sent=bool(getattr(model, f"{channel.value}_sent")),
                    sent_at=ensure_app_timezone(getattr(model, f"{channel.value}_sent_at")),
                    message_id=getattr(model, f"{channel.value}_message_id"),
                    error=getattr(model, f"{channel.value}_error"),
                )
                for channel in NotificationChannel
            },
            batch_id=model.batch_id,
            retry_count=model.retry_count or 0,
            next_retry_at=ensure_app_timezone(model.next_retry_at),
            expires_at=ensure_app_timezone(model.expires_at),
            is_read=bool(model.is_read),
            read_at=ensure_app_timezone(model.read_at),
            is_deleted=bool(model.is_deleted),
            deleted_at=ensure_app_timezone(model.deleted_at),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


def _data_to_payload(data: NotificationData | None) -> dict[str, Any]:
    if data is None:
        return {"object_type": None, "object_id": None, "extra": {}}
    return {
        "object_type": data.object_type.value if data.object_type else None,
        "object_id": data.object_id,
        "extra": data.extra or {},
    }


def _payload_to_data(payload: dict[str, Any] | None) -> NotificationData:
    payload = payload or {}
    object_type = payload.get("object_type")
    return NotificationData(
        object_type=ObjectType(object_type) if object_type else None,
        object_id=payload.get("object_id"),
        extra=payload.get("extra") or {},
    )


__all__ = ["NotificationRepository"]
