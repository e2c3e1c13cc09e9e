"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.sql import expression

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime

CHANNEL_COLUMN_PREFIXES = ("in_app", "push", "email", "sms")


class NotificationModel(Base):
    """Database representation for user notifications.

    Each channel keeps its delivery state in its own group of columns
    (``<channel>_sent``, ``<channel>_sent_at``, ``<channel>_message_id``,
    ``<channel>_error``) so that channels can be updated independently.
    """

    __tablename__ = "notification"
    __table_args__ = (
        Index("ix_notification_recipient_created", "recipient_id", "created_at"),
        Index("ix_notification_retry", "next_retry_at", "retry_count"),
    )

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, nullable=False, index=True)
    sender_id = Column(Integer, nullable=True, index=True)
    type = Column(String(30), nullable=False)
    priority = Column(String(10), nullable=False, default="normal")
    title = Column(String(100), nullable=False)
    content = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    icon = Column(String(255), nullable=True)
    image = Column(String(500), nullable=True)
    action_url = Column(String(500), nullable=True)
    actions = Column(JSON, nullable=False, default=list)
    channels = Column(JSON, nullable=False, default=list)

    in_app_sent = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    in_app_sent_at = Column(DateTime(), nullable=True)
    in_app_message_id = Column(String(255), nullable=True)
    in_app_error = Column(Text, nullable=True)

    push_sent = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    push_sent_at = Column(DateTime(), nullable=True)
    push_message_id = Column(String(255), nullable=True)
    push_error = Column(Text, nullable=True)

    email_sent = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    email_sent_at = Column(DateTime(), nullable=True)
    email_message_id = Column(String(255), nullable=True)
    email_error = Column(Text, nullable=True)

    sms_sent = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    sms_sent_at = Column(DateTime(), nullable=True)
    sms_message_id = Column(String(255), nullable=True)
    sms_error = Column(Text, nullable=True)

    batch_id = Column(String(64), nullable=True, index=True)
    retry_count = Column(Integer, nullable=False, default=0)
    next_retry_at = Column(DateTime(), nullable=True)
    expires_at = Column(DateTime(), nullable=True, index=True)
    is_read = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    read_at = Column(DateTime(), nullable=True)
    is_deleted = Column(
        Boolean, nullable=False, default=False, server_default=expression.false(), index=True
    )
    deleted_at = Column(DateTime(), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(DateTime(), nullable=True, onupdate=now_in_app_naive_datetime)


__all__ = ["CHANNEL_COLUMN_PREFIXES", "NotificationModel"]
