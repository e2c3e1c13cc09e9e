"""SQLAlchemy models for notification preferences and device tokens."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import expression

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class NotificationSettingsModel(Base):
    """Database representation of a user's notification preferences."""

    __tablename__ = "notification_settings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    enabled = Column(Boolean, nullable=False, default=True, server_default=expression.true())
    quiet_hours_enabled = Column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    quiet_hours_start = Column(String(5), nullable=False, default="22:00")
    quiet_hours_end = Column(String(5), nullable=False, default="08:00")
    # {"<type>": {"enabled": bool, "channels": [...]}}
    types = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(DateTime(), nullable=True, onupdate=now_in_app_naive_datetime)

    push_tokens = relationship(
        "PushTokenModel",
        back_populates="settings",
        cascade="all, delete-orphan",
        order_by="PushTokenModel.id",
        lazy="selectin",
    )


class PushTokenModel(Base):
    """Device token registered for push delivery."""

    __tablename__ = "push_token"

    id = Column(Integer, primary_key=True, index=True)
    settings_id = Column(
        Integer,
        ForeignKey("notification_settings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token = Column(String(512), nullable=False)
    device_id = Column(String(255), nullable=False)
    platform = Column(String(10), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default=expression.true())
    last_used = Column(DateTime(), nullable=True, default=now_in_app_naive_datetime)

    settings = relationship("NotificationSettingsModel", back_populates="push_tokens")


__all__ = ["NotificationSettingsModel", "PushTokenModel"]
