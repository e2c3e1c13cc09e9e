"""Persistence layer for notification preferences."""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.domain.entities import (
    NotificationChannel,
    NotificationSettings,
    NotificationType,
    PushPlatform,
    PushToken,
    QuietHours,
    TypePreference,
)
from app.infrastructure.models import NotificationSettingsModel, PushTokenModel
from app.utils import ensure_app_naive_datetime, ensure_app_timezone, now_in_app_timezone


class NotificationSettingsRepository:
    """Provide CRUD operations for :class:`NotificationSettings` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_user(self, user_id: int) -> NotificationSettings | None:
        model = self._get_model(user_id)
        return self._to_entity(model) if model else None

    def create(self, settings: NotificationSettings) -> NotificationSettings:
        """Insert ``settings``.

        Raises :class:`IntegrityError` when a record already exists for the user;
        the session is rolled back before re-raising so it stays usable.
        """

        model = NotificationSettingsModel(user_id=settings.user_id)
        self._apply_entity_to_model(model, settings)
        self.session.add(model)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
        self.session.refresh(model)
        return self._to_entity(model)

    def update(self, settings: NotificationSettings) -> NotificationSettings:
        model = self._get_model(settings.user_id)
        if model is None:
            msg = f"Notification settings for user {settings.user_id} not found"
            raise ValueError(msg)
        self._apply_entity_to_model(model, settings)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def upsert_push_token(
        self,
        user_id: int,
        *,
        token: str,
        device_id: str,
        platform: PushPlatform,
    ) -> NotificationSettings:
        """Register ``token`` for ``device_id`` replacing any previous token."""

        model = self._get_model(user_id)
        if model is None:
            msg = f"Notification settings for user {user_id} not found"
            raise ValueError(msg)
        model.push_tokens = [
            existing for existing in model.push_tokens if existing.device_id != device_id
        ]
        model.push_tokens.append(
            PushTokenModel(
                token=token,
                device_id=device_id,
                platform=PushPlatform(platform).value,
                is_active=True,
                last_used=ensure_app_naive_datetime(now_in_app_timezone()),
            )
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def remove_push_token(self, user_id: int, *, device_id: str) -> bool:
        model = self._get_model(user_id)
        if model is None:
            return False
        remaining = [token for token in model.push_tokens if token.device_id != device_id]
        if len(remaining) == len(model.push_tokens):
            return False
        model.push_tokens = remaining
        self.session.add(model)
        self.session.commit()
        return True

    def _get_model(self, user_id: int) -> NotificationSettingsModel | None:
        return (
            self.session.query(NotificationSettingsModel)
            .populate_existing()
            .filter(NotificationSettingsModel.user_id == user_id)
            .one_or_none()
        )

    @staticmethod
    def _apply_entity_to_model(
        model: NotificationSettingsModel, settings: NotificationSettings
    ) -> None:
        model.enabled = settings.enabled
        model.quiet_hours_enabled = settings.quiet_hours.enabled
        model.quiet_hours_start = settings.quiet_hours.start
        model.quiet_hours_end = settings.quiet_hours.end
        model.types = {
            NotificationType(notification_type).value: {
                "enabled": preference.enabled,
                "channels": [NotificationChannel(channel).value for channel in preference.channels],
            }
            for notification_type, preference in settings.types.items()
        }

    @staticmethod
    def _to_entity(model: NotificationSettingsModel) -> NotificationSettings:
        return NotificationSettings(
            id=model.id,
            user_id=model.user_id,
            enabled=bool(model.enabled),
            quiet_hours=QuietHours(
                enabled=bool(model.quiet_hours_enabled),
                start=model.quiet_hours_start,
                end=model.quiet_hours_end,
            ),
            types=_types_from_payload(model.types),
            push_tokens=[
                PushToken(
                    token=token.token,
                    device_id=token.device_id,
                    platform=PushPlatform(token.platform),
                    is_active=bool(token.is_active),
                    last_used=ensure_app_timezone(token.last_used),
                )
                for token in model.push_tokens
            ],
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


def _types_from_payload(payload: dict[str, Any] | None) -> dict[NotificationType, TypePreference]:
    preferences: dict[NotificationType, TypePreference] = {}
    known_types = {item.value for item in NotificationType}
    known_channels = {item.value for item in NotificationChannel}
    for raw_type, raw_preference in (payload or {}).items():
        if raw_type not in known_types or not isinstance(raw_preference, dict):
            continue
        preferences[NotificationType(raw_type)] = TypePreference(
            enabled=bool(raw_preference.get("enabled", False)),
            channels=[
                NotificationChannel(channel)
                for channel in raw_preference.get("channels") or []
                if channel in known_channels
            ],
        )
    return preferences


__all__ = ["NotificationSettingsRepository"]
