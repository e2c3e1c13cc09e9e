"""Use cases for registering the push tokens of a user's devices."""

import logging

from sqlalchemy.orm import Session

from app.domain.entities import NotificationSettings, PushPlatform
from app.infrastructure.repositories import NotificationSettingsRepository

from .resolve_settings import resolve_settings

logger = logging.getLogger(__name__)


def add_push_token(
    session: Session,
    *,
    user_id: int,
    token: str,
    device_id: str,
    platform: PushPlatform | str,
) -> NotificationSettings:
    """Register ``token`` for ``device_id``, replacing the device's previous token."""

    if not token or not token.strip():
        raise ValueError("El token de notificaciones push es obligatorio")
    if not device_id or not device_id.strip():
        raise ValueError("El identificador del dispositivo es obligatorio")
    try:
        parsed_platform = PushPlatform(platform)
    except ValueError:
        raise ValueError(f"Plataforma no válida: {platform}") from None

    resolve_settings(session, user_id=user_id)
    settings = NotificationSettingsRepository(session).upsert_push_token(
        user_id,
        token=token.strip(),
        device_id=device_id.strip(),
        platform=parsed_platform,
    )
    logger.info("Registered push token for user %s on device %s", user_id, device_id)
    return settings


def remove_push_token(session: Session, *, user_id: int, device_id: str) -> bool:
    """Forget the token registered for ``device_id``; ``False`` when unknown."""

    removed = NotificationSettingsRepository(session).remove_push_token(
        user_id, device_id=device_id
    )
    if removed:
        logger.info("Removed push token for user %s on device %s", user_id, device_id)
    return removed


__all__ = ["add_push_token", "remove_push_token"]
