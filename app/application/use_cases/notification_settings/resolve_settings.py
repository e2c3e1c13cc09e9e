"""Use case returning the notification preferences of a user."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.domain.entities import NotificationSettings
from app.infrastructure.repositories import NotificationSettingsRepository

logger = logging.getLogger(__name__)


def resolve_settings(session: Session, *, user_id: int) -> NotificationSettings:
    """Return the settings of ``user_id`` creating the defaults on first access."""

    repository = NotificationSettingsRepository(session)
    existing = repository.get_by_user(user_id)
    if existing is not None:
        return existing

    try:
        created = repository.create(NotificationSettings(id=None, user_id=user_id))
    except IntegrityError:
        logger.info("Notification settings for user %s created concurrently", user_id)
        existing = repository.get_by_user(user_id)
        if existing is None:
            raise
        return existing

    logger.info("Created default notification settings for user %s", user_id)
    return created


__all__ = ["resolve_settings"]
