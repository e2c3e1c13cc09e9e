"""Use case removing expired notifications."""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.infrastructure.repositories import NotificationRepository
from app.utils import ensure_app_timezone, now_in_app_timezone

logger = logging.getLogger(__name__)


def cleanup_expired(session: Session, *, now: datetime | None = None) -> int:
    """Delete every notification whose ``expires_at`` is not later than ``now``."""

    current_time = ensure_app_timezone(now) if now is not None else now_in_app_timezone()
    try:
        deleted = NotificationRepository(session).delete_expired(current_time)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Expired notification cleanup failed")
        return 0

    if deleted:
        logger.info("Deleted %s expired notification(s)", deleted)
    return deleted


__all__ = ["cleanup_expired"]
