"""Use case for creating several notifications under one batch identifier."""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.entities import Notification, NotificationRequest

from .create_notification import create_notification

logger = logging.getLogger(__name__)

_BATCH_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_BATCH_SUFFIX_LENGTH = 9


def generate_batch_id() -> str:
    """Return an identifier such as ``batch_1718000000000_k3j9x0q2a``."""

    suffix = "".join(secrets.choice(_BATCH_ALPHABET) for _ in range(_BATCH_SUFFIX_LENGTH))
    return f"batch_{int(time.time() * 1000)}_{suffix}"


def create_notification_batch(
    session: Session,
    requests: Iterable[NotificationRequest],
    *,
    batch_id: str | None = None,
    **create_options: Any,
) -> list[Notification]:
    """Create every request in order under one batch id and return the created items.

    Invalid requests, opt-outs and storage errors are logged and skipped; the
    notifications already created are kept.
    """

    batch_id = batch_id or generate_batch_id()
    created: list[Notification] = []
    for position, request in enumerate(requests, start=1):
        try:
            notification = create_notification(
                session, replace(request, batch_id=batch_id), **create_options
            )
        except ValueError as exc:
            logger.warning("Skipping item %s of batch %s: %s", position, batch_id, exc)
            continue
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Could not store item %s of batch %s", position, batch_id)
            continue

        if notification is not None:
            created.append(notification)

    logger.info("Batch %s created %s notification(s)", batch_id, len(created))
    return created


__all__ = ["create_notification_batch", "generate_batch_id"]
