"""Push delivery through Firebase Cloud Messaging."""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Sequence

import firebase_admin
from firebase_admin import credentials, messaging

from app.config import Settings, get_settings

from .base import ChannelProviderError, ProviderReceipt

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()


class FirebasePushProvider:
    """Send multicast push messages to the device tokens of a user."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._app: firebase_admin.App | None = None

    def _get_app(self) -> firebase_admin.App:
        if self._app is not None:
            return self._app
        with _init_lock:
            try:
                self._app = firebase_admin.get_app()
            except ValueError:
                cred_path = self._settings.firebase_credentials_path
                try:
                    if cred_path and os.path.exists(cred_path):
                        self._app = firebase_admin.initialize_app(credentials.Certificate(cred_path))
                    else:
                        # Default application credentials (Cloud Run, GKE, ...)
                        self._app = firebase_admin.initialize_app()
                except Exception as exc:
                    logger.error("Firebase Admin initialisation failed: %s", exc)
                    raise ChannelProviderError(f"Firebase is not configured: {exc}") from exc
        return self._app

    def send_to_tokens(self, tokens: Sequence[str], payload: dict[str, Any]) -> ProviderReceipt:
        if not tokens:
            raise ChannelProviderError("No push tokens provided")

        message = messaging.MulticastMessage(
            tokens=list(tokens),
            notification=messaging.Notification(
                title=payload.get("title"),
                body=payload.get("body"),
                image=payload.get("image"),
            ),
            data={
                key: str(value)
                for key, value in (payload.get("data") or {}).items()
                if value is not None
            },
        )

        try:
            response = messaging.send_each_for_multicast(message, app=self._get_app())
        except ChannelProviderError:
            raise
        except Exception as exc:
            raise ChannelProviderError(f"FCM request failed: {exc}") from exc

        if response.success_count == 0:
            errors = [str(item.exception) for item in response.responses if item.exception]
            detail = errors[0] if errors else "unknown error"
            raise ChannelProviderError(f"FCM rejected all {len(tokens)} tokens: {detail}")

        if response.failure_count:
            logger.warning(
                "FCM delivered to %s of %s tokens", response.success_count, len(tokens)
            )
        message_id = next(
            (item.message_id for item in response.responses if item.success), None
        )
        return ProviderReceipt(message_id=message_id)


__all__ = ["FirebasePushProvider"]
