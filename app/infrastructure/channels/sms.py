"""SMS delivery through Twilio."""

from __future__ import annotations

import logging

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from app.config import Settings, get_settings

from .base import ChannelProviderError, ProviderReceipt

logger = logging.getLogger(__name__)


class TwilioSmsProvider:
    """Send text messages from the configured Twilio number."""

    def __init__(self, settings: Settings | None = None, client: Client | None = None) -> None:
        self._settings = settings or get_settings()
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(
            self._settings.twilio_account_sid
            and self._settings.twilio_auth_token
            and self._settings.twilio_sms_number
        )

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = Client(
                self._settings.twilio_account_sid, self._settings.twilio_auth_token
            )
        return self._client

    def send(self, phone: str, body: str) -> ProviderReceipt:
        if not self.configured:
            raise ChannelProviderError("Twilio configuration incomplete")
        try:
            message = self._get_client().messages.create(
                body=body, from_=self._settings.twilio_sms_number, to=phone
            )
        except TwilioException as exc:
            logger.warning("SMS not sent to %s: %s", phone, exc)
            raise ChannelProviderError(f"Twilio request failed: {exc}") from exc
        return ProviderReceipt(message_id=getattr(message, "sid", None))


__all__ = ["TwilioSmsProvider"]
