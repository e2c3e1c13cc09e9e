"""Provider interfaces consumed by the channel dispatchers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from app.domain.entities import ContactInfo


class ChannelProviderError(Exception):
    """Raised by a provider client when a message could not be handed over."""


@dataclass
class ProviderReceipt:
    message_id: str | None = None


class PushProvider(Protocol):
    def send_to_tokens(self, tokens: Sequence[str], payload: dict[str, Any]) -> ProviderReceipt:
        ...


class EmailProvider(Protocol):
    def send(self, to: str, subject: str, body: str) -> ProviderReceipt:
        ...


class SmsProvider(Protocol):
    def send(self, phone: str, body: str) -> ProviderReceipt:
        ...


class ContactDirectory(Protocol):
    def get_contact_info(self, user_id: int) -> ContactInfo:
        ...


__all__ = [
    "ChannelProviderError",
    "ContactDirectory",
    "EmailProvider",
    "ProviderReceipt",
    "PushProvider",
    "SmsProvider",
]
