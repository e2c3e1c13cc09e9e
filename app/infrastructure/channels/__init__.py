"""Provider clients used to deliver notifications outside the application."""

from .base import (
    ChannelProviderError,
    ContactDirectory,
    EmailProvider,
    ProviderReceipt,
    PushProvider,
    SmsProvider,
)
from .email import SendGridEmailProvider, render_notification_html
from .push import FirebasePushProvider
from .sms import TwilioSmsProvider

__all__ = [
    "ChannelProviderError",
    "ContactDirectory",
    "EmailProvider",
    "FirebasePushProvider",
    "ProviderReceipt",
    "PushProvider",
    "SendGridEmailProvider",
    "SmsProvider",
    "TwilioSmsProvider",
    "render_notification_html",
]
