"""Email delivery through the SendGrid REST API."""

from __future__ import annotations

import html
import json
import logging
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from app.config import Settings, get_settings

from .base import ChannelProviderError, ProviderReceipt

logger = logging.getLogger(__name__)


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages = [
                str(item["message"])
                for item in errors
                if isinstance(item, dict) and item.get("message")
            ]
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _describe_failure(status_code: Any, body: Any) -> str:
    details = _extract_sendgrid_error_details(body)
    if status_code and details:
        return f"SendGrid request failed with status {status_code}: {details}"
    if status_code:
        return f"SendGrid request failed with status {status_code}"
    if details:
        return f"SendGrid request failed: {details}"
    return "SendGrid request failed"


def render_notification_html(subject: str, body: str, action_url: str | None = None) -> str:
    """Wrap a plain notification body in the transactional email layout."""

    parts = [
        '<div style="max-width: 600px; margin: 0 auto; padding: 20px; font-family: Arial, sans-serif;">',
        f"<h2>{html.escape(subject)}</h2>",
        f"<p>{html.escape(body)}</p>",
    ]
    if action_url:
        parts.append(f'<p><a href="{html.escape(action_url, quote=True)}">Ver detalle</a></p>')
    parts.append(
        '<p style="color: #999; font-size: 12px;">Este correo fue enviado automáticamente, '
        "por favor no respondas.</p>"
    )
    parts.append("</div>")
    return "".join(parts)


class SendGridEmailProvider:
    """Send notification emails with the configured SendGrid credentials."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    @property
    def configured(self) -> bool:
        return bool(self._settings.sendgrid_api_key and self._settings.sendgrid_sender)

    def send(self, to: str, subject: str, body: str) -> ProviderReceipt:
        if not self.configured:
            raise ChannelProviderError("SendGrid configuration incomplete")

        message = Mail(
            from_email=self._settings.sendgrid_sender,
            to_emails=to,
            subject=subject,
            html_content=body,
        )

        try:
            client = SendGridAPIClient(self._settings.sendgrid_api_key)
            response = client.send(message)
        except Exception as exc:
            description = _describe_failure(
                getattr(exc, "status_code", None), getattr(exc, "body", None)
            )
            logger.error("%s (recipient %s)", description, to)
            raise ChannelProviderError(description) from exc

        status_code = getattr(response, "status_code", None)
        if not isinstance(status_code, int) or not 200 <= status_code < 300:
            description = _describe_failure(status_code, getattr(response, "body", None))
            logger.error("%s (recipient %s)", description, to)
            raise ChannelProviderError(description)

        headers = getattr(response, "headers", None) or {}
        return ProviderReceipt(message_id=headers.get("X-Message-Id"))


__all__ = ["SendGridEmailProvider", "render_notification_html"]
