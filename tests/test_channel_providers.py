"""Unit tests for the provider clients wrapping SendGrid, Firebase and Twilio."""

from __future__ import annotations

import json
import types

import pytest
from twilio.base.exceptions import TwilioException

from app.config import Settings
from app.infrastructure.channels import (
    ChannelProviderError,
    FirebasePushProvider,
    SendGridEmailProvider,
    TwilioSmsProvider,
    render_notification_html,
)
from app.infrastructure.channels import email as email_module
from app.infrastructure.channels import push as push_module

SENDGRID_SETTINGS = Settings(sendgrid_api_key="SG.fake", sendgrid_sender="noreply@example.com")
TWILIO_SETTINGS = Settings(
    twilio_account_sid="AC123", twilio_auth_token="secret", twilio_sms_number="+15550001111"
)


class _RecordingClient:
    sent: list = []

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key

    def send(self, message):
        _RecordingClient.sent.append(message)
        return types.SimpleNamespace(
            status_code=202, body=None, headers={"X-Message-Id": "sg-message"}
        )


def test_email_requires_configuration() -> None:
    provider = SendGridEmailProvider(Settings(sendgrid_api_key=None, sendgrid_sender=None))

    assert provider.configured is False
    with pytest.raises(ChannelProviderError, match="configuration incomplete"):
        provider.send("user@example.com", "Asunto", "<p>Cuerpo</p>")


def test_email_success_returns_message_id(monkeypatch: pytest.MonkeyPatch) -> None:
    _RecordingClient.sent = []
    monkeypatch.setattr(email_module, "SendGridAPIClient", _RecordingClient)

    receipt = SendGridEmailProvider(SENDGRID_SETTINGS).send(
        "user@example.com", "Asunto", "<p>Cuerpo</p>"
    )

    assert receipt.message_id == "sg-message"
    assert len(_RecordingClient.sent) == 1


def test_email_forbidden_error_is_described(monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    class ForbiddenError(Exception):
        status_code = 403
        body = json.dumps(
            {"errors": [{"message": "The provided authorization grant is invalid."}]}
        ).encode()

    class FailingClient(_RecordingClient):
        def send(self, message):
            raise ForbiddenError()

    monkeypatch.setattr(email_module, "SendGridAPIClient", FailingClient)

    with caplog.at_level("ERROR"):
        with pytest.raises(ChannelProviderError) as excinfo:
            SendGridEmailProvider(SENDGRID_SETTINGS).send("user@example.com", "Asunto", "x")

    assert "status 403" in str(excinfo.value)
    assert "authorization grant is invalid" in caplog.text


def test_email_unexpected_status(monkeypatch: pytest.MonkeyPatch) -> None:
    class RejectingClient(_RecordingClient):
        def send(self, message):
            return types.SimpleNamespace(status_code=400, body=b"bad request", headers={})

    monkeypatch.setattr(email_module, "SendGridAPIClient", RejectingClient)

    with pytest.raises(ChannelProviderError, match="status 400: bad request"):
        SendGridEmailProvider(SENDGRID_SETTINGS).send("user@example.com", "Asunto", "x")


def test_render_notification_html_escapes_content() -> None:
    rendered = render_notification_html(
        "Hola <b>", "Texto & más", action_url="https://example.com/a?b=1&c=2"
    )

    assert "<h2>Hola &lt;b&gt;</h2>" in rendered
    assert "Texto &amp; más" in rendered
    assert 'href="https://example.com/a?b=1&amp;c=2"' in rendered


class _FakeMessages:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.created: list[dict] = []

    def create(self, **kwargs):
        if self.error:
            raise self.error
        self.created.append(kwargs)
        return types.SimpleNamespace(sid="SM123")


def test_sms_success_uses_configured_sender() -> None:
    messages = _FakeMessages()
    provider = TwilioSmsProvider(TWILIO_SETTINGS, client=types.SimpleNamespace(messages=messages))

    receipt = provider.send("+34600000001", "Hola")

    assert receipt.message_id == "SM123"
    assert messages.created == [{"body": "Hola", "from_": "+15550001111", "to": "+34600000001"}]


def test_sms_provider_error_is_translated() -> None:
    messages = _FakeMessages(TwilioException("invalid number"))
    provider = TwilioSmsProvider(TWILIO_SETTINGS, client=types.SimpleNamespace(messages=messages))

    with pytest.raises(ChannelProviderError, match="invalid number"):
        provider.send("+34600000001", "Hola")


def test_sms_requires_configuration() -> None:
    provider = TwilioSmsProvider(Settings(twilio_account_sid=None))

    assert provider.configured is False
    with pytest.raises(ChannelProviderError):
        provider.send("+34600000001", "Hola")


def _multicast_response(*outcomes):
    responses = [
        types.SimpleNamespace(
            success=error is None,
            message_id=None if error else f"fcm-{index}",
            exception=Exception(error) if error else None,
        )
        for index, error in enumerate(outcomes)
    ]
    success = sum(1 for item in responses if item.success)
    return types.SimpleNamespace(
        responses=responses, success_count=success, failure_count=len(responses) - success
    )


@pytest.fixture
def push_provider(monkeypatch: pytest.MonkeyPatch):
    provider = FirebasePushProvider(Settings(firebase_credentials_path="credentials.json"))
    monkeypatch.setattr(provider, "_get_app", lambda: None)
    return provider


def test_push_partial_delivery_succeeds(monkeypatch: pytest.MonkeyPatch, push_provider) -> None:
    sent = []

    def fake_send(message, app=None):
        sent.append(message)
        return _multicast_response("unregistered", None)

    monkeypatch.setattr(push_module.messaging, "send_each_for_multicast", fake_send)

    receipt = push_provider.send_to_tokens(
        ["stale", "fresh"],
        {"title": "Hola", "body": "Mundo", "data": {"notification_id": 5, "image": None}},
    )

    assert receipt.message_id == "fcm-1"
    assert sent[0].tokens == ["stale", "fresh"]
    assert sent[0].data == {"notification_id": "5"}


def test_push_rejected_by_every_token(monkeypatch: pytest.MonkeyPatch, push_provider) -> None:
    monkeypatch.setattr(
        push_module.messaging,
        "send_each_for_multicast",
        lambda message, app=None: _multicast_response("unregistered"),
    )

    with pytest.raises(ChannelProviderError, match="rejected all 1 tokens: unregistered"):
        push_provider.send_to_tokens(["stale"], {"title": "Hola", "body": "Mundo"})


def test_push_without_tokens(push_provider) -> None:
    with pytest.raises(ChannelProviderError):
        push_provider.send_to_tokens([], {"title": "Hola", "body": "Mundo"})
