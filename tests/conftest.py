"""Shared fixtures: per-test SQLite database, fake providers and service wiring."""

from __future__ import annotations

import time
from datetime import datetime, timezone

import pytest

from app.application.notification_service import NotificationService
from app.config import Settings
from app.domain.entities import ContactInfo, NotificationRequest
from app.infrastructure.channels import ChannelProviderError, ProviderReceipt
from app.infrastructure.database import (
    build_engine,
    build_session_factory,
    initialize_database,
)
from app.infrastructure.notifications import ChannelProviders, DispatchTaskTracker

NOON = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)


class FakePushProvider:
    def __init__(self, error: str | None = None) -> None:
        self.error = error
        self.calls: list[tuple[list[str], dict]] = []

    def send_to_tokens(self, tokens, payload):
        self.calls.append((list(tokens), payload))
        if self.error:
            raise ChannelProviderError(self.error)
        return ProviderReceipt(message_id=f"push-{len(self.calls)}")


class FakeEmailProvider:
    def __init__(self, error: str | None = None, delay: float = 0) -> None:
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, str, str]] = []

    def send(self, to, subject, body):
        self.calls.append((to, subject, body))
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise ChannelProviderError(self.error)
        return ProviderReceipt(message_id=f"email-{len(self.calls)}")


class FakeSmsProvider:
    def __init__(self, error: str | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def send(self, phone, body):
        self.calls.append((phone, body))
        if self.error:
            raise ChannelProviderError(self.error)
        return ProviderReceipt(message_id=f"sms-{len(self.calls)}")


class FakeContacts:
    def __init__(self, contacts: dict[int, ContactInfo] | None = None) -> None:
        self.contacts = contacts or {}

    def get_contact_info(self, user_id):
        return self.contacts.get(user_id, ContactInfo())


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_request(**overrides) -> NotificationRequest:
    values = {
        "recipient_id": 1,
        "type": "achievement",
        "title": "Nuevo logro",
        "content": "Has completado tu primer momento",
    }
    values.update(overrides)
    return NotificationRequest(**values)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def engine(tmp_path):
    # One connection per session; storage calls run in worker threads.
    engine = build_engine(f"sqlite:///{tmp_path / 'notifications.db'}")
    initialize_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def push_provider():
    return FakePushProvider()


@pytest.fixture
def email_provider():
    return FakeEmailProvider()


@pytest.fixture
def sms_provider():
    return FakeSmsProvider()


@pytest.fixture
def contacts():
    return FakeContacts(
        {
            1: ContactInfo(email="ana@example.com", phone="+34600000001"),
            2: ContactInfo(),
        }
    )


@pytest.fixture
def providers(push_provider, email_provider, sms_provider, contacts):
    return ChannelProviders(
        push=push_provider, email=email_provider, sms=sms_provider, contacts=contacts
    )


@pytest.fixture
def app_settings():
    return Settings(
        retry_sweep_interval_seconds=0,
        expiry_cleanup_interval_seconds=0,
        channel_send_timeout_seconds=1,
    )


@pytest.fixture
def clock():
    return FakeClock(NOON)


@pytest.fixture
def service(session_factory, providers, app_settings, clock):
    return NotificationService(
        session_factory,
        providers,
        settings=app_settings,
        tracker=DispatchTaskTracker(10),
        clock=clock,
    )
