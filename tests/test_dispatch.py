import time

import anyio
import pytest

from app.application.use_cases.notification_settings import add_push_token, update_settings
from app.application.use_cases.notifications import create_notification
from app.domain.entities import NotificationChannel
from app.infrastructure.notifications import ChannelProviders, DispatchOrchestrator
from app.infrastructure.repositories import NotificationRepository

from conftest import NOON, FakeEmailProvider, FakeSmsProvider, make_request

pytestmark = pytest.mark.anyio

ALL_CHANNELS = ["in_app", "push", "email", "sms"]


def _create(session, user_id=1, channels=ALL_CHANNELS, **overrides):
    update_settings(session, user_id=user_id, types={"system": {"channels": ALL_CHANNELS}})
    return create_notification(
        session,
        make_request(recipient_id=user_id, type="system", channels=channels, **overrides),
        now=NOON,
    )


async def test_achievement_without_push_tokens(session, providers, push_provider) -> None:
    update_settings(session, user_id=1, types={"achievement": {"channels": ["in_app", "push"]}})
    notification = create_notification(
        session, make_request(channels=["in_app", "push", "email"]), now=NOON
    )
    assert notification.channels == [NotificationChannel.IN_APP, NotificationChannel.PUSH]

    results = await DispatchOrchestrator(session, providers).dispatch(notification)

    assert results[NotificationChannel.IN_APP].success is True
    assert results[NotificationChannel.PUSH].success is False
    assert "no active push tokens" in results[NotificationChannel.PUSH].error
    assert push_provider.calls == []

    stored = NotificationRepository(session).get(notification.id)
    assert stored.channel_status(NotificationChannel.IN_APP).sent is True
    assert stored.channel_status(NotificationChannel.IN_APP).sent_at is not None
    assert stored.channel_status(NotificationChannel.PUSH).sent is False
    assert "no active push tokens" in stored.channel_status(NotificationChannel.PUSH).error
    assert stored.channel_status(NotificationChannel.EMAIL).attempted is False


async def test_all_channels_delivered(
    session, providers, push_provider, email_provider, sms_provider
) -> None:
    add_push_token(session, user_id=1, token="tok-1", device_id="phone", platform="android")
    notification = _create(session, action_url="https://example.com/inbox")

    results = await DispatchOrchestrator(session, providers).dispatch(notification)

    assert all(result.success for result in results.values())
    assert set(results) == set(NotificationChannel)
    assert push_provider.calls[0][0] == ["tok-1"]
    assert push_provider.calls[0][1]["data"]["notification_id"] == notification.id
    to, subject, body = email_provider.calls[0]
    assert to == "ana@example.com"
    assert subject == notification.title
    assert "https://example.com/inbox" in body
    assert sms_provider.calls == [("+34600000001", f"{notification.title}: {notification.content}")]

    stored = NotificationRepository(session).get(notification.id)
    assert stored.is_delivered()
    assert stored.channel_status(NotificationChannel.EMAIL).message_id == "email-1"


async def test_one_channel_failure_does_not_block_others(session, contacts) -> None:
    sms_provider = FakeSmsProvider()
    providers = ChannelProviders(
        email=FakeEmailProvider(error="SendGrid request failed with status 500"),
        sms=sms_provider,
        contacts=contacts,
    )
    notification = _create(session, channels=["email", "sms"])

    results = await DispatchOrchestrator(session, providers).dispatch(notification)

    assert results[NotificationChannel.EMAIL].success is False
    assert results[NotificationChannel.EMAIL].error == "SendGrid request failed with status 500"
    assert results[NotificationChannel.SMS].success is True
    assert len(sms_provider.calls) == 1


async def test_missing_contact_details_fail_the_channel(session, providers) -> None:
    notification = _create(session, user_id=2, channels=["email", "sms"])

    results = await DispatchOrchestrator(session, providers).dispatch(notification)

    assert results[NotificationChannel.EMAIL].error == "Recipient has no email address"
    assert results[NotificationChannel.SMS].error == "Recipient has no phone number"


async def test_unconfigured_provider_fails_the_channel(session, contacts) -> None:
    notification = _create(session, channels=["email"])

    results = await DispatchOrchestrator(session, ChannelProviders(contacts=contacts)).dispatch(
        notification
    )

    assert results[NotificationChannel.EMAIL].error == "Email provider is not configured"


async def test_slow_provider_times_out(session, contacts) -> None:
    providers = ChannelProviders(email=FakeEmailProvider(delay=0.5), contacts=contacts)
    notification = _create(session, channels=["in_app", "email"])

    results = await DispatchOrchestrator(session, providers, timeout=0.05).dispatch(notification)

    assert results[NotificationChannel.IN_APP].success is True
    assert results[NotificationChannel.EMAIL].success is False
    assert "timed out" in results[NotificationChannel.EMAIL].error


async def test_sent_channels_are_not_sent_again(session, providers, email_provider) -> None:
    notification = _create(session, channels=["in_app", "email"])
    orchestrator = DispatchOrchestrator(session, providers)

    await orchestrator.dispatch(notification)
    stored = NotificationRepository(session).get(notification.id)
    results = await orchestrator.dispatch(stored)

    assert results == {}
    assert len(email_provider.calls) == 1


async def test_unknown_channels_are_skipped(session, providers) -> None:
    notification = _create(session, channels=["in_app"])

    results = await DispatchOrchestrator(session, providers).dispatch(
        notification, ["in_app", "pager", "in_app"]
    )

    assert list(results) == [NotificationChannel.IN_APP]


async def test_status_writes_do_not_block_other_dispatches(
    session, session_factory, providers, monkeypatch
) -> None:
    first = _create(session, channels=["in_app"])
    second = _create(session, user_id=2, channels=["in_app"])

    def slow_update(self, notification_id, channel, status):
        time.sleep(0.5)
        return True

    monkeypatch.setattr(NotificationRepository, "update_channel_status", slow_update)

    async def _dispatch(notification) -> None:
        with session_factory() as own_session:
            await DispatchOrchestrator(own_session, providers).dispatch(notification)

    started = time.perf_counter()
    async with anyio.create_task_group() as task_group:
        task_group.start_soon(_dispatch, first)
        task_group.start_soon(_dispatch, second)
    elapsed = time.perf_counter() - started

    assert elapsed < 0.9
    assert first.channel_status(NotificationChannel.IN_APP).sent is True
    assert second.channel_status(NotificationChannel.IN_APP).sent is True
