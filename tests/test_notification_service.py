from datetime import timedelta

import pytest

from app.domain.entities import NotificationChannel, NotificationType

from conftest import NOON, make_request

pytestmark = pytest.mark.anyio


async def test_failed_push_is_retried_until_a_token_exists(service, push_provider) -> None:
    await service.update_settings(1, types={"achievement": {"channels": ["in_app", "push"]}})

    notification = await service.create(
        make_request(channels=["in_app", "push", "email"])
    )
    assert notification.channels == [NotificationChannel.IN_APP, NotificationChannel.PUSH]
    await service.drain()

    stored = await service.get_notification(1, notification.id)
    assert stored.channel_status(NotificationChannel.IN_APP).sent is True
    push_status = stored.channel_status(NotificationChannel.PUSH)
    assert push_status.sent is False
    assert push_status.error == "Recipient has no active push tokens"
    assert stored.retry_count == 0
    assert stored.next_retry_at == NOON
    assert push_provider.calls == []

    report = await service.run_retry_sweep()
    assert report.total == 1
    assert report.rescheduled == 1

    stored = await service.get_notification(1, notification.id)
    assert stored.retry_count == 1
    assert stored.next_retry_at == NOON + timedelta(minutes=5)

    await service.add_push_token(1, token="fcm-token", device_id="phone", platform="android")
    report = await service.run_retry_sweep(NOON + timedelta(minutes=5))
    assert report.delivered == 1

    stored = await service.get_notification(1, notification.id)
    assert stored.channel_status(NotificationChannel.PUSH).sent is True
    assert stored.next_retry_at is None
    assert push_provider.calls[0][0] == ["fcm-token"]


async def test_opted_out_recipient_gets_nothing(service) -> None:
    await service.update_settings(1, enabled=False)

    assert await service.create(make_request()) is None
    assert service.tracker.pending == 0
    assert await service.list_notifications(1) == []


async def test_notification_without_channels_is_stored_but_not_sent(service) -> None:
    await service.update_settings(1, types={"achievement": {"channels": []}})

    notification = await service.create(make_request(channels=["in_app"]))

    assert notification.channels == []
    assert service.tracker.pending == 0
    assert await service.unread_count(1) == 1


async def test_manual_dispatch_is_restricted_to_owner(service, email_provider) -> None:
    await service.update_settings(1, types={"achievement": {"channels": ["in_app", "email"]}})
    email_provider.error = "mailbox unavailable"
    notification = await service.create(make_request(channels=["in_app", "email"]))
    await service.drain()

    with pytest.raises(ValueError):
        await service.dispatch(notification.id, user_id=2)

    email_provider.error = None
    results = await service.dispatch(notification.id, user_id=1)

    assert list(results) == [NotificationChannel.EMAIL]
    assert results[NotificationChannel.EMAIL].success is True
    assert len(email_provider.calls) == 2
    assert email_provider.calls[-1][0] == "ana@example.com"


async def test_dispatch_of_missing_notification_fails(service) -> None:
    with pytest.raises(ValueError):
        await service.dispatch(404)


async def test_achievement_helper(service) -> None:
    notification = await service.create_achievement_notification(
        1, achievement_id=7, name="Explorador", points=50
    )
    await service.drain()

    assert notification.type is NotificationType.ACHIEVEMENT
    assert notification.icon == "🏆"
    assert notification.data.object_id == "7"
    assert notification.data.extra["points"] == 50
    assert notification.channels == [NotificationChannel.IN_APP]


async def test_interaction_helper(service) -> None:
    notification = await service.create_interaction_notification(
        1,
        notification_type="like",
        sender_id=2,
        sender_name="Bruno",
        object_type="moment",
        object_id=15,
    )
    await service.drain()

    assert notification.sender_id == 2
    assert notification.content == "Bruno le dio me gusta a tu momento"
    assert notification.data.extra["sender_name"] == "Bruno"


async def test_system_helper_respects_channel_settings(service, email_provider) -> None:
    notification = await service.create_system_notification(
        1, title="Mantenimiento", content="El servicio se detendrá esta noche"
    )
    await service.drain()

    assert notification.sender_id is None
    assert notification.channels == [NotificationChannel.IN_APP]
    assert email_provider.calls == []


async def test_expiry_cleanup(service) -> None:
    await service.create(make_request(expires_at=NOON - timedelta(hours=1)))
    await service.create(make_request())
    await service.drain()

    assert await service.run_expiry_cleanup() == 1
    assert len(await service.list_notifications(1)) == 1
