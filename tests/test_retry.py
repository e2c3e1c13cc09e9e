from datetime import timedelta

import pytest

from app.application.use_cases.notification_settings import update_settings
from app.application.use_cases.notifications import (
    compute_next_retry_at,
    create_notification,
    dispatch_notification,
    run_retry_sweep,
)
from app.domain.entities import ChannelStatus, NotificationChannel
from app.infrastructure.channels import ChannelProviderError
from app.infrastructure.notifications import ChannelProviders
from app.infrastructure.repositories import NotificationRepository

from conftest import NOON, FakeEmailProvider, make_request

pytestmark = pytest.mark.anyio


def _create_with_email(session, user_id=1, **options):
    update_settings(session, user_id=user_id, types={"system": {"channels": ["in_app", "email"]}})
    return create_notification(
        session,
        make_request(recipient_id=user_id, type="system", channels=["in_app", "email"]),
        now=NOON,
        **options,
    )


@pytest.mark.parametrize(
    ("retry_count", "minutes"), [(0, 5), (1, 10), (2, 20), (3, 40)]
)
def test_backoff_doubles_from_base(retry_count, minutes) -> None:
    assert compute_next_retry_at(NOON, retry_count) - NOON == timedelta(minutes=minutes)


def test_backoff_base_is_configurable() -> None:
    assert compute_next_retry_at(NOON, 2, base_delay_minutes=1) - NOON == timedelta(minutes=4)


async def test_initial_failure_is_due_immediately(session, providers) -> None:
    notification = _create_with_email(session, user_id=2)

    results = await dispatch_notification(session, notification, providers, now=NOON)

    assert results[NotificationChannel.EMAIL].success is False
    stored = NotificationRepository(session).get(notification.id)
    assert stored.retry_count == 0
    assert stored.next_retry_at == NOON


async def test_successful_initial_dispatch_schedules_nothing(session, providers) -> None:
    notification = _create_with_email(session)

    await dispatch_notification(session, notification, providers, now=NOON)

    stored = NotificationRepository(session).get(notification.id)
    assert stored.is_delivered()
    assert stored.next_retry_at is None


async def test_failures_back_off_until_abandoned(session, session_factory, providers) -> None:
    notification = _create_with_email(session, user_id=2)
    await dispatch_notification(session, notification, providers, now=NOON)
    repository = NotificationRepository(session)

    now = NOON
    for attempt, delay in enumerate((5, 10, 20), start=1):
        report = await run_retry_sweep(session_factory, providers, now=now)
        stored = repository.get(notification.id)

        assert report.total == 1
        assert stored.retry_count == attempt
        assert stored.next_retry_at - now == timedelta(minutes=delay)
        assert stored.channel_status(NotificationChannel.IN_APP).sent is True
        assert stored.channel_status(NotificationChannel.EMAIL).error
        now = stored.next_retry_at

    assert report.abandoned == 1
    final_report = await run_retry_sweep(session_factory, providers, now=now + timedelta(days=1))
    assert final_report.total == 0
    assert repository.get(notification.id).retry_count == 3


async def test_retry_delivers_pending_channels_only(session, session_factory, contacts) -> None:
    email_provider = FakeEmailProvider(error="SendGrid request failed with status 503")
    providers = ChannelProviders(email=email_provider, contacts=contacts)
    notification = _create_with_email(session)
    await dispatch_notification(session, notification, providers, now=NOON)

    email_provider.error = None
    report = await run_retry_sweep(session_factory, providers, now=NOON)

    assert report.delivered == 1
    stored = NotificationRepository(session).get(notification.id)
    assert stored.is_delivered()
    assert stored.retry_count == 1
    assert stored.next_retry_at is None
    assert stored.channel_status(NotificationChannel.EMAIL).error is None
    assert len(email_provider.calls) == 2


async def test_retry_not_due_yet_is_ignored(session, session_factory, providers) -> None:
    notification = _create_with_email(session, user_id=2)
    await dispatch_notification(session, notification, providers, now=NOON)

    report = await run_retry_sweep(session_factory, providers, now=NOON - timedelta(minutes=1))

    assert report.total == 0
    assert NotificationRepository(session).get(notification.id).retry_count == 0


async def test_claim_is_granted_once(session, providers) -> None:
    notification = _create_with_email(session, user_id=2)
    await dispatch_notification(session, notification, providers, now=NOON)
    repository = NotificationRepository(session)
    candidate = repository.list_retry_candidates(NOON, max_attempts=3)[0]

    assert repository.claim_retry(candidate) is True
    assert repository.claim_retry(candidate) is False


async def test_deferred_delivery_does_not_consume_a_retry(
    session, session_factory, providers
) -> None:
    update_settings(
        session, user_id=1, quiet_hours={"enabled": True, "start": "11:00", "end": "13:00"}
    )
    notification = _create_with_email(session, quiet_hours_policy="defer")
    assert notification.next_retry_at is not None

    report = await run_retry_sweep(session_factory, providers, now=notification.next_retry_at)

    assert report.delivered == 1
    stored = NotificationRepository(session).get(notification.id)
    assert stored.is_delivered()
    assert stored.retry_count == 0


class ResentElsewhereEmailProvider:
    """Fails, after another dispatch has already delivered the email."""

    def __init__(self, session_factory, notification_id) -> None:
        self.session_factory = session_factory
        self.notification_id = notification_id

    def send(self, to, subject, body):
        with self.session_factory() as other_session:
            NotificationRepository(other_session).update_channel_status(
                self.notification_id,
                NotificationChannel.EMAIL,
                ChannelStatus(sent=True, sent_at=NOON, message_id="manual-1"),
            )
        raise ChannelProviderError("SendGrid request failed with status 503")


async def test_channel_delivered_by_another_dispatch_counts_as_delivered(
    session, session_factory, contacts
) -> None:
    notification = _create_with_email(session)
    failing = ChannelProviders(
        email=FakeEmailProvider(error="SendGrid request failed with status 503"),
        contacts=contacts,
    )
    await dispatch_notification(session, notification, failing, now=NOON)

    providers = ChannelProviders(
        email=ResentElsewhereEmailProvider(session_factory, notification.id),
        contacts=contacts,
    )
    report = await run_retry_sweep(session_factory, providers, now=NOON)

    assert report.delivered == 1
    assert report.rescheduled == 0
    stored = NotificationRepository(session).get(notification.id)
    assert stored.is_delivered()
    assert stored.retry_count == 1
    assert stored.next_retry_at is None
    assert stored.channel_status(NotificationChannel.EMAIL).message_id == "manual-1"
