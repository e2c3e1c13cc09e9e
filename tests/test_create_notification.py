from datetime import datetime, timedelta, timezone

from app.application.use_cases.notification_settings import resolve_settings, update_settings
from app.application.use_cases.notifications import create_notification
from app.domain.entities import NotificationChannel, NotificationType
from app.infrastructure.repositories import (
    NotificationRepository,
    NotificationSettingsRepository,
)

from conftest import NOON, make_request


def _recorder():
    scheduled = []
    return scheduled, scheduled.append


def test_opt_out_of_type_creates_nothing(session) -> None:
    update_settings(session, user_id=1, types={"achievement": {"enabled": False}})
    scheduled, schedule = _recorder()

    result = create_notification(session, make_request(), now=NOON, schedule_dispatch=schedule)

    assert result is None
    assert scheduled == []
    assert NotificationRepository(session).list_for_user(1) == []


def test_global_opt_out_creates_nothing(session) -> None:
    update_settings(session, user_id=1, enabled=False)

    assert create_notification(session, make_request(), now=NOON) is None
    assert NotificationRepository(session).count_unread(1) == 0


def test_missing_type_preference_is_treated_as_disabled(session) -> None:
    settings = resolve_settings(session, user_id=1)
    settings.types.pop(NotificationType.ACHIEVEMENT)
    NotificationSettingsRepository(session).update(settings)

    assert create_notification(session, make_request(), now=NOON) is None


def test_channels_are_narrowed_to_allowed_ones_in_request_order(session) -> None:
    update_settings(
        session, user_id=1, types={"achievement": {"channels": ["push", "in_app", "sms"]}}
    )
    scheduled, schedule = _recorder()

    notification = create_notification(
        session,
        make_request(channels=["email", "sms", "in_app"]),
        now=NOON,
        schedule_dispatch=schedule,
    )

    assert notification is not None
    assert notification.id is not None
    assert notification.channels == [NotificationChannel.SMS, NotificationChannel.IN_APP]
    assert notification.retry_count == 0
    assert notification.next_retry_at is None
    assert notification.created_at == NOON
    assert [item.id for item in scheduled] == [notification.id]

    stored = NotificationRepository(session).get(notification.id)
    assert stored.channels == [NotificationChannel.SMS, NotificationChannel.IN_APP]


def test_record_is_kept_when_no_channel_is_allowed(session) -> None:
    scheduled, schedule = _recorder()

    notification = create_notification(
        session, make_request(channels=["email"]), now=NOON, schedule_dispatch=schedule
    )

    assert notification is not None
    assert notification.channels == []
    assert scheduled == []


def test_quiet_hours_proceed_policy_dispatches(session) -> None:
    update_settings(
        session, user_id=1, quiet_hours={"enabled": True, "start": "11:00", "end": "13:00"}
    )
    scheduled, schedule = _recorder()

    notification = create_notification(
        session, make_request(), now=NOON, schedule_dispatch=schedule
    )

    assert notification.next_retry_at is None
    assert len(scheduled) == 1


def test_quiet_hours_defer_policy_waits_for_window_end(session) -> None:
    update_settings(
        session, user_id=1, quiet_hours={"enabled": True, "start": "11:00", "end": "13:00"}
    )
    scheduled, schedule = _recorder()

    notification = create_notification(
        session,
        make_request(),
        now=NOON,
        quiet_hours_policy="defer",
        schedule_dispatch=schedule,
    )

    assert scheduled == []
    assert notification.retry_count == 0
    assert notification.next_retry_at == datetime(2024, 5, 20, 13, 1, tzinfo=timezone.utc)
    assert notification.next_retry_at - NOON == timedelta(hours=1, minutes=1)
