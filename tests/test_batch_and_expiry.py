import re
from datetime import timedelta

from app.application.use_cases.notification_settings import update_settings
from app.application.use_cases.notifications import (
    cleanup_expired,
    create_notification,
    create_notification_batch,
    delete_notification,
    generate_batch_id,
)
from app.infrastructure.models import NotificationModel
from app.infrastructure.repositories import NotificationRepository

from conftest import NOON, make_request


def test_batch_id_format() -> None:
    batch_id = generate_batch_id()

    assert re.fullmatch(r"batch_\d{13}_[0-9a-z]{9}", batch_id)
    assert generate_batch_id() != batch_id


def test_batch_skips_invalid_items_and_keeps_going(session) -> None:
    requests = [make_request(recipient_id=user_id) for user_id in range(1, 6)]
    requests[2] = make_request(recipient_id=3, type="unknown")

    created = create_notification_batch(session, requests, batch_id="batch_demo", now=NOON)

    assert [notification.recipient_id for notification in created] == [1, 2, 4, 5]
    assert {notification.batch_id for notification in created} == {"batch_demo"}
    assert len(NotificationRepository(session).list_by_batch("batch_demo")) == 4


def test_batch_skips_opted_out_recipients(session) -> None:
    update_settings(session, user_id=2, enabled=False)

    created = create_notification_batch(
        session, [make_request(recipient_id=1), make_request(recipient_id=2)], now=NOON
    )

    assert [notification.recipient_id for notification in created] == [1]
    assert created[0].batch_id.startswith("batch_")


def test_cleanup_removes_expired_notifications_once(session) -> None:
    expired = create_notification(
        session, make_request(expires_at=NOON - timedelta(minutes=1)), now=NOON
    )
    boundary = create_notification(session, make_request(expires_at=NOON), now=NOON)
    future = create_notification(
        session, make_request(expires_at=NOON + timedelta(days=1)), now=NOON
    )
    permanent = create_notification(session, make_request(), now=NOON)

    assert cleanup_expired(session, now=NOON) == 2
    assert cleanup_expired(session, now=NOON) == 0

    repository = NotificationRepository(session)
    assert repository.get(expired.id) is None
    assert repository.get(boundary.id) is None
    assert repository.get(future.id) is not None
    assert repository.get(permanent.id) is not None


def test_cleanup_removes_deleted_rows_once_expired(session) -> None:
    expired = create_notification(
        session, make_request(expires_at=NOON - timedelta(minutes=1)), now=NOON
    )
    kept = create_notification(session, make_request(), now=NOON)
    delete_notification(session, user_id=1, notification_id=expired.id)
    delete_notification(session, user_id=1, notification_id=kept.id)

    assert cleanup_expired(session, now=NOON) == 1

    remaining = session.query(NotificationModel.id).all()
    assert [row.id for row in remaining] == [kept.id]
