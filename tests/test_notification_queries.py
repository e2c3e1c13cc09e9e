import pytest

from app.application.use_cases.notification_settings import update_settings
from app.application.use_cases.notifications import (
    count_unread_notifications,
    create_notification,
    delete_notification,
    delete_notifications,
    get_notification,
    get_notification_stats,
    list_notifications,
    mark_all_notifications_as_read,
    mark_notifications_as_read,
)
from app.domain.entities import NotificationPriority, NotificationType
from app.infrastructure.models import NotificationModel
from app.infrastructure.repositories import NotificationRepository

from conftest import NOON, make_request


@pytest.fixture
def inbox(session):
    created = [
        create_notification(session, make_request(), now=NOON),
        create_notification(session, make_request(type="like", priority="low"), now=NOON),
        create_notification(session, make_request(type="like"), now=NOON),
        create_notification(session, make_request(recipient_id=2), now=NOON),
    ]
    return created


def test_list_is_newest_first_and_filtered(session, inbox) -> None:
    ids = [notification.id for notification in list_notifications(session, user_id=1)]
    assert ids == [inbox[2].id, inbox[1].id, inbox[0].id]

    likes = list_notifications(session, user_id=1, notification_type=NotificationType.LIKE)
    assert {notification.id for notification in likes} == {inbox[1].id, inbox[2].id}

    low = list_notifications(session, user_id=1, priority=NotificationPriority.LOW)
    assert [notification.id for notification in low] == [inbox[1].id]

    page = list_notifications(session, user_id=1, limit=1, offset=1)
    assert [notification.id for notification in page] == [inbox[1].id]


def test_get_is_restricted_to_owner(session, inbox) -> None:
    assert get_notification(session, user_id=1, notification_id=inbox[0].id).id == inbox[0].id
    with pytest.raises(ValueError):
        get_notification(session, user_id=1, notification_id=inbox[3].id)


def test_read_state_and_counters(session, inbox) -> None:
    assert count_unread_notifications(session, user_id=1) == 3

    assert mark_notifications_as_read(
        session, user_id=1, notification_ids=[inbox[0].id, inbox[3].id]
    ) == 1
    assert get_notification(session, user_id=1, notification_id=inbox[0].id).is_read is True
    assert list_notifications(session, user_id=1, is_read=False)[0].id == inbox[2].id

    assert mark_all_notifications_as_read(session, user_id=1) == 2
    assert count_unread_notifications(session, user_id=1) == 0
    assert count_unread_notifications(session, user_id=2) == 1


def test_stats(session, inbox) -> None:
    mark_notifications_as_read(session, user_id=1, notification_ids=[inbox[1].id])

    assert get_notification_stats(session, user_id=1) == {
        "total": 3,
        "unread": 2,
        "by_type": {"achievement": 1, "like": 2},
    }


def test_delete(session, inbox) -> None:
    delete_notification(session, user_id=1, notification_id=inbox[0].id)
    with pytest.raises(ValueError):
        delete_notification(session, user_id=1, notification_id=inbox[0].id)

    assert delete_notifications(
        session, user_id=1, notification_ids=[inbox[1].id, inbox[2].id, inbox[3].id]
    ) == 2
    assert list_notifications(session, user_id=1) == []
    assert len(list_notifications(session, user_id=2)) == 1


def test_opted_out_type_never_reaches_inbox(session) -> None:
    update_settings(session, user_id=1, types={"like": {"enabled": False}})

    assert create_notification(session, make_request(type="like"), now=NOON) is None
    assert list_notifications(session, user_id=1) == []


def test_deleted_notification_is_hidden_but_kept(session) -> None:
    notification = create_notification(session, make_request(), now=NOON)
    repository = NotificationRepository(session)
    repository.schedule_retry(notification.id, NOON)

    delete_notification(session, user_id=1, notification_id=notification.id)

    assert list_notifications(session, user_id=1) == []
    with pytest.raises(ValueError):
        get_notification(session, user_id=1, notification_id=notification.id)
    assert count_unread_notifications(session, user_id=1) == 0
    assert get_notification_stats(session, user_id=1) == {"total": 0, "unread": 0, "by_type": {}}
    assert mark_all_notifications_as_read(session, user_id=1) == 0
    assert repository.list_retry_candidates(NOON, max_attempts=3) == []

    row = session.query(NotificationModel).filter(NotificationModel.id == notification.id).one()
    assert session.query(NotificationModel).count() == 1
    assert row.is_deleted is True
    assert row.deleted_at is not None
    assert row.next_retry_at is None
