"""Tests for the notification ledger."""

from datetime import timedelta

import pytest

from app.application.use_cases.notifications import (
    count_unread,
    create_notification,
    list_notifications,
    mark_all_read,
    mark_read,
    purge_notifications,
)
from app.domain.entities import EntityReference, NotificationPriority, NotificationType
from app.infrastructure.models import NotificationModel
from app.infrastructure.repositories import NotificationRepository
from app.utils import utcnow
from conftest import create_test_user


@pytest.fixture()
def users(session):
    return (
        create_test_user(session, name="Alice", email="alice@example.com"),
        create_test_user(session, name="Bob", email="bob@example.com"),
    )


def _notify(session, recipients, **overrides):
    values = {
        "notification_type": NotificationType.SYSTEM,
        "title": "Maintenance",
        "message": "The service restarts tonight",
        "recipients": recipients,
    }
    values.update(overrides)
    return create_notification(session, **values)


def test_one_notification_is_shared_by_every_recipient(session, users):
    alice, bob = users

    notification = _notify(
        session,
        [alice.id, bob.id, bob.id],
        entity=EntityReference("task", "42"),
        metadata={"icon": "bell"},
    )

    assert sorted(NotificationRepository(session).list_recipient_ids(notification.id)) == [
        alice.id,
        bob.id,
    ]
    for user in users:
        items = list_notifications(session, user_id=user.id)
        assert [item.notification.id for item in items] == [notification.id]
        assert items[0].notification.entity == EntityReference("task", "42")
        assert items[0].notification.metadata == {"icon": "bell"}
        assert not items[0].is_read


def test_create_requires_recipients(session):
    with pytest.raises(ValueError):
        _notify(session, [])


def test_read_state_is_tracked_per_user(session, users):
    alice, bob = users
    notification = _notify(session, [alice.id, bob.id])

    item = mark_read(session, notification_id=notification.id, user_id=alice.id)

    assert item.is_read
    assert count_unread(session, user_id=alice.id) == 0
    assert count_unread(session, user_id=bob.id) == 1


def test_mark_read_is_idempotent(session, users):
    alice, _ = users
    notification = _notify(session, [alice.id])

    first = mark_read(session, notification_id=notification.id, user_id=alice.id)
    second = mark_read(session, notification_id=notification.id, user_id=alice.id)

    assert first.read_at == second.read_at


def test_mark_read_of_foreign_notification_fails(session, users):
    alice, bob = users
    notification = _notify(session, [alice.id])

    with pytest.raises(ValueError, match="not found"):
        mark_read(session, notification_id=notification.id, user_id=bob.id)


def test_mark_all_read_twice_reports_nothing_the_second_time(session, users):
    alice, _ = users
    _notify(session, [alice.id])
    _notify(session, [alice.id])

    assert mark_all_read(session, user_id=alice.id) == 2
    assert mark_all_read(session, user_id=alice.id) == 0
    assert count_unread(session, user_id=alice.id) == 0


def test_expired_notifications_are_hidden(session, users):
    alice, _ = users
    _notify(session, [alice.id], expires_at=utcnow() - timedelta(minutes=1))
    visible = _notify(session, [alice.id], expires_at=utcnow() + timedelta(days=1))

    items = list_notifications(session, user_id=alice.id)

    assert [item.notification.id for item in items] == [visible.id]
    assert count_unread(session, user_id=alice.id) == 1


def test_hidden_recipients_do_not_see_the_notification(session, users):
    alice, bob = users
    _notify(session, [alice.id, bob.id], hidden_from={bob.id})

    assert count_unread(session, user_id=alice.id) == 1
    assert count_unread(session, user_id=bob.id) == 0
    assert list_notifications(session, user_id=bob.id) == []


def test_list_filters_and_pagination(session, users):
    alice, _ = users
    low = _notify(session, [alice.id], priority=NotificationPriority.LOW)
    high = _notify(session, [alice.id], priority=NotificationPriority.HIGH)
    mark_read(session, notification_id=low.id, user_id=alice.id)

    unread = list_notifications(session, user_id=alice.id, unread_only=True)
    by_priority = list_notifications(
        session, user_id=alice.id, priority=NotificationPriority.LOW
    )
    page = list_notifications(session, user_id=alice.id, limit=1, offset=1)

    assert [item.notification.id for item in unread] == [high.id]
    assert [item.notification.id for item in by_priority] == [low.id]
    assert [item.notification.id for item in page] == [low.id]


def test_purge_removes_expired_and_old_read_notifications(session, users):
    alice, bob = users
    expired = _notify(session, [alice.id], expires_at=utcnow() - timedelta(minutes=1))
    unread = _notify(session, [alice.id, bob.id])
    mark_read(session, notification_id=unread.id, user_id=alice.id)

    removed = purge_notifications(session, retention_days=90)

    assert removed == 1
    repository = NotificationRepository(session)
    assert repository.get(expired.id) is None
    assert repository.get(unread.id) is not None


def test_purge_ignores_recipients_who_cannot_see_the_notification(session, users):
    alice, bob = users
    notification = _notify(session, [alice.id, bob.id], hidden_from={bob.id})
    mark_read(session, notification_id=notification.id, user_id=alice.id)
    model = session.get(NotificationModel, notification.id)
    model.created_at = utcnow() - timedelta(days=400)
    session.commit()

    removed = purge_notifications(session, retention_days=90)

    assert removed == 1
    assert NotificationRepository(session).get(notification.id) is None
