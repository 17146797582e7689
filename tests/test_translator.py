"""Tests for translating domain events into notifications and queue entries."""

from __future__ import annotations

import logging
from datetime import datetime, time, timezone

import pytest

from app.application.use_cases.notifications import (
    count_unread,
    emit_domain_event,
    list_notifications,
    notifies,
    translate_event,
    update_preference,
    update_settings,
)
from app.domain.entities import (
    DomainEvent,
    DomainEventType,
    NotificationPriority,
    NotificationType,
    QueueStatus,
    TargetEntity,
)
from app.domain.exceptions import TranslationError
from app.infrastructure.database import SessionLocal
from app.infrastructure.repositories import EmailQueueRepository, PushQueueRepository
from conftest import create_test_subscription, create_test_user


@pytest.fixture()
def alice(session):
    return create_test_user(session, name="Alice", email="alice@example.com")


@pytest.fixture()
def bob(session):
    return create_test_user(session, name="Bob", email="bob@example.com")


def _task_event(actor_id, event_type=DomainEventType.TASK_ASSIGNED, **payload):
    return DomainEvent(
        event_type=event_type,
        actor_id=actor_id,
        target_entity=TargetEntity("task", "42", "Fix login"),
        payload=payload,
    )


def test_assignment_creates_one_notification_and_one_email(session, alice, bob):
    created = translate_event(session, _task_event(alice.id, assignee_ids=[bob.id]))

    assert len(created) == 1
    notification = created[0]
    assert notification.type is NotificationType.TASK_ASSIGNMENT
    assert notification.message == "Alice assigned you to: Fix login"
    assert notification.priority is NotificationPriority.HIGH
    assert notification.action_url == "/tasks/42"
    assert notification.metadata["event_type"] == "task.assigned"

    emails = EmailQueueRepository(session).list_for_notification(notification.id)
    assert [(entry.recipient_id, entry.to_address) for entry in emails] == [
        (bob.id, "bob@example.com")
    ]
    assert emails[0].status is QueueStatus.PENDING
    assert PushQueueRepository(session).list_for_notification(notification.id) == []
    assert count_unread(session, user_id=bob.id) == 1


def test_actor_never_notifies_themselves(session, alice, bob):
    created = translate_event(session, _task_event(alice.id, assignee_ids=[alice.id, bob.id]))

    assert len(created) == 1
    assert count_unread(session, user_id=alice.id) == 0
    assert translate_event(session, _task_event(alice.id, assignee_ids=[alice.id])) == []


def test_push_is_queued_per_active_subscription(session, alice, bob):
    update_preference(
        session,
        user_id=bob.id,
        notification_type=NotificationType.TASK_ASSIGNMENT,
        push_enabled=True,
    )
    create_test_subscription(session, user_id=bob.id, endpoint="https://push.example.com/1")
    create_test_subscription(session, user_id=bob.id, endpoint="https://push.example.com/2")

    [notification] = translate_event(session, _task_event(alice.id, assignee_ids=[bob.id]))

    entries = PushQueueRepository(session).list_for_notification(notification.id)
    assert len(entries) == 2
    assert {entry.recipient_id for entry in entries} == {bob.id}


def test_push_inside_quiet_hours_is_deferred(session, alice, bob):
    update_preference(
        session,
        user_id=bob.id,
        notification_type=NotificationType.TASK_ASSIGNMENT,
        push_enabled=True,
    )
    update_settings(
        session,
        user_id=bob.id,
        quiet_hours_enabled=True,
        quiet_hours_start=time(22, 0),
        quiet_hours_end=time(7, 0),
    )
    create_test_subscription(session, user_id=bob.id, endpoint="https://push.example.com/1")
    late_evening = datetime(2024, 5, 10, 23, 30, tzinfo=timezone.utc)

    [notification] = translate_event(
        session, _task_event(alice.id, assignee_ids=[bob.id]), now=late_evening
    )

    [push] = PushQueueRepository(session).list_for_notification(notification.id)
    [email] = EmailQueueRepository(session).list_for_notification(notification.id)
    assert push.scheduled_at == datetime(2024, 5, 11, 7, 0, tzinfo=timezone.utc)
    assert email.scheduled_at == late_evening


def test_in_app_disabled_keeps_external_channels(session, alice, bob):
    update_preference(
        session,
        user_id=bob.id,
        notification_type=NotificationType.TASK_ASSIGNMENT,
        in_app_enabled=False,
    )

    [notification] = translate_event(session, _task_event(alice.id, assignee_ids=[bob.id]))

    assert list_notifications(session, user_id=bob.id) == []
    assert len(EmailQueueRepository(session).list_for_notification(notification.id)) == 1


def test_recipients_with_every_channel_off_get_nothing(session, alice, bob):
    update_settings(session, user_id=bob.id, notifications_enabled=False)

    assert translate_event(session, _task_event(alice.id, assignee_ids=[bob.id])) == []


def test_unknown_and_inactive_users_are_skipped(session, alice, bob, caplog):
    carol = create_test_user(session, name="Carol", email="carol@example.com", is_active=False)
    caplog.set_level(logging.WARNING)

    [notification] = translate_event(
        session, _task_event(alice.id, assignee_ids=[bob.id, carol.id, 9999])
    )

    assert count_unread(session, user_id=carol.id) == 0
    assert [entry.recipient_id for entry in EmailQueueRepository(session).list_for_notification(notification.id)] == [bob.id]
    assert "9999" in caplog.text


def test_status_change_raises_priority_of_task_updates(session, alice, bob):
    [notification] = translate_event(
        session,
        _task_event(
            alice.id,
            DomainEventType.TASK_UPDATED,
            assignee_ids=[bob.id],
            changes={"status": ["open", "done"]},
        ),
    )

    assert notification.priority is NotificationPriority.HIGH
    assert notification.message == 'Alice updated "Fix login": changed status'


def test_mentions_and_followers_get_different_notifications(session, alice, bob):
    carol = create_test_user(session, name="Carol", email="carol@example.com")

    created = translate_event(
        session,
        _task_event(
            alice.id,
            DomainEventType.TASK_COMMENTED,
            mentioned_user_ids=[bob.id],
            assignee_ids=[bob.id, carol.id],
            comment_id=7,
        ),
    )

    assert [item.type for item in created] == [
        NotificationType.COMMENT_MENTION,
        NotificationType.TASK_COMMENT,
    ]
    assert count_unread(session, user_id=bob.id) == 1
    assert count_unread(session, user_id=carol.id) == 1


def test_due_date_reminder_without_actor(session, bob):
    [notification] = translate_event(
        session,
        _task_event(
            None,
            DomainEventType.TASK_DUE_SOON,
            assignee_ids=[bob.id],
            due_date="2024-06-01T09:00:00+00:00",
        ),
    )

    assert notification.message == '"Fix login" is due on 2024-06-01'


def test_membership_removal_has_no_action_url(session, alice, bob):
    [notification] = translate_event(
        session,
        DomainEvent(
            event_type=DomainEventType.MEMBERSHIP_REMOVED,
            actor_id=alice.id,
            target_entity=TargetEntity("project", "3", "Apollo"),
            payload={"scope": "project", "member_ids": [bob.id]},
        ),
    )

    assert notification.type is NotificationType.PROJECT_REMOVED
    assert notification.message == "You were removed from project: Apollo"
    assert notification.action_url is None


def test_broadcast_announcement_reaches_every_active_user(session, alice, bob):
    carol = create_test_user(session, name="Carol", email="carol@example.com")

    [notification] = translate_event(
        session,
        DomainEvent(
            event_type=DomainEventType.SYSTEM_ANNOUNCEMENT,
            actor_id=alice.id,
            target_entity=None,
            payload={"broadcast": True, "title": "Maintenance", "message": "Tonight at 22:00"},
        ),
    )

    assert notification.title == "Maintenance"
    for user in (bob, carol):
        assert count_unread(session, user_id=user.id) == 1
    assert count_unread(session, user_id=alice.id) == 0


@pytest.mark.parametrize(
    "event",
    [
        DomainEvent(event_type="task.exploded", actor_id=1, target_entity=None),
        DomainEvent(event_type=DomainEventType.TASK_ASSIGNED, actor_id=1, target_entity=None),
        DomainEvent(
            event_type=DomainEventType.TASK_ASSIGNED,
            actor_id=1,
            target_entity=TargetEntity("task", "1", "X"),
            payload={},
        ),
        DomainEvent(
            event_type=DomainEventType.INVITATION_SENT,
            actor_id=1,
            target_entity=None,
            payload={"scope": "galaxy", "invitee_ids": [2]},
        ),
        DomainEvent(
            event_type=DomainEventType.TASK_UPDATED,
            actor_id=1,
            target_entity=TargetEntity("task", "1", "X"),
            payload={"assignee_ids": [2], "changes": "status"},
        ),
    ],
)
def test_malformed_events_raise_translation_errors(session, event):
    with pytest.raises(TranslationError):
        translate_event(session, event)


def test_emit_swallows_and_logs_translation_errors(session, alice, caplog):
    caplog.set_level(logging.ERROR)
    event = DomainEvent(event_type=DomainEventType.TASK_ASSIGNED, actor_id=alice.id, target_entity=None)

    assert emit_domain_event(event, session_factory=SessionLocal) == []
    assert "task.assigned" in caplog.text
    assert list_notifications(session, user_id=alice.id) == []


def test_notifies_decorator_keeps_the_business_result(session, alice, bob, caplog):
    caplog.set_level(logging.ERROR)

    @notifies(lambda result, task_id, assignee_id: _task_event(alice.id, assignee_ids=[assignee_id]))
    def assign_task(task_id, assignee_id):
        return {"task_id": task_id, "assignee_id": assignee_id}

    @notifies(lambda result, task_id: DomainEvent(event_type="nonsense", actor_id=None, target_entity=None))
    def archive_task(task_id):
        return "archived"

    assert assign_task(42, bob.id) == {"task_id": 42, "assignee_id": bob.id}
    assert count_unread(session, user_id=bob.id) == 1

    assert archive_task(42) == "archived"
    assert "nonsense" in caplog.text
