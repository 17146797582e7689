"""Tests for the preference store."""

import threading
from datetime import time

import pytest

from app.application.use_cases.notifications import (
    get_preferences,
    resolve_preference,
    resolve_preferences,
    update_preference,
    update_settings,
)
from app.domain.entities import NotificationType
from app.infrastructure.database import SessionLocal
from app.infrastructure.repositories import PreferenceRepository
from conftest import create_test_user


def test_resolve_creates_default_rows_once(session):
    user = create_test_user(session, name="Bob", email="bob@example.com")

    first = resolve_preference(
        session, user_id=user.id, notification_type=NotificationType.TASK_ASSIGNMENT
    )
    second = resolve_preference(
        session, user_id=user.id, notification_type=NotificationType.TASK_ASSIGNMENT
    )

    assert first == second
    assert first.email_enabled is True
    assert first.push_enabled is False
    assert first.in_app_enabled is True
    assert first.quiet_hours is None

    rows = PreferenceRepository(session).list_for_user(user.id)
    assert [row.type for row in rows] == [NotificationType.TASK_ASSIGNMENT]
    assert PreferenceRepository(session).get_settings(user.id) is not None


def test_concurrent_first_resolution_creates_a_single_row(session):
    user = create_test_user(session, name="Bob", email="bob@example.com")
    barrier = threading.Barrier(2)
    results = []
    errors = []

    def resolve():
        db = SessionLocal()
        try:
            barrier.wait(timeout=5)
            results.append(
                resolve_preference(
                    db, user_id=user.id, notification_type=NotificationType.TASK_COMMENT
                )
            )
        except Exception as exc:  # surfaced by the assertion below
            errors.append(exc)
        finally:
            db.close()

    workers = [threading.Thread(target=resolve) for _ in range(2)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(timeout=10)

    assert errors == []
    assert len(results) == 2
    assert results[0] == results[1]
    rows = PreferenceRepository(session).list_for_user(user.id)
    assert [row.type for row in rows] == [NotificationType.TASK_COMMENT]


def test_global_switch_disables_every_channel(session):
    user = create_test_user(session, name="Bob", email="bob@example.com")
    update_preference(
        session,
        user_id=user.id,
        notification_type=NotificationType.TASK_COMMENT,
        push_enabled=True,
    )
    update_settings(session, user_id=user.id, notifications_enabled=False)

    resolved = resolve_preference(
        session, user_id=user.id, notification_type=NotificationType.TASK_COMMENT
    )

    assert not resolved.any_enabled


def test_resolve_many_users_at_once(session):
    alice = create_test_user(session, name="Alice", email="alice@example.com")
    bob = create_test_user(session, name="Bob", email="bob@example.com")
    update_preference(
        session,
        user_id=bob.id,
        notification_type=NotificationType.TASK_COMMENT,
        email_enabled=False,
    )

    resolved = resolve_preferences(
        session, user_ids=[alice.id, bob.id, alice.id], notification_type=NotificationType.TASK_COMMENT
    )

    assert set(resolved) == {alice.id, bob.id}
    assert resolved[alice.id].email_enabled is True
    assert resolved[bob.id].email_enabled is False


def test_system_notifications_always_go_out_by_email(session):
    alice = create_test_user(session, name="Alice", email="alice@example.com")
    bob = create_test_user(session, name="Bob", email="bob@example.com")
    for user in (alice, bob):
        update_preference(
            session,
            user_id=user.id,
            notification_type=NotificationType.SYSTEM,
            email_enabled=False,
        )
    update_settings(session, user_id=bob.id, notifications_enabled=False)

    resolved = resolve_preferences(
        session, user_ids=[alice.id, bob.id], notification_type=NotificationType.SYSTEM
    )

    assert resolved[alice.id].email_enabled is True
    assert resolved[bob.id].email_enabled is False


def test_get_preferences_reports_defaults_without_writing(session):
    user = create_test_user(session, name="Bob", email="bob@example.com")

    settings, preferences = get_preferences(session, user_id=user.id)

    assert settings.notifications_enabled is True
    assert {preference.type for preference in preferences} == set(NotificationType)
    assert PreferenceRepository(session).list_for_user(user.id) == []
    assert PreferenceRepository(session).get_settings(user.id) is None


def test_update_preference_only_changes_given_switches(session):
    user = create_test_user(session, name="Bob", email="bob@example.com")

    updated = update_preference(
        session,
        user_id=user.id,
        notification_type=NotificationType.DUE_DATE_REMINDER,
        push_enabled=True,
    )

    assert updated.push_enabled is True
    assert updated.email_enabled is True
    assert updated.in_app_enabled is True


def test_quiet_hours_are_resolved_with_the_user_timezone(session):
    user = create_test_user(session, name="Bob", email="bob@example.com")
    update_settings(
        session,
        user_id=user.id,
        quiet_hours_enabled=True,
        quiet_hours_start=time(22, 0),
        quiet_hours_end=time(7, 0),
        timezone="Europe/Madrid",
    )

    resolved = resolve_preference(
        session, user_id=user.id, notification_type=NotificationType.SYSTEM
    )

    assert resolved.quiet_hours is not None
    assert resolved.quiet_hours.start == time(22, 0)
    assert resolved.quiet_hours.timezone == "Europe/Madrid"


@pytest.mark.parametrize(
    "changes",
    [
        {"timezone": "Mars/Olympus_Mons"},
        {"quiet_hours_enabled": True},
        {"quiet_hours_enabled": True, "quiet_hours_start": time(8, 0), "quiet_hours_end": time(8, 0)},
    ],
)
def test_update_settings_rejects_invalid_values(session, changes):
    user = create_test_user(session, name="Bob", email="bob@example.com")

    with pytest.raises(ValueError):
        update_settings(session, user_id=user.id, **changes)
