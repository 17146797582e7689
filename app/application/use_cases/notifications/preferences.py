"""Preference store: lazy defaults, resolution and user edits."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, time

from sqlalchemy.orm import Session

from app.domain.entities import (
    NotificationPreference,
    NotificationSettings,
    NotificationType,
    ResolvedPreference,
)
from app.infrastructure.repositories import PreferenceRepository
from app.utils import is_valid_timezone, utcnow


# Delivered by email even when the per-type email switch is off.
ALWAYS_EMAILED_TYPES = frozenset({NotificationType.SYSTEM})


def resolve_preferences(
    session: Session,
    *,
    user_ids: Iterable[int],
    notification_type: NotificationType,
    now: datetime | None = None,
) -> dict[int, ResolvedPreference]:
    """Return the effective channel decision for every user in ``user_ids``.

    Missing preference and settings rows are inserted with
    :data:`DEFAULT_PREFERENCES` before anything is read, so the decision always
    comes from a stored row.
    """

    moment = now or utcnow()
    repository = PreferenceRepository(session)
    ids = list(dict.fromkeys(user_ids))

    settings_by_user: dict[int, NotificationSettings] = {}
    for user_id in ids:
        settings_by_user[user_id] = repository.ensure_settings(user_id, now=moment)
        repository.ensure_preferences(user_id, [notification_type], now=moment)

    preferences = repository.map_for_users(ids, notification_type)
    resolved: dict[int, ResolvedPreference] = {}
    for user_id in ids:
        preference = preferences[user_id]
        settings = settings_by_user[user_id]
        enabled = settings.notifications_enabled
        resolved[user_id] = ResolvedPreference(
            user_id=user_id,
            type=NotificationType(notification_type),
            email_enabled=enabled
            and (preference.email_enabled or notification_type in ALWAYS_EMAILED_TYPES),
            push_enabled=enabled and preference.push_enabled,
            in_app_enabled=enabled and preference.in_app_enabled,
            quiet_hours=settings.quiet_hours,
        )
    return resolved


def resolve_preference(
    session: Session,
    *,
    user_id: int,
    notification_type: NotificationType,
    now: datetime | None = None,
) -> ResolvedPreference:
    """Single-user form of :func:`resolve_preferences`."""

    return resolve_preferences(
        session, user_ids=[user_id], notification_type=notification_type, now=now
    )[user_id]


def get_preferences(
    session: Session, *, user_id: int
) -> tuple[NotificationSettings, list[NotificationPreference]]:
    """Return the user's settings and one preference per notification type.

    Types that were never resolved are reported with default values without
    being written.
    """

    repository = PreferenceRepository(session)
    settings = repository.get_settings(user_id) or NotificationSettings(user_id=user_id)
    stored = {preference.type: preference for preference in repository.list_for_user(user_id)}
    preferences = [
        stored.get(notification_type)
        or NotificationPreference(id=None, user_id=user_id, type=notification_type)
        for notification_type in NotificationType
    ]
    return settings, preferences


def update_preference(
    session: Session,
    *,
    user_id: int,
    notification_type: NotificationType,
    email_enabled: bool | None = None,
    push_enabled: bool | None = None,
    in_app_enabled: bool | None = None,
) -> NotificationPreference:
    """Change the channel switches of one notification type."""

    now = utcnow()
    repository = PreferenceRepository(session)
    repository.ensure_preferences(user_id, [notification_type], now=now)
    preference = repository.get(user_id, notification_type)
    if email_enabled is not None:
        preference.email_enabled = email_enabled
    if push_enabled is not None:
        preference.push_enabled = push_enabled
    if in_app_enabled is not None:
        preference.in_app_enabled = in_app_enabled
    return repository.update(preference, now=now)


def update_settings(
    session: Session,
    *,
    user_id: int,
    notifications_enabled: bool | None = None,
    quiet_hours_enabled: bool | None = None,
    quiet_hours_start: time | None = None,
    quiet_hours_end: time | None = None,
    timezone: str | None = None,
) -> NotificationSettings:
    """Update the global switch, quiet hours window and timezone."""

    now = utcnow()
    repository = PreferenceRepository(session)
    settings = repository.ensure_settings(user_id, now=now)

    if notifications_enabled is not None:
        settings.notifications_enabled = notifications_enabled
    if quiet_hours_enabled is not None:
        settings.quiet_hours_enabled = quiet_hours_enabled
    if quiet_hours_start is not None:
        settings.quiet_hours_start = quiet_hours_start
    if quiet_hours_end is not None:
        settings.quiet_hours_end = quiet_hours_end
    if timezone is not None:
        if not is_valid_timezone(timezone):
            raise ValueError(f"Unknown timezone: {timezone}")
        settings.timezone = timezone.strip()

    if settings.quiet_hours_enabled:
        if settings.quiet_hours_start is None or settings.quiet_hours_end is None:
            raise ValueError("Quiet hours need both a start and an end time")
        if settings.quiet_hours_start == settings.quiet_hours_end:
            raise ValueError("Quiet hours start and end must differ")

    return repository.update_settings(settings, now=now)


__all__ = [
    "get_preferences",
    "resolve_preference",
    "resolve_preferences",
    "update_preference",
    "update_settings",
]
