"""Notification ledger: creation, listing and read state."""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from app.domain.entities import (
    EntityReference,
    Notification,
    NotificationPriority,
    NotificationType,
    UserNotification,
)
from app.infrastructure.notifications import dispatch_notification
from app.infrastructure.repositories import NotificationRepository
from app.utils import utcnow

logger = logging.getLogger(__name__)


def create_notification(
    session: Session,
    *,
    notification_type: NotificationType,
    title: str,
    message: str,
    recipients: Sequence[int],
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    entity: EntityReference | None = None,
    metadata: dict[str, Any] | None = None,
    action_url: str | None = None,
    expires_at: datetime | None = None,
    created_by: int | None = None,
    hidden_from: Collection[int] = (),
) -> Notification:
    """Persist one notification for ``recipients`` and announce it in real time."""

    if not recipients:
        raise ValueError("A notification needs at least one recipient")

    now = utcnow()
    repository = NotificationRepository(session)
    notification = repository.create(
        Notification(
            id=None,
            type=NotificationType(notification_type),
            title=title,
            message=message,
            priority=NotificationPriority(priority),
            entity=entity,
            metadata=dict(metadata or {}),
            action_url=action_url,
            created_by=created_by,
            created_at=now,
            expires_at=expires_at,
        ),
        recipients,
        hidden_from=hidden_from,
    )
    logger.info(
        "Created %s notification %s for %d recipient(s)",
        notification.type.value,
        notification.id,
        len(set(recipients)),
    )

    visible = [user_id for user_id in dict.fromkeys(recipients) if user_id not in hidden_from]
    _publish(repository, notification, visible, now=now)
    return notification


def _publish(
    repository: NotificationRepository,
    notification: Notification,
    user_ids: Sequence[int],
    *,
    now: datetime,
) -> None:
    if not user_ids:
        return
    try:
        unread_counts = {
            user_id: repository.count_unread(user_id, now=now) for user_id in user_ids
        }
        dispatch_notification(notification, unread_counts)
    except Exception:
        logger.warning(
            "Realtime publication of notification %s failed", notification.id, exc_info=True
        )


def list_notifications(
    session: Session,
    *,
    user_id: int,
    limit: int = 50,
    offset: int = 0,
    unread_only: bool = False,
    notification_type: NotificationType | None = None,
    priority: NotificationPriority | None = None,
) -> list[UserNotification]:
    """Return the user's visible notifications, newest first."""

    return NotificationRepository(session).list_for_user(
        user_id,
        now=utcnow(),
        limit=limit,
        offset=offset,
        unread_only=unread_only,
        notification_type=notification_type,
        priority=priority,
    )


def count_unread(session: Session, *, user_id: int) -> int:
    return NotificationRepository(session).count_unread(user_id, now=utcnow())


def mark_read(session: Session, *, notification_id: int, user_id: int) -> UserNotification:
    """Mark one notification as read; repeating the call changes nothing."""

    now = utcnow()
    repository = NotificationRepository(session)
    if repository.get_for_user(notification_id, user_id, now=now) is None:
        raise ValueError("Notification not found")
    repository.mark_read(notification_id, user_id, read_at=now)
    return repository.get_for_user(notification_id, user_id, now=now)


def mark_all_read(session: Session, *, user_id: int) -> int:
    """Mark every unread visible notification as read and return how many."""

    updated = NotificationRepository(session).mark_all_read(user_id, now=utcnow())
    logger.debug("Marked %d notification(s) as read for user %s", updated, user_id)
    return updated


def purge_notifications(session: Session, *, retention_days: int) -> int:
    """Delete expired notifications and read ones older than the retention window."""

    now = utcnow()
    removed = NotificationRepository(session).purge(
        read_before=now - timedelta(days=retention_days), now=now
    )
    logger.info("Purged %d notification(s)", removed)
    return removed


__all__ = [
    "count_unread",
    "create_notification",
    "list_notifications",
    "mark_all_read",
    "mark_read",
    "purge_notifications",
]
