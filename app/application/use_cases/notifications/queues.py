"""Channel queues: enqueueing, monitoring and manual retries."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.entities import (
    EmailQueueEntry,
    Notification,
    PushQueueEntry,
    QueueChannel,
    QueueEntry,
    QueueStatus,
    User,
)
from app.domain.exceptions import QueueWriteFailure
from app.infrastructure.repositories import (
    EmailQueueRepository,
    PushQueueRepository,
    PushSubscriptionRepository,
    QueueRepository,
)
from app.utils import utcnow

logger = logging.getLogger(__name__)


def queue_repository(session: Session, channel: QueueChannel | str) -> QueueRepository:
    """Return the repository backing ``channel``."""

    if QueueChannel(channel) is QueueChannel.EMAIL:
        return EmailQueueRepository(session)
    return PushQueueRepository(session)


def enqueue_email(
    session: Session,
    *,
    notification: Notification,
    recipient: User,
    now: datetime | None = None,
) -> bool:
    """Queue an email of ``notification`` to ``recipient``.

    Returns ``False`` when the entry already existed or the user has no
    address. Database errors surface as :class:`QueueWriteFailure`.
    """

    if not recipient.email:
        logger.warning(
            "User %s has no email address; email for notification %s skipped",
            recipient.id,
            notification.id,
        )
        return False

    moment = now or utcnow()
    entry = EmailQueueEntry(
        id=None,
        notification_id=notification.id,
        recipient_id=recipient.id,
        priority=notification.priority,
        scheduled_at=moment,
        created_at=moment,
        to_address=recipient.email,
    )
    return _write(session, EmailQueueRepository(session), entry)


def enqueue_push(
    session: Session,
    *,
    notification: Notification,
    recipient_id: int,
    deferred_until: datetime | None = None,
    now: datetime | None = None,
) -> int:
    """Queue a push of ``notification`` to each active subscription of the recipient.

    ``deferred_until`` holds the entries back until quiet hours are over.
    """

    moment = now or utcnow()
    try:
        subscriptions = PushSubscriptionRepository(session).list_active_for_user(recipient_id)
    except SQLAlchemyError as exc:
        session.rollback()
        raise QueueWriteFailure(
            f"Could not load push subscriptions of user {recipient_id}: {exc}"
        ) from exc

    repository = PushQueueRepository(session)
    created = 0
    for subscription in subscriptions:
        entry = PushQueueEntry(
            id=None,
            notification_id=notification.id,
            recipient_id=recipient_id,
            priority=notification.priority,
            scheduled_at=deferred_until or moment,
            created_at=moment,
            subscription_id=subscription.id,
        )
        if _write(session, repository, entry):
            created += 1
    if deferred_until is not None and created:
        logger.info(
            "Push for notification %s to user %s deferred until %s (quiet hours)",
            notification.id,
            recipient_id,
            deferred_until.isoformat(),
        )
    return created


def _write(session: Session, repository: QueueRepository, entry: QueueEntry) -> bool:
    try:
        return repository.enqueue(entry)
    except SQLAlchemyError as exc:
        session.rollback()
        raise QueueWriteFailure(
            f"Could not enqueue {entry.channel.value} for notification "
            f"{entry.notification_id} and user {entry.recipient_id}: {exc}"
        ) from exc


def queue_stats(session: Session) -> dict[str, dict[str, int]]:
    """Return entry counts by status for every channel."""

    return {
        channel.value: queue_repository(session, channel).count_by_status()
        for channel in QueueChannel
    }


def list_failed_entries(
    session: Session, *, channel: QueueChannel | str, limit: int = 50
) -> list[QueueEntry]:
    return queue_repository(session, channel).list_by_status(QueueStatus.FAILED, limit=limit)


def retry_entry(session: Session, *, channel: QueueChannel | str, entry_id: int) -> QueueEntry:
    """Reopen a ``failed`` or ``cancelled`` entry with a fresh retry budget."""

    repository = queue_repository(session, channel)
    entry = repository.get(entry_id)
    if entry is None:
        raise ValueError(f"Queue entry {entry_id} not found")
    if entry.status not in (QueueStatus.FAILED, QueueStatus.CANCELLED):
        raise ValueError(
            f"Only failed or cancelled entries can be retried (entry is {entry.status.value})"
        )
    if not repository.retry(entry_id, now=utcnow()):
        raise ValueError(f"Queue entry {entry_id} changed state; retry skipped")
    logger.info("Queue entry %s/%s reopened for delivery", QueueChannel(channel).value, entry_id)
    return repository.get(entry_id)


__all__ = [
    "enqueue_email",
    "enqueue_push",
    "list_failed_entries",
    "queue_repository",
    "queue_stats",
    "retry_entry",
]
