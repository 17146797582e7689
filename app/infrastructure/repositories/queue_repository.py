"""Persistence layer for the email and push delivery queues."""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.orm import Session

from app.domain.entities import (
    EmailQueueEntry,
    NotificationPriority,
    PushQueueEntry,
    QueueEntry,
    QueueStatus,
)
from app.infrastructure.database import insert_ignoring_conflicts
from app.infrastructure.models import EmailQueueModel, NotificationModel, PushQueueModel
from app.utils import ensure_utc

_PRIORITY_RANKS = {priority.value: priority.rank for priority in NotificationPriority}


class QueueRepository:
    """Shared queue operations; subclasses bind a model and an entity type.

    Every status transition is a conditional ``UPDATE`` guarded by the expected
    current status, so concurrent workers never act on the same entry twice.
    """

    model: ClassVar[Any]

    def __init__(self, session: Session) -> None:
        self.session = session

    def enqueue(self, entry: QueueEntry) -> bool:
        """Insert ``entry`` unless its unique key already exists."""

        values = {
            "notification_id": entry.notification_id,
            "recipient_id": entry.recipient_id,
            "status": QueueStatus(entry.status).value,
            "priority": NotificationPriority(entry.priority).value,
            "retry_count": entry.retry_count,
            "scheduled_at": entry.scheduled_at,
            "created_at": entry.created_at,
        }
        values.update(self._destination_values(entry))
        statement = insert_ignoring_conflicts(self.session, self.model.__table__).values(
            **values
        )
        result = self.session.execute(statement)
        self.session.commit()
        return result.rowcount == 1

    def get(self, entry_id: int) -> QueueEntry | None:
        model = self.session.get(self.model, entry_id)
        return self._to_entity(model) if model else None

    def list_due(self, *, now: datetime, limit: int) -> list[QueueEntry]:
        """Return pending entries whose time has come, most urgent first."""

        query = (
            self.session.query(self.model)
            .join(NotificationModel, NotificationModel.id == self.model.notification_id)
            .filter(self.model.status == QueueStatus.PENDING.value)
            .filter(self.model.scheduled_at <= now)
            .filter(
                or_(NotificationModel.expires_at.is_(None), NotificationModel.expires_at > now)
            )
            .order_by(
                case(_PRIORITY_RANKS, value=self.model.priority, else_=0).desc(),
                self.model.scheduled_at.asc(),
                self.model.id.asc(),
            )
            .limit(limit)
        )
        return [self._to_entity(model) for model in query.all()]

    def list_for_notification(self, notification_id: int) -> list[QueueEntry]:
        query = (
            self.session.query(self.model)
            .filter(self.model.notification_id == notification_id)
            .order_by(self.model.id)
        )
        return [self._to_entity(model) for model in query.all()]

    def list_by_status(self, status: QueueStatus, *, limit: int = 50) -> list[QueueEntry]:
        query = (
            self.session.query(self.model)
            .filter(self.model.status == QueueStatus(status).value)
            .order_by(self.model.updated_at.desc(), self.model.id.desc())
            .limit(limit)
        )
        return [self._to_entity(model) for model in query.all()]

    def count_by_status(self) -> dict[str, int]:
        query = self.session.query(self.model.status, func.count(self.model.id)).group_by(
            self.model.status
        )
        counts = {status.value: 0 for status in QueueStatus}
        counts.update({status: int(total) for status, total in query.all()})
        return counts

    def claim(self, entry_id: int, *, now: datetime) -> bool:
        """Move ``pending`` to ``sending``; only one caller can win."""

        return self._transition(
            entry_id,
            QueueStatus.PENDING,
            status=QueueStatus.SENDING.value,
            updated_at=now,
        )

    def mark_sent(self, entry_id: int, *, now: datetime) -> bool:
        return self._transition(
            entry_id,
            QueueStatus.SENDING,
            status=QueueStatus.SENT.value,
            sent_at=now,
            last_error=None,
            updated_at=now,
        )

    def reschedule(
        self,
        entry_id: int,
        *,
        retry_count: int,
        scheduled_at: datetime,
        error: str,
        now: datetime,
    ) -> bool:
        return self._transition(
            entry_id,
            QueueStatus.SENDING,
            status=QueueStatus.PENDING.value,
            retry_count=retry_count,
            scheduled_at=scheduled_at,
            last_error=error,
            updated_at=now,
        )

    def mark_failed(self, entry_id: int, *, error: str, now: datetime) -> bool:
        return self._transition(
            entry_id,
            QueueStatus.SENDING,
            status=QueueStatus.FAILED.value,
            last_error=error,
            updated_at=now,
        )

    def release(self, entry_id: int, *, now: datetime) -> bool:
        """Hand a claimed entry back without counting an attempt."""

        return self._transition(
            entry_id,
            QueueStatus.SENDING,
            status=QueueStatus.PENDING.value,
            updated_at=now,
        )

    def cancel(self, entry_id: int, *, reason: str, now: datetime) -> bool:
        return self._transition(
            entry_id,
            QueueStatus.PENDING,
            QueueStatus.SENDING,
            status=QueueStatus.CANCELLED.value,
            last_error=reason,
            updated_at=now,
        )

    def cancel_expired(self, *, now: datetime) -> int:
        """Cancel pending entries whose notification is no longer visible."""

        expired = select(NotificationModel.id).where(
            NotificationModel.expires_at.is_not(None),
            NotificationModel.expires_at <= now,
        )
        statement = (
            update(self.model)
            .where(self.model.status == QueueStatus.PENDING.value)
            .where(self.model.notification_id.in_(expired))
            .values(
                status=QueueStatus.CANCELLED.value,
                last_error="Notification expired before delivery",
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        self.session.commit()
        return max(result.rowcount or 0, 0)

    def release_stale(self, *, claimed_before: datetime, now: datetime) -> int:
        """Return entries left in ``sending`` by a worker that died mid-dispatch."""

        statement = (
            update(self.model)
            .where(self.model.status == QueueStatus.SENDING.value)
            .where(self.model.updated_at < claimed_before)
            .values(status=QueueStatus.PENDING.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        self.session.commit()
        return max(result.rowcount or 0, 0)

    def retry(self, entry_id: int, *, now: datetime) -> bool:
        """Reopen a terminal ``failed`` or ``cancelled`` entry on request."""

        return self._transition(
            entry_id,
            QueueStatus.FAILED,
            QueueStatus.CANCELLED,
            status=QueueStatus.PENDING.value,
            retry_count=0,
            scheduled_at=now,
            last_error=None,
            updated_at=now,
        )

    def _transition(self, entry_id: int, *expected: QueueStatus, **values: Any) -> bool:
        statement = (
            update(self.model)
            .where(self.model.id == entry_id)
            .where(self.model.status.in_([status.value for status in expected]))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        self.session.commit()
        return result.rowcount == 1

    def _base_fields(self, model: Any) -> dict[str, Any]:
        return {
            "id": model.id,
            "notification_id": model.notification_id,
            "recipient_id": model.recipient_id,
            "status": QueueStatus(model.status),
            "priority": NotificationPriority(model.priority),
            "retry_count": model.retry_count,
            "scheduled_at": ensure_utc(model.scheduled_at),
            "last_error": model.last_error,
            "sent_at": ensure_utc(model.sent_at),
            "created_at": ensure_utc(model.created_at),
            "updated_at": ensure_utc(model.updated_at),
        }

    def _destination_values(self, entry: QueueEntry) -> dict[str, Any]:
        raise NotImplementedError

    def _to_entity(self, model: Any) -> QueueEntry:
        raise NotImplementedError


class EmailQueueRepository(QueueRepository):
    """Queue of email deliveries, unique per ``(notification, recipient)``."""

    model = EmailQueueModel

    def _destination_values(self, entry: EmailQueueEntry) -> dict[str, Any]:
        return {"to_address": entry.to_address}

    def _to_entity(self, model: EmailQueueModel) -> EmailQueueEntry:
        return EmailQueueEntry(to_address=model.to_address, **self._base_fields(model))


class PushQueueRepository(QueueRepository):
    """Queue of push deliveries, unique per ``(notification, subscription)``."""

    model = PushQueueModel

    def _destination_values(self, entry: PushQueueEntry) -> dict[str, Any]:
        return {"subscription_id": entry.subscription_id}

    def _to_entity(self, model: PushQueueModel) -> PushQueueEntry:
        return PushQueueEntry(
            subscription_id=model.subscription_id, **self._base_fields(model)
        )


__all__ = ["EmailQueueRepository", "PushQueueRepository", "QueueRepository"]
