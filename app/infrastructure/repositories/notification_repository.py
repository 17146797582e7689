"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import datetime

from sqlalchemy import DateTime, and_, delete, exists, func, literal, or_, select
from sqlalchemy.orm import Session

from app.domain.entities import (
    EntityReference,
    Notification,
    NotificationPriority,
    NotificationType,
    UserNotification,
)
from app.infrastructure.database import insert_ignoring_conflicts
from app.infrastructure.models import (
    EmailQueueModel,
    NotificationModel,
    NotificationReadModel,
    NotificationRecipientModel,
    PushQueueModel,
)
from app.utils import ensure_utc


def _not_expired(now: datetime):
    return or_(NotificationModel.expires_at.is_(None), NotificationModel.expires_at > now)


class NotificationRepository:
    """Store notifications once and track read state per recipient."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        notification: Notification,
        recipients: Sequence[int],
        *,
        hidden_from: Collection[int] = (),
    ) -> Notification:
        """Persist ``notification`` and make it visible to ``recipients``.

        Recipients listed in ``hidden_from`` still own the notification, so its
        queue entries can reference them, but it never shows up in their list.
        """

        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        for user_id in dict.fromkeys(recipients):
            model.recipients.append(
                NotificationRecipientModel(
                    user_id=user_id, in_app=user_id not in hidden_from
                )
            )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model else None

    def get_for_user(
        self, notification_id: int, user_id: int, *, now: datetime
    ) -> UserNotification | None:
        row = (
            self._visible_query(user_id, now)
            .filter(NotificationModel.id == notification_id)
            .first()
        )
        if row is None:
            return None
        model, read_at = row
        return UserNotification(
            notification=self._to_entity(model),
            user_id=user_id,
            read_at=ensure_utc(read_at),
        )

    def list_for_user(
        self,
        user_id: int,
        *,
        now: datetime,
        limit: int = 50,
        offset: int = 0,
        unread_only: bool = False,
        notification_type: NotificationType | None = None,
        priority: NotificationPriority | None = None,
    ) -> list[UserNotification]:
        query = self._visible_query(user_id, now)
        if unread_only:
            query = query.filter(NotificationReadModel.id.is_(None))
        if notification_type is not None:
            query = query.filter(NotificationModel.type == notification_type.value)
        if priority is not None:
            query = query.filter(NotificationModel.priority == priority.value)
        query = (
            query.order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return [
            UserNotification(
                notification=self._to_entity(model),
                user_id=user_id,
                read_at=ensure_utc(read_at),
            )
            for model, read_at in query.all()
        ]

    def count_unread(self, user_id: int, *, now: datetime) -> int:
        query = (
            self.session.query(func.count(NotificationModel.id))
            .join(
                NotificationRecipientModel,
                NotificationRecipientModel.notification_id == NotificationModel.id,
            )
            .filter(NotificationRecipientModel.user_id == user_id)
            .filter(NotificationRecipientModel.in_app.is_(True))
            .filter(_not_expired(now))
            .filter(~self._read_exists(user_id))
        )
        return int(query.scalar() or 0)

    def list_recipient_ids(self, notification_id: int) -> list[int]:
        query = self.session.query(NotificationRecipientModel.user_id).filter(
            NotificationRecipientModel.notification_id == notification_id
        )
        return [user_id for (user_id,) in query.all()]

    def mark_read(self, notification_id: int, user_id: int, *, read_at: datetime) -> bool:
        """Record the first read; return ``False`` when it was already read."""

        statement = insert_ignoring_conflicts(
            self.session, NotificationReadModel.__table__
        ).values(notification_id=notification_id, user_id=user_id, read_at=read_at)
        result = self.session.execute(statement)
        self.session.commit()
        return result.rowcount == 1

    def mark_all_read(self, user_id: int, *, now: datetime) -> int:
        """Mark every visible unread notification as read in a single statement."""

        unread = (
            select(
                NotificationRecipientModel.notification_id,
                literal(user_id),
                literal(now, DateTime(timezone=True)),
            )
            .join(
                NotificationModel,
                NotificationModel.id == NotificationRecipientModel.notification_id,
            )
            .where(
                NotificationRecipientModel.user_id == user_id,
                NotificationRecipientModel.in_app.is_(True),
                _not_expired(now),
                ~self._read_exists(user_id),
            )
        )
        statement = insert_ignoring_conflicts(
            self.session, NotificationReadModel.__table__
        ).from_select(["notification_id", "user_id", "read_at"], unread)
        result = self.session.execute(statement)
        self.session.commit()
        return max(result.rowcount or 0, 0)

    def purge(self, *, read_before: datetime, now: datetime) -> int:
        """Delete expired notifications and old ones read by every recipient."""

        unread_recipient = exists().where(
            NotificationRecipientModel.notification_id == NotificationModel.id,
            NotificationRecipientModel.in_app.is_(True),
            ~exists().where(
                and_(
                    NotificationReadModel.notification_id
                    == NotificationRecipientModel.notification_id,
                    NotificationReadModel.user_id == NotificationRecipientModel.user_id,
                )
            ),
        )
        query = self.session.query(NotificationModel.id).filter(
            or_(
                and_(
                    NotificationModel.expires_at.is_not(None),
                    NotificationModel.expires_at <= now,
                ),
                and_(NotificationModel.created_at < read_before, ~unread_recipient),
            )
        )
        ids = [notification_id for (notification_id,) in query.all()]
        if not ids:
            return 0

        for model in (
            EmailQueueModel,
            PushQueueModel,
            NotificationReadModel,
            NotificationRecipientModel,
        ):
            self.session.execute(delete(model).where(model.notification_id.in_(ids)))
        self.session.execute(delete(NotificationModel).where(NotificationModel.id.in_(ids)))
        self.session.commit()
        return len(ids)

    def _visible_query(self, user_id: int, now: datetime):
        return (
            self.session.query(NotificationModel, NotificationReadModel.read_at)
            .join(
                NotificationRecipientModel,
                NotificationRecipientModel.notification_id == NotificationModel.id,
            )
            .outerjoin(
                NotificationReadModel,
                and_(
                    NotificationReadModel.notification_id == NotificationModel.id,
                    NotificationReadModel.user_id == user_id,
                ),
            )
            .filter(NotificationRecipientModel.user_id == user_id)
            .filter(NotificationRecipientModel.in_app.is_(True))
            .filter(_not_expired(now))
        )

    @staticmethod
    def _read_exists(user_id: int):
        return exists().where(
            NotificationReadModel.notification_id == NotificationModel.id,
            NotificationReadModel.user_id == user_id,
        )

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        model.type = NotificationType(notification.type).value
        model.title = notification.title
        model.message = notification.message
        model.priority = NotificationPriority(notification.priority).value
        if notification.entity is not None:
            model.entity_type = notification.entity.entity_type
            model.entity_id = notification.entity.entity_id
        model.details = dict(notification.metadata or {})
        model.action_url = notification.action_url
        model.created_by = notification.created_by
        if notification.created_at is not None:
            model.created_at = notification.created_at
        model.expires_at = notification.expires_at

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        entity = None
        if model.entity_type and model.entity_id:
            entity = EntityReference(model.entity_type, model.entity_id)
        return Notification(
            id=model.id,
            type=NotificationType(model.type),
            title=model.title,
            message=model.message,
            priority=NotificationPriority(model.priority),
            entity=entity,
            metadata=dict(model.details or {}),
            action_url=model.action_url,
            created_by=model.created_by,
            created_at=ensure_utc(model.created_at),
            expires_at=ensure_utc(model.expires_at),
        )


__all__ = ["NotificationRepository"]
