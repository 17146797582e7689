"""Persistence layer for push subscriptions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.domain.entities import PushSubscription
from app.infrastructure.database import insert_ignoring_conflicts
from app.infrastructure.models import PushSubscriptionModel
from app.utils import ensure_utc


class PushSubscriptionRepository:
    """Provide upsert and lifecycle operations for push subscriptions."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert(self, subscription: PushSubscription, *, now: datetime) -> PushSubscription:
        """Register ``subscription`` keyed by endpoint.

        Registering a known endpoint again moves it to the current user,
        refreshes its keys and reactivates it.
        """

        statement = insert_ignoring_conflicts(
            self.session, PushSubscriptionModel.__table__
        ).values(
            user_id=subscription.user_id,
            endpoint=subscription.endpoint,
            p256dh_key=subscription.p256dh_key,
            auth_key=subscription.auth_key,
            user_agent=subscription.user_agent,
            is_active=True,
            created_at=now,
        )
        self.session.execute(statement)
        self.session.execute(
            update(PushSubscriptionModel)
            .where(PushSubscriptionModel.endpoint == subscription.endpoint)
            .values(
                user_id=subscription.user_id,
                p256dh_key=subscription.p256dh_key,
                auth_key=subscription.auth_key,
                user_agent=subscription.user_agent,
                is_active=True,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        model = self._get_model_by_endpoint(subscription.endpoint)
        return self._to_entity(model)

    def get(self, subscription_id: int) -> PushSubscription | None:
        model = self.session.get(PushSubscriptionModel, subscription_id)
        return self._to_entity(model) if model else None

    def get_by_endpoint(self, endpoint: str) -> PushSubscription | None:
        model = self._get_model_by_endpoint(endpoint)
        return self._to_entity(model) if model else None

    def list_active_for_user(self, user_id: int) -> list[PushSubscription]:
        query = (
            self.session.query(PushSubscriptionModel)
            .filter(PushSubscriptionModel.user_id == user_id)
            .filter(PushSubscriptionModel.is_active.is_(True))
            .order_by(PushSubscriptionModel.created_at.desc(), PushSubscriptionModel.id.desc())
        )
        return [self._to_entity(model) for model in query.all()]

    def deactivate(self, subscription_id: int, *, now: datetime) -> bool:
        return self._deactivate_where(
            PushSubscriptionModel.id == subscription_id, now=now
        ) == 1

    def deactivate_all_for_user(self, user_id: int, *, now: datetime) -> int:
        return self._deactivate_where(PushSubscriptionModel.user_id == user_id, now=now)

    def touch(self, subscription_id: int, *, now: datetime) -> None:
        self.session.execute(
            update(PushSubscriptionModel)
            .where(PushSubscriptionModel.id == subscription_id)
            .values(last_used_at=now)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()

    def _deactivate_where(self, criterion, *, now: datetime) -> int:
        result = self.session.execute(
            update(PushSubscriptionModel)
            .where(criterion)
            .where(PushSubscriptionModel.is_active.is_(True))
            .values(is_active=False, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return max(result.rowcount or 0, 0)

    def _get_model_by_endpoint(self, endpoint: str) -> PushSubscriptionModel | None:
        return (
            self.session.query(PushSubscriptionModel)
            .filter(PushSubscriptionModel.endpoint == endpoint)
            .first()
        )

    @staticmethod
    def _to_entity(model: PushSubscriptionModel) -> PushSubscription:
        return PushSubscription(
            id=model.id,
            user_id=model.user_id,
            endpoint=model.endpoint,
            p256dh_key=model.p256dh_key,
            auth_key=model.auth_key,
            user_agent=model.user_agent,
            is_active=model.is_active,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
            last_used_at=ensure_utc(model.last_used_at),
        )


__all__ = ["PushSubscriptionRepository"]
