"""Use cases for registering devices for Web Push."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from sqlalchemy.orm import Session

from app.domain.channels import PushSender
from app.domain.entities import PUSH_ERROR_EXPIRED, PushSubscription
from app.infrastructure.repositories import PushSubscriptionRepository
from app.utils import utcnow

logger = logging.getLogger(__name__)


def register_push_subscription(
    session: Session,
    *,
    user_id: int,
    endpoint: str,
    p256dh_key: str,
    auth_key: str,
    user_agent: str | None = None,
) -> PushSubscription:
    """Register or refresh the subscription identified by ``endpoint``."""

    endpoint = (endpoint or "").strip()
    parsed = urlparse(endpoint)
    if parsed.scheme != "https" or not parsed.netloc:
        raise ValueError("Push endpoint must be an https URL")
    if not p256dh_key.strip() or not auth_key.strip():
        raise ValueError("Push subscription keys are required")

    subscription = PushSubscriptionRepository(session).upsert(
        PushSubscription(
            id=None,
            user_id=user_id,
            endpoint=endpoint,
            p256dh_key=p256dh_key.strip(),
            auth_key=auth_key.strip(),
            user_agent=user_agent[:500] if user_agent else None,
        ),
        now=utcnow(),
    )
    logger.info("Push subscription %s registered for user %s", subscription.id, user_id)
    return subscription


def unregister_push_subscription(session: Session, *, user_id: int, endpoint: str) -> None:
    """Deactivate the caller's subscription for ``endpoint``."""

    repository = PushSubscriptionRepository(session)
    subscription = repository.get_by_endpoint(endpoint)
    if subscription is None or subscription.user_id != user_id:
        raise ValueError("Push subscription not found")
    repository.deactivate(subscription.id, now=utcnow())


def list_push_subscriptions(session: Session, *, user_id: int) -> list[PushSubscription]:
    return PushSubscriptionRepository(session).list_active_for_user(user_id)


def deactivate_all_push_subscriptions(session: Session, *, user_id: int) -> int:
    return PushSubscriptionRepository(session).deactivate_all_for_user(user_id, now=utcnow())


def send_test_push(session: Session, *, user_id: int, sender: PushSender) -> dict[str, int]:
    """Send a test message straight to every active device of the user.

    Bypasses the queue; expired endpoints are deactivated as usual.
    """

    repository = PushSubscriptionRepository(session)
    subscriptions = repository.list_active_for_user(user_id)
    if not subscriptions:
        raise ValueError("No active push subscriptions")

    payload = {
        "title": "Test notification",
        "body": "Push notifications are working on this device.",
        "icon": "bell",
        "tag": "test-notification",
        "url": None,
        "priority": "medium",
        "data": {"type": "system"},
    }
    summary = {"sent": 0, "failed": 0, "deactivated": 0}
    for subscription in subscriptions:
        result = sender.send(subscription, payload)
        now = utcnow()
        if result.success:
            summary["sent"] += 1
            repository.touch(subscription.id, now=now)
            continue
        summary["failed"] += 1
        if result.error_code == PUSH_ERROR_EXPIRED:
            repository.deactivate(subscription.id, now=now)
            summary["deactivated"] += 1
    return summary


__all__ = [
    "deactivate_all_push_subscriptions",
    "list_push_subscriptions",
    "register_push_subscription",
    "send_test_push",
    "unregister_push_subscription",
]
