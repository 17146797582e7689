"""Utility helpers to push new notifications to websocket subscribers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from anyio import from_thread

from app.domain.entities import Notification, UserNotification

from .manager import NotificationConnectionManager, notification_manager

logger = logging.getLogger(__name__)


class NotificationPublisher:
    """Serialize notifications and schedule their delivery.

    Publication is fire-and-forget: offline users reconcile through the list
    and unread-count endpoints, so failures are only logged.
    """

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    def dispatch(
        self,
        notification: Notification,
        unread_counts: Mapping[int, int],
    ) -> None:
        """Announce ``notification`` to each user in ``unread_counts``."""

        data = serialize_notification(notification)
        for user_id, unread_count in unread_counts.items():
            if not self._manager.is_connected(user_id):
                logger.debug("User %s has no open websocket; skipping publish", user_id)
                continue
            message = {
                "type": "notification",
                "data": {**data, "read_at": None, "is_read": False},
                "unread_count": unread_count,
            }
            self._schedule(user_id, message)

    def _schedule(self, user_id: int, message: dict[str, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                from_thread.run(self._manager.send_to_user, user_id, message)
            except RuntimeError as exc:
                # Called outside of an event loop worker thread, e.g. from a script.
                logger.debug("Realtime publish skipped for user %s: %s", user_id, exc)
            except Exception:
                logger.warning("Realtime publish failed for user %s", user_id, exc_info=True)
        else:
            loop.create_task(self._manager.send_to_user(user_id, message))


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    entity = notification.entity
    return {
        "id": notification.id,
        "type": notification.type.value,
        "title": notification.title,
        "message": notification.message,
        "priority": notification.priority.value,
        "entity_type": entity.entity_type if entity else None,
        "entity_id": entity.entity_id if entity else None,
        "metadata": dict(notification.metadata or {}),
        "action_url": notification.action_url,
        "created_at": notification.created_at.isoformat()
        if notification.created_at
        else None,
        "expires_at": notification.expires_at.isoformat()
        if notification.expires_at
        else None,
    }


def serialize_user_notification(item: UserNotification) -> dict[str, Any]:
    """Serialize ``item`` including the recipient's read state."""

    return {
        **serialize_notification(item.notification),
        "read_at": item.read_at.isoformat() if item.read_at else None,
        "is_read": item.is_read,
    }


notification_publisher = NotificationPublisher(notification_manager)


def dispatch_notification(
    notification: Notification, unread_counts: Mapping[int, int]
) -> None:
    """Public helper that delegates to the shared publisher instance."""

    notification_publisher.dispatch(notification, unread_counts)


__all__ = [
    "NotificationPublisher",
    "dispatch_notification",
    "notification_publisher",
    "serialize_notification",
    "serialize_user_notification",
]
