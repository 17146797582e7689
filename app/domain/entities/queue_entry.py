"""Domain entities for the per-channel delivery queues."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .notification import NotificationPriority


class QueueChannel(str, Enum):
    """External channels backed by a durable queue."""

    EMAIL = "email"
    PUSH = "push"


class QueueStatus(str, Enum):
    """Lifecycle of a queue entry.

    ``pending -> sending -> sent | pending (retry) | failed``; ``pending ->
    cancelled``. Terminal states are only reopened by a manual retry.
    """

    PENDING = "pending"
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class QueueEntry:
    """Unit of delivery work for one recipient on one channel."""

    id: int | None
    notification_id: int
    recipient_id: int
    status: QueueStatus = QueueStatus.PENDING
    priority: NotificationPriority = NotificationPriority.MEDIUM
    retry_count: int = 0
    scheduled_at: datetime | None = None
    last_error: str | None = None
    sent_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    channel: QueueChannel = QueueChannel.EMAIL

    @property
    def destination(self) -> str:
        raise NotImplementedError


@dataclass
class EmailQueueEntry(QueueEntry):
    """Email delivery work addressed to ``to_address``."""

    to_address: str = ""
    channel: QueueChannel = QueueChannel.EMAIL

    @property
    def destination(self) -> str:
        return self.to_address


@dataclass
class PushQueueEntry(QueueEntry):
    """Push delivery work addressed to one registered push subscription."""

    subscription_id: int = 0
    channel: QueueChannel = QueueChannel.PUSH

    @property
    def destination(self) -> str:
        return str(self.subscription_id)


__all__ = [
    "EmailQueueEntry",
    "PushQueueEntry",
    "QueueChannel",
    "QueueEntry",
    "QueueStatus",
]
