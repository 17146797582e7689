"""Domain entities exposed by the application."""

from .delivery import (
    PERMANENT_PUSH_ERRORS,
    PUSH_ERROR_EXPIRED,
    PUSH_ERROR_INVALID,
    PUSH_ERROR_NETWORK,
    PUSH_ERROR_RATE_LIMITED,
    PUSH_ERROR_SERVER,
    EmailDeliveryResult,
    PushDeliveryResult,
)
from .domain_event import DomainEvent, DomainEventType, TargetEntity
from .notification import (
    EntityReference,
    Notification,
    NotificationPriority,
    NotificationType,
    UserNotification,
)
from .preference import (
    DEFAULT_PREFERENCES,
    DefaultPreferences,
    NotificationPreference,
    NotificationSettings,
    QuietHours,
    ResolvedPreference,
)
from .push_subscription import PushSubscription
from .queue_entry import (
    EmailQueueEntry,
    PushQueueEntry,
    QueueChannel,
    QueueEntry,
    QueueStatus,
)
from .user import User

__all__ = [
    "DEFAULT_PREFERENCES",
    "DefaultPreferences",
    "DomainEvent",
    "DomainEventType",
    "EmailDeliveryResult",
    "EmailQueueEntry",
    "EntityReference",
    "Notification",
    "NotificationPreference",
    "NotificationPriority",
    "NotificationSettings",
    "NotificationType",
    "PERMANENT_PUSH_ERRORS",
    "PUSH_ERROR_EXPIRED",
    "PUSH_ERROR_INVALID",
    "PUSH_ERROR_NETWORK",
    "PUSH_ERROR_RATE_LIMITED",
    "PUSH_ERROR_SERVER",
    "PushDeliveryResult",
    "PushQueueEntry",
    "PushSubscription",
    "QueueChannel",
    "QueueEntry",
    "QueueStatus",
    "QuietHours",
    "ResolvedPreference",
    "TargetEntity",
    "User",
    "UserNotification",
]
