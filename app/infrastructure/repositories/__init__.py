"""Repository implementations for infrastructure layer."""

from .notification_repository import NotificationRepository
from .preference_repository import PreferenceRepository
from .push_subscription_repository import PushSubscriptionRepository
from .queue_repository import EmailQueueRepository, PushQueueRepository, QueueRepository
from .user_repository import UserRepository

__all__ = [
    "EmailQueueRepository",
    "NotificationRepository",
    "PreferenceRepository",
    "PushQueueRepository",
    "PushSubscriptionRepository",
    "QueueRepository",
    "UserRepository",
]
