"""ORM models used by the application infrastructure."""

from .notification import (
    NotificationModel,
    NotificationReadModel,
    NotificationRecipientModel,
)
from .preference import NotificationPreferenceModel, NotificationSettingsModel
from .push_subscription import PushSubscriptionModel
from .queue import EmailQueueModel, PushQueueModel
from .user import UserModel

__all__ = [
    "EmailQueueModel",
    "NotificationModel",
    "NotificationPreferenceModel",
    "NotificationReadModel",
    "NotificationRecipientModel",
    "NotificationSettingsModel",
    "PushQueueModel",
    "PushSubscriptionModel",
    "UserModel",
]
