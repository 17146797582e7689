"""Domain entities describing notifications and their read state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    """Closed set of notification kinds the platform can produce."""

    SYSTEM = "system"
    TASK_ASSIGNMENT = "task_assignment"
    TASK_UNASSIGNMENT = "task_unassignment"
    TASK_UPDATE = "task_update"
    TASK_COMMENT = "task_comment"
    COMMENT_MENTION = "comment_mention"
    FORM_ASSIGNMENT = "form_assignment"
    FORM_UNASSIGNMENT = "form_unassignment"
    APPROVAL_REQUEST = "approval_request"
    APPROVAL_STATUS_CHANGE = "approval_status_change"
    ORGANIZATION_INVITATION = "organization_invitation"
    PROJECT_INVITATION = "project_invitation"
    ORGANIZATION_ADDED = "organization_added"
    ORGANIZATION_REMOVED = "organization_removed"
    PROJECT_ADDED = "project_added"
    PROJECT_REMOVED = "project_removed"
    DUE_DATE_REMINDER = "due_date_reminder"


class NotificationPriority(str, Enum):
    """Delivery urgency; queues drain higher priorities first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANKS[self]


_PRIORITY_RANKS = {
    NotificationPriority.LOW: 0,
    NotificationPriority.MEDIUM: 1,
    NotificationPriority.HIGH: 2,
    NotificationPriority.URGENT: 3,
}


@dataclass(frozen=True)
class EntityReference:
    """Pointer to the business object a notification is about."""

    entity_type: str
    entity_id: str


@dataclass
class Notification:
    """A message created once and shown to one or more recipients."""

    id: int | None
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    entity: EntityReference | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    action_url: str | None = None
    created_by: int | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None


@dataclass
class UserNotification:
    """A notification as seen by one recipient, including read state."""

    notification: Notification
    user_id: int
    read_at: datetime | None = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


__all__ = [
    "EntityReference",
    "Notification",
    "NotificationPriority",
    "NotificationType",
    "UserNotification",
]
