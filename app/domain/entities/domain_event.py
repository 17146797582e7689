"""Domain events emitted by business operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DomainEventType(str, Enum):
    """Business events the notification engine listens to."""

    TASK_ASSIGNED = "task.assigned"
    TASK_UNASSIGNED = "task.unassigned"
    TASK_UPDATED = "task.updated"
    TASK_COMMENTED = "task.commented"
    TASK_DUE_SOON = "task.due_soon"
    FORM_ASSIGNED = "form.assigned"
    FORM_UNASSIGNED = "form.unassigned"
    APPROVAL_REQUESTED = "approval.requested"
    APPROVAL_STATUS_CHANGED = "approval.status_changed"
    INVITATION_SENT = "invitation.sent"
    MEMBERSHIP_ADDED = "membership.added"
    MEMBERSHIP_REMOVED = "membership.removed"
    SYSTEM_ANNOUNCEMENT = "system.announcement"


@dataclass(frozen=True)
class TargetEntity:
    """The business object an event happened to."""

    entity_type: str
    entity_id: str
    title: str | None = None


@dataclass(frozen=True)
class DomainEvent:
    """``{event_type, actor_id, target_entity, payload}`` raised after a write."""

    event_type: DomainEventType | str
    actor_id: int | None
    target_entity: TargetEntity | None
    payload: dict[str, Any] = field(default_factory=dict)


__all__ = ["DomainEvent", "DomainEventType", "TargetEntity"]
