"""Template registry: maps every NotificationType to its rendered content.

Each template declares the context fields it needs, its default priority and
the icon the web client shows. The registry must cover the whole enum; the
check at the bottom of the module fails at import time otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from app.domain.entities import NotificationPriority, NotificationType
from app.domain.exceptions import TranslationError


@dataclass(frozen=True)
class NotificationTemplate:
    """Format strings used to build a notification's title and message."""

    notification_type: NotificationType
    title: str
    message: str
    required_fields: tuple[str, ...]
    priority: NotificationPriority = NotificationPriority.MEDIUM
    icon: str = "bell"

    def render(self, context: Mapping[str, Any]) -> tuple[str, str]:
        """Return ``(title, message)`` rendered from ``context``."""

        missing = [
            name
            for name in self.required_fields
            if context.get(name) in (None, "")
        ]
        if missing:
            raise TranslationError(
                f"Missing fields for {self.notification_type.value}: {', '.join(missing)}"
            )
        values = {key: value for key, value in context.items() if value is not None}
        try:
            return self.title.format(**values), self.message.format(**values)
        except (KeyError, IndexError, ValueError) as exc:
            raise TranslationError(
                f"Could not render {self.notification_type.value}: {exc}"
            ) from exc


_TEMPLATES: tuple[NotificationTemplate, ...] = (
    NotificationTemplate(
        NotificationType.SYSTEM,
        title="{title}",
        message="{message}",
        required_fields=("title", "message"),
        icon="bell",
    ),
    NotificationTemplate(
        NotificationType.TASK_ASSIGNMENT,
        title="New Task Assignment",
        message="{actor_name} assigned you to: {task_title}",
        required_fields=("actor_name", "task_title"),
        priority=NotificationPriority.HIGH,
        icon="clipboard",
    ),
    NotificationTemplate(
        NotificationType.TASK_UNASSIGNMENT,
        title="Task Unassigned",
        message="You were removed from task: {task_title}",
        required_fields=("task_title",),
        icon="x-circle",
    ),
    NotificationTemplate(
        NotificationType.TASK_UPDATE,
        title="Task Updated",
        message='{actor_name} updated "{task_title}": {change_summary}',
        required_fields=("actor_name", "task_title", "change_summary"),
        icon="refresh",
    ),
    NotificationTemplate(
        NotificationType.TASK_COMMENT,
        title="New Comment on Your Task",
        message='{actor_name} commented on "{task_title}"',
        required_fields=("actor_name", "task_title"),
        icon="message",
    ),
    NotificationTemplate(
        NotificationType.COMMENT_MENTION,
        title="You were mentioned",
        message='{actor_name} mentioned you in "{task_title}"',
        required_fields=("actor_name", "task_title"),
        priority=NotificationPriority.HIGH,
        icon="at-sign",
    ),
    NotificationTemplate(
        NotificationType.FORM_ASSIGNMENT,
        title="New Form Assignment",
        message="{actor_name} assigned you to form: {form_name}",
        required_fields=("actor_name", "form_name"),
        icon="file-text",
    ),
    NotificationTemplate(
        NotificationType.FORM_UNASSIGNMENT,
        title="Form Unassigned",
        message="You were removed from form: {form_name}",
        required_fields=("form_name",),
        priority=NotificationPriority.LOW,
        icon="file-minus",
    ),
    NotificationTemplate(
        NotificationType.APPROVAL_REQUEST,
        title="Approval Required",
        message="{actor_name} requested approval for: {entity_title}",
        required_fields=("actor_name", "entity_title"),
        priority=NotificationPriority.HIGH,
        icon="hand",
    ),
    NotificationTemplate(
        NotificationType.APPROVAL_STATUS_CHANGE,
        title="Approval {status}",
        message='{actor_name} marked your approval request for "{entity_title}" as {status}',
        required_fields=("actor_name", "entity_title", "status"),
        priority=NotificationPriority.HIGH,
        icon="check-circle",
    ),
    NotificationTemplate(
        NotificationType.ORGANIZATION_INVITATION,
        title="Organization Invitation",
        message="{actor_name} invited you to join {organization_name}",
        required_fields=("actor_name", "organization_name"),
        priority=NotificationPriority.HIGH,
        icon="mail",
    ),
    NotificationTemplate(
        NotificationType.PROJECT_INVITATION,
        title="Project Invitation",
        message="{actor_name} invited you to join project: {project_name}",
        required_fields=("actor_name", "project_name"),
        priority=NotificationPriority.HIGH,
        icon="mail",
    ),
    NotificationTemplate(
        NotificationType.ORGANIZATION_ADDED,
        title="Added to Organization",
        message="{actor_name} added you to {organization_name}",
        required_fields=("actor_name", "organization_name"),
        icon="building",
    ),
    NotificationTemplate(
        NotificationType.ORGANIZATION_REMOVED,
        title="Removed from Organization",
        message="You were removed from {organization_name}",
        required_fields=("organization_name",),
        icon="building",
    ),
    NotificationTemplate(
        NotificationType.PROJECT_ADDED,
        title="Added to Project",
        message="{actor_name} added you to project: {project_name}",
        required_fields=("actor_name", "project_name"),
        icon="folder",
    ),
    NotificationTemplate(
        NotificationType.PROJECT_REMOVED,
        title="Removed from Project",
        message="You were removed from project: {project_name}",
        required_fields=("project_name",),
        icon="folder",
    ),
    NotificationTemplate(
        NotificationType.DUE_DATE_REMINDER,
        title="Task Due Soon",
        message='"{task_title}" is due on {due_date}',
        required_fields=("task_title", "due_date"),
        priority=NotificationPriority.HIGH,
        icon="clock",
    ),
)

TEMPLATE_REGISTRY: dict[NotificationType, NotificationTemplate] = {
    template.notification_type: template for template in _TEMPLATES
}

_missing = set(NotificationType) - set(TEMPLATE_REGISTRY)
if _missing:  # pragma: no cover - guards edits to the enum
    raise RuntimeError(
        "Notification types without a template: "
        + ", ".join(sorted(item.value for item in _missing))
    )


def get_template(notification_type: NotificationType | str) -> NotificationTemplate:
    """Look up the template for ``notification_type``."""

    try:
        return TEMPLATE_REGISTRY[NotificationType(notification_type)]
    except ValueError as exc:
        raise TranslationError(f"Unknown notification type: {notification_type}") from exc


__all__ = ["NotificationTemplate", "TEMPLATE_REGISTRY", "get_template"]
