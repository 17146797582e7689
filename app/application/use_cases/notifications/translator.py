"""Translate domain events into notifications and channel queue entries.

Each event type has a handler that works out the recipients and the template
context. Delivery of a draft then follows the same steps for every event:
drop the actor, resolve preferences (creating defaults), write the
notification once, and enqueue the enabled external channels per recipient.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session

from app.domain.entities import (
    DomainEvent,
    DomainEventType,
    EntityReference,
    Notification,
    NotificationPriority,
    NotificationType,
    ResolvedPreference,
    TargetEntity,
    User,
)
from app.domain.exceptions import QueueWriteFailure, TranslationError
from app.domain.templates import get_template
from app.infrastructure.repositories import UserRepository
from app.utils import ensure_utc, utcnow

from .ledger import create_notification
from .preferences import resolve_preferences
from .queues import enqueue_email, enqueue_push

logger = logging.getLogger(__name__)

_ENTITY_PATHS = {
    "task": "/tasks/{id}",
    "form": "/forms/{id}",
    "approval": "/approvals/{id}",
    "organization": "/organizations/{id}",
    "project": "/projects/{id}",
    "invitation": "/invitations/{id}",
}

_URGENT_TASK_FIELDS = frozenset({"status", "due_date"})


@dataclass
class NotificationDraft:
    """What a handler wants created, before actor and preference filtering."""

    notification_type: NotificationType
    recipients: list[int]
    context: dict[str, Any]
    priority: NotificationPriority | None = None
    entity: EntityReference | None = None
    action_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    expires_at: datetime | None = None


Handler = Callable[[Session, DomainEvent, dict[str, Any]], list[NotificationDraft]]


def translate_event(
    session: Session, event: DomainEvent, *, now: datetime | None = None
) -> list[Notification]:
    """Create the notifications described by ``event``.

    Raises :class:`TranslationError` for events that cannot be interpreted.
    Queue write failures are logged per recipient and do not undo the
    notification.
    """

    moment = now or utcnow()
    event_type = _event_type(event)
    context = _base_context(session, event)
    drafts = _HANDLERS[event_type](session, event, context)

    created: list[Notification] = []
    for draft in drafts:
        notification = _deliver(session, event, draft, now=moment)
        if notification is not None:
            created.append(notification)
    return created


def _deliver(
    session: Session,
    event: DomainEvent,
    draft: NotificationDraft,
    *,
    now: datetime,
) -> Notification | None:
    recipients = [
        user_id for user_id in dict.fromkeys(draft.recipients) if user_id != event.actor_id
    ]
    if not recipients:
        logger.debug("No recipients left for %s", draft.notification_type.value)
        return None

    template = get_template(draft.notification_type)
    title, message = template.render(draft.context)

    users = UserRepository(session).get_map_by_ids(recipients)
    unknown = [user_id for user_id in recipients if user_id not in users]
    if unknown:
        logger.warning(
            "Skipping unknown recipient(s) %s for %s", unknown, draft.notification_type.value
        )
    recipients = [user_id for user_id in recipients if user_id in users and users[user_id].is_active]
    if not recipients:
        return None

    preferences = resolve_preferences(
        session, user_ids=recipients, notification_type=draft.notification_type, now=now
    )
    eligible = [user_id for user_id in recipients if preferences[user_id].any_enabled]
    if not eligible:
        logger.info(
            "Every recipient disabled %s notifications", draft.notification_type.value
        )
        return None

    notification = create_notification(
        session,
        notification_type=draft.notification_type,
        title=title,
        message=message,
        recipients=eligible,
        priority=draft.priority or template.priority,
        entity=draft.entity,
        metadata={**draft.metadata, "event_type": _event_type(event).value, "icon": template.icon},
        action_url=draft.action_url,
        expires_at=draft.expires_at,
        created_by=event.actor_id,
        hidden_from={user_id for user_id in eligible if not preferences[user_id].in_app_enabled},
    )

    for user_id in eligible:
        _enqueue_channels(session, notification, users[user_id], preferences[user_id], now=now)
    return notification


def _enqueue_channels(
    session: Session,
    notification: Notification,
    user: User,
    preference: ResolvedPreference,
    *,
    now: datetime,
) -> None:
    if preference.email_enabled:
        try:
            enqueue_email(session, notification=notification, recipient=user, now=now)
        except QueueWriteFailure:
            logger.exception("Email enqueue failed for notification %s", notification.id)
    if preference.push_enabled:
        try:
            enqueue_push(
                session,
                notification=notification,
                recipient_id=user.id,
                deferred_until=preference.push_deferred_until(now),
                now=now,
            )
        except QueueWriteFailure:
            logger.exception("Push enqueue failed for notification %s", notification.id)


# Payload helpers


def _event_type(event: DomainEvent) -> DomainEventType:
    try:
        return DomainEventType(event.event_type)
    except ValueError as exc:
        raise TranslationError(f"Unknown event type: {event.event_type!r}") from exc


def _base_context(session: Session, event: DomainEvent) -> dict[str, Any]:
    payload = event.payload or {}
    actor_name = payload.get("actor_name")
    if not actor_name and event.actor_id is not None:
        actor = UserRepository(session).get(event.actor_id)
        actor_name = actor.name if actor else None
    target = event.target_entity
    return {
        "actor_name": actor_name,
        "entity_title": payload.get("entity_title") or (target.title if target else None),
    }


def _require_target(event: DomainEvent, *entity_types: str) -> TargetEntity:
    target = event.target_entity
    if target is None or not str(target.entity_id or "").strip():
        raise TranslationError(f"{_event_type(event).value} requires a target entity")
    if entity_types and target.entity_type not in entity_types:
        raise TranslationError(
            f"{_event_type(event).value} expects a {' or '.join(entity_types)} target, "
            f"got {target.entity_type!r}"
        )
    return target


def _user_ids(payload: dict[str, Any], key: str, *, required: bool = True) -> list[int]:
    raw = payload.get(key)
    if raw is None:
        if required:
            raise TranslationError(f"Missing {key!r} in event payload")
        return []
    if isinstance(raw, (int, str)):
        raw = [raw]
    if not isinstance(raw, Iterable):
        raise TranslationError(f"{key!r} must be a list of user ids")
    try:
        return [int(value) for value in raw]
    except (TypeError, ValueError) as exc:
        raise TranslationError(f"{key!r} must contain user ids only") from exc


def _text(payload: dict[str, Any], key: str, fallback: str | None = None) -> str | None:
    value = payload.get(key)
    if value is None:
        return fallback
    return str(value).strip() or fallback


def _parse_datetime(value: Any, key: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return ensure_utc(datetime(value.year, value.month, value.day))
    try:
        return ensure_utc(datetime.fromisoformat(str(value)))
    except ValueError as exc:
        raise TranslationError(f"{key!r} is not an ISO 8601 timestamp") from exc


def _format_due_date(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    parsed = _parse_datetime(value, "due_date")
    return parsed.date().isoformat() if parsed else None


def _priority(payload: dict[str, Any]) -> NotificationPriority | None:
    value = payload.get("priority")
    if value is None:
        return None
    try:
        return NotificationPriority(value)
    except ValueError as exc:
        raise TranslationError(f"Unknown priority: {value!r}") from exc


def _draft(
    event: DomainEvent,
    notification_type: NotificationType,
    recipients: list[int],
    context: dict[str, Any],
    **overrides: Any,
) -> NotificationDraft:
    payload = event.payload or {}
    target = event.target_entity
    entity = EntityReference(target.entity_type, str(target.entity_id)) if target else None
    action_url = payload.get("action_url")
    if action_url is None and target is not None and target.entity_type in _ENTITY_PATHS:
        action_url = _ENTITY_PATHS[target.entity_type].format(id=target.entity_id)
    draft = NotificationDraft(
        notification_type=notification_type,
        recipients=recipients,
        context=context,
        priority=_priority(payload),
        entity=entity,
        action_url=action_url,
        expires_at=_parse_datetime(payload.get("expires_at"), "expires_at"),
    )
    for name, value in overrides.items():
        setattr(draft, name, value)
    return draft


def _scope(payload: dict[str, Any]) -> str:
    scope = _text(payload, "scope")
    if scope not in ("organization", "project"):
        raise TranslationError(f"'scope' must be 'organization' or 'project', got {scope!r}")
    return scope


def _scope_context(
    event: DomainEvent, context: dict[str, Any], scope: str
) -> dict[str, Any]:
    payload = event.payload or {}
    key = f"{scope}_name"
    return {**context, key: _text(payload, key, context.get("entity_title"))}


# Event handlers


def _task_assigned(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    _require_target(event, "task")
    payload = event.payload or {}
    return [
        _draft(
            event,
            NotificationType.TASK_ASSIGNMENT,
            _user_ids(payload, "assignee_ids"),
            {**context, "task_title": _text(payload, "task_title", context["entity_title"])},
        )
    ]


def _task_unassigned(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    _require_target(event, "task")
    payload = event.payload or {}
    return [
        _draft(
            event,
            NotificationType.TASK_UNASSIGNMENT,
            _user_ids(payload, "unassigned_ids"),
            {**context, "task_title": _text(payload, "task_title", context["entity_title"])},
        )
    ]


def _task_updated(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    _require_target(event, "task")
    payload = event.payload or {}
    changes = payload.get("changes") or []
    if not isinstance(changes, (dict, list, tuple)):
        raise TranslationError("'changes' must be a list of field names or a mapping")
    changed_fields = list(changes.keys()) if isinstance(changes, dict) else [str(item) for item in changes]
    summary = _text(payload, "change_summary")
    if summary is None and changed_fields:
        summary = "changed " + ", ".join(name.replace("_", " ") for name in changed_fields)
    draft = _draft(
        event,
        NotificationType.TASK_UPDATE,
        _user_ids(payload, "assignee_ids"),
        {
            **context,
            "task_title": _text(payload, "task_title", context["entity_title"]),
            "change_summary": summary,
        },
        metadata={"changes": changed_fields},
    )
    if draft.priority is None and _URGENT_TASK_FIELDS.intersection(changed_fields):
        draft.priority = NotificationPriority.HIGH
    return [draft]


def _task_commented(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    _require_target(event, "task")
    payload = event.payload or {}
    mentioned = _user_ids(payload, "mentioned_user_ids", required=False)
    followers = _user_ids(payload, "assignee_ids", required=False) + _user_ids(
        payload, "watcher_ids", required=False
    )
    task_context = {**context, "task_title": _text(payload, "task_title", context["entity_title"])}
    metadata = {"comment_id": payload.get("comment_id")}
    if payload.get("comment_excerpt"):
        metadata["comment_excerpt"] = str(payload["comment_excerpt"])[:200]

    drafts = []
    if mentioned:
        drafts.append(
            _draft(event, NotificationType.COMMENT_MENTION, mentioned, task_context, metadata=dict(metadata))
        )
    others = [user_id for user_id in followers if user_id not in set(mentioned)]
    if others:
        drafts.append(
            _draft(event, NotificationType.TASK_COMMENT, others, task_context, metadata=dict(metadata))
        )
    return drafts


def _task_due_soon(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    _require_target(event, "task")
    payload = event.payload or {}
    return [
        _draft(
            event,
            NotificationType.DUE_DATE_REMINDER,
            _user_ids(payload, "assignee_ids"),
            {
                **context,
                "task_title": _text(payload, "task_title", context["entity_title"]),
                "due_date": _format_due_date(payload.get("due_date")),
            },
        )
    ]


def _form_assigned(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    _require_target(event, "form")
    payload = event.payload or {}
    return [
        _draft(
            event,
            NotificationType.FORM_ASSIGNMENT,
            _user_ids(payload, "assignee_ids"),
            {**context, "form_name": _text(payload, "form_name", context["entity_title"])},
        )
    ]


def _form_unassigned(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    _require_target(event, "form")
    payload = event.payload or {}
    return [
        _draft(
            event,
            NotificationType.FORM_UNASSIGNMENT,
            _user_ids(payload, "unassigned_ids"),
            {**context, "form_name": _text(payload, "form_name", context["entity_title"])},
        )
    ]


def _approval_requested(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    _require_target(event)
    payload = event.payload or {}
    return [
        _draft(
            event,
            NotificationType.APPROVAL_REQUEST,
            _user_ids(payload, "approver_ids"),
            context,
            metadata={"approval_id": payload.get("approval_id")},
        )
    ]


def _approval_status_changed(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    _require_target(event)
    payload = event.payload or {}
    status = _text(payload, "status")
    return [
        _draft(
            event,
            NotificationType.APPROVAL_STATUS_CHANGE,
            _user_ids(payload, "requester_id"),
            {**context, "status": status.replace("_", " ").title() if status else None},
            metadata={"approval_id": payload.get("approval_id"), "status": status},
        )
    ]


def _invitation_sent(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    payload = event.payload or {}
    scope = _scope(payload)
    notification_type = (
        NotificationType.ORGANIZATION_INVITATION
        if scope == "organization"
        else NotificationType.PROJECT_INVITATION
    )
    return [
        _draft(
            event,
            notification_type,
            _user_ids(payload, "invitee_ids"),
            _scope_context(event, context, scope),
            metadata={"invitation_id": payload.get("invitation_id"), "role": payload.get("role")},
        )
    ]


def _membership_added(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    payload = event.payload or {}
    scope = _scope(payload)
    notification_type = (
        NotificationType.ORGANIZATION_ADDED if scope == "organization" else NotificationType.PROJECT_ADDED
    )
    return [
        _draft(
            event,
            notification_type,
            _user_ids(payload, "member_ids"),
            _scope_context(event, context, scope),
            metadata={"role": payload.get("role")},
        )
    ]


def _membership_removed(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    payload = event.payload or {}
    scope = _scope(payload)
    notification_type = (
        NotificationType.ORGANIZATION_REMOVED
        if scope == "organization"
        else NotificationType.PROJECT_REMOVED
    )
    draft = _draft(
        event,
        notification_type,
        _user_ids(payload, "member_ids"),
        _scope_context(event, context, scope),
    )
    # The removed member can no longer open the resource.
    if "action_url" not in payload:
        draft.action_url = None
    return [draft]


def _system_announcement(session: Session, event: DomainEvent, context: dict[str, Any]) -> list[NotificationDraft]:
    payload = event.payload or {}
    if payload.get("broadcast"):
        recipients = UserRepository(session).list_active_ids()
    else:
        recipients = _user_ids(payload, "recipient_ids")
    return [
        _draft(
            event,
            NotificationType.SYSTEM,
            recipients,
            {**context, "title": _text(payload, "title"), "message": _text(payload, "message")},
        )
    ]


_HANDLERS: dict[DomainEventType, Handler] = {
    DomainEventType.TASK_ASSIGNED: _task_assigned,
    DomainEventType.TASK_UNASSIGNED: _task_unassigned,
    DomainEventType.TASK_UPDATED: _task_updated,
    DomainEventType.TASK_COMMENTED: _task_commented,
    DomainEventType.TASK_DUE_SOON: _task_due_soon,
    DomainEventType.FORM_ASSIGNED: _form_assigned,
    DomainEventType.FORM_UNASSIGNED: _form_unassigned,
    DomainEventType.APPROVAL_REQUESTED: _approval_requested,
    DomainEventType.APPROVAL_STATUS_CHANGED: _approval_status_changed,
    DomainEventType.INVITATION_SENT: _invitation_sent,
    DomainEventType.MEMBERSHIP_ADDED: _membership_added,
    DomainEventType.MEMBERSHIP_REMOVED: _membership_removed,
    DomainEventType.SYSTEM_ANNOUNCEMENT: _system_announcement,
}


__all__ = ["NotificationDraft", "translate_event"]
