"""Tests for the notification template registry."""

import pytest

from app.domain.entities import NotificationPriority, NotificationType
from app.domain.exceptions import TranslationError
from app.domain.templates import TEMPLATE_REGISTRY, get_template


def test_every_notification_type_has_a_template():
    assert set(TEMPLATE_REGISTRY) == set(NotificationType)


def test_render_task_assignment():
    template = get_template(NotificationType.TASK_ASSIGNMENT)

    title, message = template.render({"actor_name": "Alice", "task_title": "Fix login"})

    assert title == "New Task Assignment"
    assert message == "Alice assigned you to: Fix login"
    assert template.priority is NotificationPriority.HIGH


def test_render_uses_context_in_title():
    template = get_template("approval_status_change")

    title, _ = template.render(
        {"actor_name": "Bob", "entity_title": "Budget", "status": "Approved"}
    )

    assert title == "Approval Approved"


@pytest.mark.parametrize("context", [{"actor_name": "Alice"}, {"actor_name": "Alice", "task_title": ""}])
def test_render_rejects_missing_fields(context):
    template = get_template(NotificationType.TASK_ASSIGNMENT)

    with pytest.raises(TranslationError, match="task_title"):
        template.render(context)


def test_unknown_type_is_a_translation_error():
    with pytest.raises(TranslationError):
        get_template("carrier_pigeon")
