"""Notification engine use cases."""

from .events import emit_domain_event, notifies
from .ledger import (
    count_unread,
    create_notification,
    list_notifications,
    mark_all_read,
    mark_read,
    purge_notifications,
)
from .preferences import (
    get_preferences,
    resolve_preference,
    resolve_preferences,
    update_preference,
    update_settings,
)
from .processor import ChannelReport, CycleReport, QueueProcessor, process_queues
from .push_subscriptions import (
    deactivate_all_push_subscriptions,
    list_push_subscriptions,
    register_push_subscription,
    send_test_push,
    unregister_push_subscription,
)
from .queues import (
    enqueue_email,
    enqueue_push,
    list_failed_entries,
    queue_stats,
    retry_entry,
)
from .translator import NotificationDraft, translate_event

__all__ = [
    "ChannelReport",
    "CycleReport",
    "NotificationDraft",
    "QueueProcessor",
    "count_unread",
    "create_notification",
    "deactivate_all_push_subscriptions",
    "emit_domain_event",
    "enqueue_email",
    "enqueue_push",
    "get_preferences",
    "list_failed_entries",
    "list_notifications",
    "list_push_subscriptions",
    "mark_all_read",
    "mark_read",
    "notifies",
    "process_queues",
    "purge_notifications",
    "queue_stats",
    "register_push_subscription",
    "resolve_preference",
    "resolve_preferences",
    "retry_entry",
    "send_test_push",
    "translate_event",
    "unregister_push_subscription",
    "update_preference",
    "update_settings",
]
