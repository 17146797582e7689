"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.domain.entities import NotificationPriority, NotificationType


class NotificationRead(BaseModel):
    """Representation of a notification as seen by one recipient."""

    id: int
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority
    entity_type: str | None = None
    entity_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    action_url: str | None = None
    created_at: datetime
    expires_at: datetime | None = None
    read_at: datetime | None = None
    is_read: bool = False


class NotificationListResponse(BaseModel):
    items: list[NotificationRead]
    unread_count: int
    limit: int
    offset: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int = Field(..., description="Number of notifications newly marked as read")


__all__ = [
    "MarkAllReadResponse",
    "NotificationListResponse",
    "NotificationRead",
    "UnreadCountResponse",
]
