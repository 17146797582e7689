"""Schemas for notification preferences and quiet hours."""

from __future__ import annotations

from datetime import time

from pydantic import BaseModel, ConfigDict

from app.domain.entities import NotificationType


class PreferenceRead(BaseModel):
    type: NotificationType
    email_enabled: bool
    push_enabled: bool
    in_app_enabled: bool


class PreferenceUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email_enabled: bool | None = None
    push_enabled: bool | None = None
    in_app_enabled: bool | None = None


class NotificationSettingsRead(BaseModel):
    notifications_enabled: bool
    quiet_hours_enabled: bool
    quiet_hours_start: time | None = None
    quiet_hours_end: time | None = None
    timezone: str


class NotificationSettingsUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    notifications_enabled: bool | None = None
    quiet_hours_enabled: bool | None = None
    quiet_hours_start: time | None = None
    quiet_hours_end: time | None = None
    timezone: str | None = None


class PreferencesResponse(BaseModel):
    settings: NotificationSettingsRead
    preferences: list[PreferenceRead]


__all__ = [
    "NotificationSettingsRead",
    "NotificationSettingsUpdate",
    "PreferenceRead",
    "PreferenceUpdate",
    "PreferencesResponse",
]
