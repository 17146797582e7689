"""Endpoints to read and edit notification preferences."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.application.use_cases.notifications import (
    get_preferences,
    update_preference,
    update_settings,
)
from app.domain.entities import (
    NotificationPreference,
    NotificationSettings,
    NotificationType,
    User,
)
from app.infrastructure.database import get_db
from app.interfaces.api.dependencies import get_current_active_user
from app.interfaces.api.schemas import (
    NotificationSettingsRead,
    NotificationSettingsUpdate,
    PreferenceRead,
    PreferencesResponse,
    PreferenceUpdate,
)

router = APIRouter(prefix="/notifications/preferences", tags=["notification preferences"])


def _settings_to_schema(settings: NotificationSettings) -> NotificationSettingsRead:
    return NotificationSettingsRead(
        notifications_enabled=settings.notifications_enabled,
        quiet_hours_enabled=settings.quiet_hours_enabled,
        quiet_hours_start=settings.quiet_hours_start,
        quiet_hours_end=settings.quiet_hours_end,
        timezone=settings.timezone,
    )


def _preference_to_schema(preference: NotificationPreference) -> PreferenceRead:
    return PreferenceRead(
        type=preference.type,
        email_enabled=preference.email_enabled,
        push_enabled=preference.push_enabled,
        in_app_enabled=preference.in_app_enabled,
    )


@router.get("/", response_model=PreferencesResponse)
def read_preferences(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PreferencesResponse:
    """Return the global settings and the switches of every notification type."""

    settings, preferences = get_preferences(db, user_id=current_user.id)
    return PreferencesResponse(
        settings=_settings_to_schema(settings),
        preferences=[_preference_to_schema(preference) for preference in preferences],
    )


@router.put("/settings", response_model=NotificationSettingsRead)
def write_settings(
    payload: NotificationSettingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationSettingsRead:
    try:
        settings = update_settings(
            db,
            user_id=current_user.id,
            **payload.model_dump(exclude_unset=True),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _settings_to_schema(settings)


@router.put("/{notification_type}", response_model=PreferenceRead)
def write_preference(
    notification_type: NotificationType,
    payload: PreferenceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PreferenceRead:
    preference = update_preference(
        db,
        user_id=current_user.id,
        notification_type=notification_type,
        **payload.model_dump(exclude_unset=True),
    )
    return _preference_to_schema(preference)
