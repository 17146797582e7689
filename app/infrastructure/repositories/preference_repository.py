"""Persistence layer for notification preferences and user settings."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy.orm import Session

from app.domain.entities import (
    DEFAULT_PREFERENCES,
    DefaultPreferences,
    NotificationPreference,
    NotificationSettings,
    NotificationType,
)
from app.infrastructure.database import insert_ignoring_conflicts
from app.infrastructure.models import (
    NotificationPreferenceModel,
    NotificationSettingsModel,
)
from app.utils import ensure_utc


class PreferenceRepository:
    """Read and write per-type preferences and the user level settings row.

    Missing rows are created with ``INSERT ... ON CONFLICT DO NOTHING`` so two
    concurrent writers for the same key end up sharing a single row.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def ensure_preferences(
        self,
        user_id: int,
        types: Iterable[NotificationType],
        *,
        now: datetime,
        defaults: DefaultPreferences = DEFAULT_PREFERENCES,
    ) -> int:
        """Insert default rows for the missing ``types``; return how many were added."""

        rows = [
            {
                "user_id": user_id,
                "type": NotificationType(item).value,
                "email_enabled": defaults.email_enabled,
                "push_enabled": defaults.push_enabled,
                "in_app_enabled": defaults.in_app_enabled,
                "created_at": now,
            }
            for item in dict.fromkeys(types)
        ]
        if not rows:
            return 0
        created = 0
        table = NotificationPreferenceModel.__table__
        for row in rows:
            result = self.session.execute(
                insert_ignoring_conflicts(self.session, table).values(**row)
            )
            created += max(result.rowcount or 0, 0)
        self.session.commit()
        return created

    def ensure_settings(
        self,
        user_id: int,
        *,
        now: datetime,
        defaults: DefaultPreferences = DEFAULT_PREFERENCES,
    ) -> NotificationSettings:
        statement = insert_ignoring_conflicts(
            self.session, NotificationSettingsModel.__table__
        ).values(
            user_id=user_id,
            notifications_enabled=defaults.notifications_enabled,
            quiet_hours_enabled=defaults.quiet_hours_enabled,
            quiet_hours_start=defaults.quiet_hours_start,
            quiet_hours_end=defaults.quiet_hours_end,
            timezone=defaults.timezone,
            created_at=now,
        )
        self.session.execute(statement)
        self.session.commit()
        settings = self.get_settings(user_id)
        if settings is None:  # pragma: no cover - the insert above guarantees a row
            raise RuntimeError(f"Notification settings for user {user_id} vanished")
        return settings

    def get(self, user_id: int, notification_type: NotificationType) -> NotificationPreference | None:
        model = self._get_model(user_id, notification_type)
        return self._to_entity(model) if model else None

    def list_for_user(self, user_id: int) -> list[NotificationPreference]:
        query = (
            self.session.query(NotificationPreferenceModel)
            .filter(NotificationPreferenceModel.user_id == user_id)
            .order_by(NotificationPreferenceModel.type)
        )
        return [self._to_entity(model) for model in query.all()]

    def map_for_users(
        self, user_ids: Iterable[int], notification_type: NotificationType
    ) -> dict[int, NotificationPreference]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        query = self.session.query(NotificationPreferenceModel).filter(
            NotificationPreferenceModel.user_id.in_(ids),
            NotificationPreferenceModel.type == NotificationType(notification_type).value,
        )
        return {model.user_id: self._to_entity(model) for model in query.all()}

    def get_settings(self, user_id: int) -> NotificationSettings | None:
        model = self.session.get(NotificationSettingsModel, user_id)
        return self._settings_to_entity(model) if model else None

    def update(self, preference: NotificationPreference, *, now: datetime) -> NotificationPreference:
        self.ensure_preferences(preference.user_id, [preference.type], now=now)
        model = self._get_model(preference.user_id, preference.type)
        model.email_enabled = preference.email_enabled
        model.push_enabled = preference.push_enabled
        model.in_app_enabled = preference.in_app_enabled
        model.updated_at = now
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def update_settings(
        self, settings: NotificationSettings, *, now: datetime
    ) -> NotificationSettings:
        self.ensure_settings(settings.user_id, now=now)
        model = self.session.get(NotificationSettingsModel, settings.user_id)
        model.notifications_enabled = settings.notifications_enabled
        model.quiet_hours_enabled = settings.quiet_hours_enabled
        model.quiet_hours_start = settings.quiet_hours_start
        model.quiet_hours_end = settings.quiet_hours_end
        model.timezone = settings.timezone
        model.updated_at = now
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._settings_to_entity(model)

    def _get_model(
        self, user_id: int, notification_type: NotificationType
    ) -> NotificationPreferenceModel | None:
        return (
            self.session.query(NotificationPreferenceModel)
            .filter(
                NotificationPreferenceModel.user_id == user_id,
                NotificationPreferenceModel.type == NotificationType(notification_type).value,
            )
            .first()
        )

    @staticmethod
    def _to_entity(model: NotificationPreferenceModel) -> NotificationPreference:
        return NotificationPreference(
            id=model.id,
            user_id=model.user_id,
            type=NotificationType(model.type),
            email_enabled=model.email_enabled,
            push_enabled=model.push_enabled,
            in_app_enabled=model.in_app_enabled,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )

    @staticmethod
    def _settings_to_entity(model: NotificationSettingsModel) -> NotificationSettings:
        return NotificationSettings(
            user_id=model.user_id,
            notifications_enabled=model.notifications_enabled,
            quiet_hours_enabled=model.quiet_hours_enabled,
            quiet_hours_start=model.quiet_hours_start,
            quiet_hours_end=model.quiet_hours_end,
            timezone=model.timezone,
            updated_at=ensure_utc(model.updated_at),
        )


__all__ = ["PreferenceRepository"]
