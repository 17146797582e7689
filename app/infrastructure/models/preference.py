"""SQLAlchemy models for notification preferences."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Time,
    UniqueConstraint,
)

from app.domain.entities import DEFAULT_PREFERENCES
from app.infrastructure.database import Base
from app.utils import utcnow


class NotificationPreferenceModel(Base):
    """Channel switches of one user for one notification type."""

    __tablename__ = "notification_preference"
    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_notification_preference_user_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    email_enabled = Column(Boolean, nullable=False, default=DEFAULT_PREFERENCES.email_enabled)
    push_enabled = Column(Boolean, nullable=False, default=DEFAULT_PREFERENCES.push_enabled)
    in_app_enabled = Column(Boolean, nullable=False, default=DEFAULT_PREFERENCES.in_app_enabled)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class NotificationSettingsModel(Base):
    """User level toggles and quiet hours window."""

    __tablename__ = "notification_settings"

    user_id = Column(Integer, ForeignKey("user.id"), primary_key=True)
    notifications_enabled = Column(
        Boolean, nullable=False, default=DEFAULT_PREFERENCES.notifications_enabled
    )
    quiet_hours_enabled = Column(
        Boolean, nullable=False, default=DEFAULT_PREFERENCES.quiet_hours_enabled
    )
    quiet_hours_start = Column(Time, nullable=True)
    quiet_hours_end = Column(Time, nullable=True)
    timezone = Column(String(64), nullable=False, default=DEFAULT_PREFERENCES.timezone)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)


__all__ = ["NotificationPreferenceModel", "NotificationSettingsModel"]
