"""Domain entities describing per-user delivery preferences."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone

from app.utils.datetime import resolve_timezone

from .notification import NotificationType


@dataclass(frozen=True)
class DefaultPreferences:
    """Values used whenever a preference row has to be created lazily."""

    email_enabled: bool = True
    push_enabled: bool = False
    in_app_enabled: bool = True
    notifications_enabled: bool = True
    quiet_hours_enabled: bool = False
    quiet_hours_start: time | None = None
    quiet_hours_end: time | None = None
    timezone: str = "UTC"


DEFAULT_PREFERENCES = DefaultPreferences()


@dataclass(frozen=True)
class QuietHours:
    """A daily window, in the user's timezone, during which push is held back.

    ``start > end`` describes an overnight window such as 22:00-07:00. A window
    whose start equals its end is empty.
    """

    start: time
    end: time
    timezone: str = "UTC"

    def contains(self, moment: datetime) -> bool:
        """Return ``True`` when ``moment`` falls inside the window."""

        local = self._localize(moment).time()
        if self.start > self.end:
            return local >= self.start or local < self.end
        return self.start <= local < self.end

    def next_end(self, moment: datetime) -> datetime:
        """Return the first end-of-window instant after ``moment``, in UTC."""

        local = self._localize(moment)
        candidate = datetime.combine(local.date(), self.end, tzinfo=local.tzinfo)
        if candidate <= local:
            candidate = datetime.combine(
                local.date() + timedelta(days=1), self.end, tzinfo=local.tzinfo
            )
        return candidate.astimezone(timezone.utc)

    def _localize(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(resolve_timezone(self.timezone))


@dataclass
class NotificationSettings:
    """User-level switches that apply across every notification type."""

    user_id: int
    notifications_enabled: bool = DEFAULT_PREFERENCES.notifications_enabled
    quiet_hours_enabled: bool = DEFAULT_PREFERENCES.quiet_hours_enabled
    quiet_hours_start: time | None = DEFAULT_PREFERENCES.quiet_hours_start
    quiet_hours_end: time | None = DEFAULT_PREFERENCES.quiet_hours_end
    timezone: str = DEFAULT_PREFERENCES.timezone
    updated_at: datetime | None = None

    @property
    def quiet_hours(self) -> QuietHours | None:
        if (
            not self.quiet_hours_enabled
            or self.quiet_hours_start is None
            or self.quiet_hours_end is None
        ):
            return None
        return QuietHours(self.quiet_hours_start, self.quiet_hours_end, self.timezone)


@dataclass
class NotificationPreference:
    """Channel switches for one notification type of one user."""

    id: int | None
    user_id: int
    type: NotificationType
    email_enabled: bool = DEFAULT_PREFERENCES.email_enabled
    push_enabled: bool = DEFAULT_PREFERENCES.push_enabled
    in_app_enabled: bool = DEFAULT_PREFERENCES.in_app_enabled
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ResolvedPreference:
    """Effective delivery decision for a ``(user, type)`` pair.

    The global ``notifications_enabled`` switch has already been folded into the
    channel flags.
    """

    user_id: int
    type: NotificationType
    email_enabled: bool
    push_enabled: bool
    in_app_enabled: bool
    quiet_hours: QuietHours | None = None

    @property
    def any_enabled(self) -> bool:
        return self.email_enabled or self.push_enabled or self.in_app_enabled

    def push_deferred_until(self, moment: datetime) -> datetime | None:
        """Return when push may go out if ``moment`` is inside quiet hours."""

        if self.quiet_hours is None or not self.quiet_hours.contains(moment):
            return None
        return self.quiet_hours.next_end(moment)


__all__ = [
    "DEFAULT_PREFERENCES",
    "DefaultPreferences",
    "NotificationPreference",
    "NotificationSettings",
    "QuietHours",
    "ResolvedPreference",
]
