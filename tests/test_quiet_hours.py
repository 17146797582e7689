"""Tests for quiet hours windows and push deferral."""

from datetime import datetime, time, timezone

import pytest

from app.domain.entities import NotificationType, QuietHours, ResolvedPreference


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 5, 10, hour, minute, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("moment", "expected"),
    [
        (_at(23, 30), True),
        (_at(2, 0), True),
        (_at(6, 59), True),
        (_at(7, 0), False),
        (_at(10, 0), False),
        (_at(21, 59), False),
        (_at(22, 0), True),
    ],
)
def test_overnight_window(moment, expected):
    window = QuietHours(time(22, 0), time(7, 0))

    assert window.contains(moment) is expected


def test_daytime_window():
    window = QuietHours(time(12, 0), time(14, 0))

    assert window.contains(_at(13, 0))
    assert not window.contains(_at(14, 0))
    assert not window.contains(_at(11, 59))


def test_window_uses_user_timezone():
    # 23:30 UTC is 19:30 in New York during daylight saving time.
    window = QuietHours(time(22, 0), time(7, 0), "America/New_York")

    assert not window.contains(_at(23, 30))
    assert window.contains(datetime(2024, 5, 11, 3, 0, tzinfo=timezone.utc))


def test_next_end_rolls_over_to_the_following_day():
    window = QuietHours(time(22, 0), time(7, 0))

    assert window.next_end(_at(23, 30)) == datetime(2024, 5, 11, 7, 0, tzinfo=timezone.utc)
    assert window.next_end(_at(2, 0)) == datetime(2024, 5, 10, 7, 0, tzinfo=timezone.utc)


def _preference(quiet_hours: QuietHours | None) -> ResolvedPreference:
    return ResolvedPreference(
        user_id=1,
        type=NotificationType.TASK_ASSIGNMENT,
        email_enabled=True,
        push_enabled=True,
        in_app_enabled=True,
        quiet_hours=quiet_hours,
    )


def test_push_is_deferred_inside_quiet_hours_only():
    preference = _preference(QuietHours(time(22, 0), time(7, 0)))

    assert preference.push_deferred_until(_at(23, 30)) == datetime(
        2024, 5, 11, 7, 0, tzinfo=timezone.utc
    )
    assert preference.push_deferred_until(_at(10, 0)) is None


def test_push_is_never_deferred_without_quiet_hours():
    assert _preference(None).push_deferred_until(_at(23, 30)) is None
