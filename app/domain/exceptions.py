"""Error taxonomy of the notification engine."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for notification engine failures."""


class TranslationError(NotificationError):
    """A domain event could not be turned into notifications."""


class QueueWriteFailure(NotificationError):
    """A delivery queue entry could not be written."""


class ChannelUnavailableError(NotificationError):
    """The provider behind a channel cannot be used at all right now.

    Entries are left ``pending`` without consuming a retry.
    """


__all__ = [
    "ChannelUnavailableError",
    "NotificationError",
    "QueueWriteFailure",
    "TranslationError",
]
