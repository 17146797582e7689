"""Queue processor: drains the channel queues on each scheduled cycle."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, TypeVar

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.domain.channels import EmailSender, PushSender
from app.domain.entities import (
    PUSH_ERROR_EXPIRED,
    EmailQueueEntry,
    PushQueueEntry,
    QueueChannel,
    QueueEntry,
)
from app.domain.exceptions import ChannelUnavailableError
from app.domain.templates import get_template
from app.infrastructure.email import build_notification_email
from app.infrastructure.push import build_push_payload
from app.infrastructure.repositories import (
    NotificationRepository,
    PushSubscriptionRepository,
    QueueRepository,
)
from app.utils import utcnow

from .queues import queue_repository

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Claims older than this are assumed to belong to a worker that died.
STALE_CLAIM_FACTOR = 10


@dataclass
class ChannelReport:
    """Outcome counters of one channel in one cycle."""

    sent: int = 0
    retried: int = 0
    failed: int = 0
    cancelled: int = 0
    skipped: int = 0
    released: int = 0
    unavailable: bool = False

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CycleReport:
    expired_cancelled: int = 0
    stale_released: int = 0
    channels: dict[str, ChannelReport] = field(
        default_factory=lambda: {channel.value: ChannelReport() for channel in QueueChannel}
    )

    def as_dict(self) -> dict[str, Any]:
        return {
            "expired_cancelled": self.expired_cancelled,
            "stale_released": self.stale_released,
            "channels": {name: report.as_dict() for name, report in self.channels.items()},
        }


class _DeliveryTimeout(Exception):
    pass


class QueueProcessor:
    """Claim due entries, call the delivery collaborators and record outcomes.

    Several processors may run at once: an entry is only worked on after its
    ``pending -> sending`` claim succeeded.
    """

    def __init__(
        self,
        session: Session,
        *,
        email_sender: EmailSender,
        push_sender: PushSender,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.email_sender = email_sender
        self.push_sender = push_sender
        self.settings = settings or get_settings()
        self.clock = clock
        self._notifications = NotificationRepository(session)
        self._subscriptions = PushSubscriptionRepository(session)

    def run_cycle(self) -> CycleReport:
        report = CycleReport()
        now = self.clock()
        stale_before = now - timedelta(
            seconds=self.settings.notification_delivery_timeout_seconds * STALE_CLAIM_FACTOR
        )
        for channel in QueueChannel:
            repository = queue_repository(self.session, channel)
            report.expired_cancelled += repository.cancel_expired(now=now)
            report.stale_released += repository.release_stale(
                claimed_before=stale_before, now=now
            )

        for channel in QueueChannel:
            self._drain(channel, report.channels[channel.value])

        logger.info("Queue cycle finished: %s", report.as_dict())
        return report

    def _drain(self, channel: QueueChannel, report: ChannelReport) -> None:
        repository = queue_repository(self.session, channel)
        entries = repository.list_due(
            now=self.clock(), limit=self.settings.notification_batch_size
        )
        for entry in entries:
            if not repository.claim(entry.id, now=self.clock()):
                report.skipped += 1
                continue
            try:
                if channel is QueueChannel.EMAIL:
                    self._dispatch_email(repository, entry, report)
                else:
                    self._dispatch_push(repository, entry, report)
            except ChannelUnavailableError as exc:
                repository.release(entry.id, now=self.clock())
                report.released += 1
                report.unavailable = True
                logger.info(
                    "%s channel unavailable, leaving remaining entries pending: %s",
                    channel.value,
                    exc,
                )
                break

    def _dispatch_email(
        self, repository: QueueRepository, entry: EmailQueueEntry, report: ChannelReport
    ) -> None:
        notification = self._notifications.get(entry.notification_id)
        if notification is None:
            repository.cancel(entry.id, reason="Notification no longer exists", now=self.clock())
            report.cancelled += 1
            return

        subject, body = build_notification_email(
            notification, base_url=self.settings.app_base_url
        )
        try:
            result = self._call(
                self.email_sender.send,
                entry.to_address,
                subject,
                body,
                {"notification_id": notification.id, "queue_entry_id": entry.id},
            )
        except _DeliveryTimeout as exc:
            self._retry_or_fail(repository, entry, str(exc), report)
            return
        except ChannelUnavailableError:
            raise
        except Exception as exc:
            logger.exception("Provider call for %s entry %s raised", entry.channel.value, entry.id)
            self._retry_or_fail(repository, entry, f"Unexpected error: {exc}", report)
            return

        if result.success:
            repository.mark_sent(entry.id, now=self.clock())
            report.sent += 1
        elif result.permanent:
            repository.mark_failed(entry.id, error=result.error or "Rejected", now=self.clock())
            report.failed += 1
            logger.error("Email entry %s failed permanently: %s", entry.id, result.error)
        else:
            self._retry_or_fail(repository, entry, result.error or "Delivery failed", report)

    def _dispatch_push(
        self, repository: QueueRepository, entry: PushQueueEntry, report: ChannelReport
    ) -> None:
        notification = self._notifications.get(entry.notification_id)
        subscription = self._subscriptions.get(entry.subscription_id)
        if notification is None or subscription is None or not subscription.is_active:
            repository.cancel(
                entry.id, reason="Push subscription is no longer active", now=self.clock()
            )
            report.cancelled += 1
            return

        payload = build_push_payload(
            notification, icon=get_template(notification.type).icon
        )
        try:
            result = self._call(self.push_sender.send, subscription, payload)
        except _DeliveryTimeout as exc:
            self._retry_or_fail(repository, entry, str(exc), report)
            return
        except ChannelUnavailableError:
            raise
        except Exception as exc:
            logger.exception("Provider call for %s entry %s raised", entry.channel.value, entry.id)
            self._retry_or_fail(repository, entry, f"Unexpected error: {exc}", report)
            return

        now = self.clock()
        if result.success:
            repository.mark_sent(entry.id, now=now)
            self._subscriptions.touch(subscription.id, now=now)
            report.sent += 1
            return

        error = result.error or result.error_code or "Delivery failed"
        if result.error_code == PUSH_ERROR_EXPIRED:
            self._subscriptions.deactivate(subscription.id, now=now)
            logger.warning(
                "Push subscription %s expired; deactivated (entry %s)", subscription.id, entry.id
            )
        if result.permanent:
            repository.mark_failed(entry.id, error=f"{result.error_code}: {error}", now=now)
            report.failed += 1
        else:
            self._retry_or_fail(repository, entry, f"{result.error_code}: {error}", report)

    def _retry_or_fail(
        self,
        repository: QueueRepository,
        entry: QueueEntry,
        error: str,
        report: ChannelReport,
    ) -> None:
        now = self.clock()
        if entry.retry_count < self.settings.notification_max_retries:
            delay = self.settings.notification_retry_base_seconds * 2**entry.retry_count
            repository.reschedule(
                entry.id,
                retry_count=entry.retry_count + 1,
                scheduled_at=now + timedelta(seconds=delay),
                error=error,
                now=now,
            )
            report.retried += 1
            logger.warning(
                "%s entry %s failed (attempt %d), retrying in %ss: %s",
                entry.channel.value,
                entry.id,
                entry.retry_count + 1,
                delay,
                error,
            )
            return

        repository.mark_failed(entry.id, error=error, now=now)
        report.failed += 1
        logger.error(
            "%s entry %s failed after %d retries: %s",
            entry.channel.value,
            entry.id,
            entry.retry_count,
            error,
        )

    def _call(self, function: Callable[..., T], *args: Any) -> T:
        """Run a provider call on its own thread with the configured hard timeout.

        A hung call keeps its thread; the next entry always gets a fresh one.
        """

        timeout = self.settings.notification_delivery_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="notification-delivery")
        future = executor.submit(function, *args)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            raise _DeliveryTimeout(f"Provider call timed out after {timeout}s") from exc
        finally:
            executor.shutdown(wait=False)


def process_queues(
    session: Session,
    *,
    email_sender: EmailSender,
    push_sender: PushSender,
    settings: Settings | None = None,
) -> CycleReport:
    """Run one processing cycle over both channel queues."""

    processor = QueueProcessor(
        session, email_sender=email_sender, push_sender=push_sender, settings=settings
    )
    return processor.run_cycle()


__all__ = ["ChannelReport", "CycleReport", "QueueProcessor", "process_queues"]
