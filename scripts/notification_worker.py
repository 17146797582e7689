"""Command line entry point for the notification delivery worker."""

from __future__ import annotations

import argparse
import json
import logging
import time

from sqlalchemy.exc import SQLAlchemyError

from app.application.use_cases.notifications import (
    list_failed_entries,
    process_queues,
    purge_notifications,
    queue_stats,
    retry_entry,
)
from app.config import get_settings
from app.domain.entities import QueueChannel
from app.infrastructure.database import SessionLocal, initialize_database
from app.infrastructure.email import SendGridEmailSender
from app.infrastructure.push import WebPushSender

logger = logging.getLogger("notification_worker")


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the worker."""

    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Deliver queued email and push notifications.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("process", help="Run a single processing cycle and exit.")

    run = commands.add_parser("run", help="Process the queues on a fixed interval.")
    run.add_argument(
        "--interval",
        type=int,
        default=settings.notification_worker_interval_seconds,
        help="Seconds to wait between cycles",
    )

    commands.add_parser("stats", help="Print entry counts by status for each queue.")

    failed = commands.add_parser("failed", help="List failed queue entries.")
    failed.add_argument("--channel", choices=[c.value for c in QueueChannel], required=True)
    failed.add_argument("--limit", type=int, default=50)

    retry = commands.add_parser("retry", help="Reopen a failed or cancelled entry.")
    retry.add_argument("--channel", choices=[c.value for c in QueueChannel], required=True)
    retry.add_argument("--id", dest="entry_id", type=int, required=True)

    cleanup = commands.add_parser("cleanup", help="Purge old read and expired notifications.")
    cleanup.add_argument(
        "--days",
        type=int,
        default=settings.notification_retention_days,
        help="Retention window for read notifications",
    )
    return parser.parse_args()


def run_cycle() -> dict:
    session = SessionLocal()
    try:
        report = process_queues(
            session,
            email_sender=SendGridEmailSender(),
            push_sender=WebPushSender(),
        )
    finally:
        session.close()
    return report.as_dict()


def run_forever(interval: int) -> None:
    logger.info("Notification worker started (interval %ss)", interval)
    while True:
        try:
            logger.info("Cycle finished: %s", json.dumps(run_cycle()))
        except SQLAlchemyError:
            logger.exception("Cycle aborted by a database error; retrying next interval")
        time.sleep(interval)


def main() -> None:
    """Dispatch the selected worker command."""

    args = parse_args()
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    initialize_database()

    if args.command == "process":
        print(json.dumps(run_cycle(), indent=2))
        return
    if args.command == "run":
        try:
            run_forever(args.interval)
        except KeyboardInterrupt:
            logger.info("Notification worker stopped")
        return

    session = SessionLocal()
    try:
        if args.command == "stats":
            print(json.dumps(queue_stats(session), indent=2))
        elif args.command == "failed":
            for entry in list_failed_entries(session, channel=args.channel, limit=args.limit):
                print(
                    f"{entry.id}\tnotification={entry.notification_id}\t"
                    f"user={entry.recipient_id}\tretries={entry.retry_count}\t"
                    f"{entry.last_error or '-'}"
                )
        elif args.command == "retry":
            try:
                entry = retry_entry(session, channel=args.channel, entry_id=args.entry_id)
            except ValueError as exc:
                raise SystemExit(f"Retry failed: {exc}") from exc
            print(f"Entry {entry.id} is {entry.status.value}, scheduled at {entry.scheduled_at}")
        elif args.command == "cleanup":
            removed = purge_notifications(session, retention_days=args.days)
            print(f"Removed {removed} notification(s)")
    finally:
        session.close()


if __name__ == "__main__":
    main()
