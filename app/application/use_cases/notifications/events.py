"""Entry points business operations use to raise notification side effects.

Notifications are best-effort. Whatever goes wrong while translating an event
is logged here and never reaches the operation that raised it.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from app.domain.entities import DomainEvent, Notification
from app.infrastructure.database import SessionLocal

from .translator import translate_event

logger = logging.getLogger(__name__)

R = TypeVar("R")


def emit_domain_event(
    event: DomainEvent,
    *,
    session_factory: sessionmaker | Callable[[], Session] | None = None,
) -> list[Notification]:
    """Translate ``event`` in its own session; never raises.

    Call it after the business write has committed. Returns the created
    notifications, or an empty list when translation failed.
    """

    factory = session_factory or SessionLocal
    session = factory()
    try:
        return translate_event(session, event)
    except Exception:
        session.rollback()
        logger.exception(
            "Notification side effect for %s (actor %s) failed",
            getattr(event.event_type, "value", event.event_type),
            event.actor_id,
        )
        return []
    finally:
        session.close()


def notifies(
    build_event: Callable[..., DomainEvent | None],
    *,
    session_factory: sessionmaker | Callable[[], Session] | None = None,
) -> Callable[[Callable[..., R]], Callable[..., R]]:
    """Decorate a business operation so it emits an event once it returns.

    ``build_event`` receives the operation's result followed by its arguments
    and returns the event to emit, or ``None`` to stay silent. Errors from the
    operation itself propagate untouched; errors from building or translating
    the event are logged.
    """

    def decorator(operation: Callable[..., R]) -> Callable[..., R]:
        @functools.wraps(operation)
        def wrapper(*args: Any, **kwargs: Any) -> R:
            result = operation(*args, **kwargs)
            try:
                event = build_event(result, *args, **kwargs)
            except Exception:
                logger.exception(
                    "Could not build the notification event of %s", operation.__qualname__
                )
                return result
            if event is not None:
                emit_domain_event(event, session_factory=session_factory)
            return result

        return wrapper

    return decorator


__all__ = ["emit_domain_event", "notifies"]
