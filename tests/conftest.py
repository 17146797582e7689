"""Shared fixtures: a throwaway SQLite database and fake delivery collaborators."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Mapping

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_DB_PATH = Path(tempfile.gettempdir()) / "notification_service_test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "30"
for name in ("SENDGRID_API_KEY", "SENDGRID_SENDER", "VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY"):
    os.environ.pop(name, None)

from app.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from app.domain.channels import EmailSender, PushSender  # noqa: E402
from app.domain.entities import (  # noqa: E402
    EmailDeliveryResult,
    PushDeliveryResult,
    PushSubscription,
    User,
)
from app.infrastructure.database import (  # noqa: E402
    Base,
    SessionLocal,
    engine,
    initialize_database,
)
from app.infrastructure.repositories import (  # noqa: E402
    PushSubscriptionRepository,
    UserRepository,
)
from app.infrastructure.security import get_password_hash  # noqa: E402
from app.utils import utcnow  # noqa: E402


@pytest.fixture(autouse=True)
def reset_database():
    """Ensure every test starts from an empty schema."""

    Base.metadata.drop_all(bind=engine)
    initialize_database()
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeEmailSender(EmailSender):
    """Record calls and replay scripted results (success by default)."""

    def __init__(self, *results: EmailDeliveryResult | Exception) -> None:
        self.results = list(results)
        self.calls: list[dict[str, Any]] = []

    def send(
        self,
        to_address: str,
        subject: str,
        body: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> EmailDeliveryResult:
        self.calls.append(
            {"to": to_address, "subject": subject, "body": body, "metadata": metadata}
        )
        if not self.results:
            return EmailDeliveryResult(success=True)
        outcome = self.results[0] if len(self.results) == 1 else self.results.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakePushSender(PushSender):
    def __init__(self, *results: PushDeliveryResult | Exception) -> None:
        self.results = list(results)
        self.calls: list[tuple[PushSubscription, Mapping[str, Any]]] = []

    def send(
        self, subscription: PushSubscription, payload: Mapping[str, Any]
    ) -> PushDeliveryResult:
        self.calls.append((subscription, payload))
        if not self.results:
            return PushDeliveryResult(success=True)
        outcome = self.results[0] if len(self.results) == 1 else self.results.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def create_test_user(
    session,
    *,
    name: str,
    email: str,
    password: str | None = None,
    is_active: bool = True,
) -> User:
    """Insert a user; the password is only hashed when one is given."""

    return UserRepository(session).create(
        User(
            id=None,
            name=name,
            email=email,
            password=get_password_hash(password) if password else "not-a-real-hash",
            is_active=is_active,
            created_at=utcnow(),
        )
    )


def create_test_subscription(session, *, user_id: int, endpoint: str) -> PushSubscription:
    return PushSubscriptionRepository(session).upsert(
        PushSubscription(
            id=None,
            user_id=user_id,
            endpoint=endpoint,
            p256dh_key="p256dh-key",
            auth_key="auth-key",
        ),
        now=utcnow(),
    )
