"""Domain entity representing a browser push subscription."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class PushSubscription:
    """A Web Push endpoint registered by one of the user's devices."""

    id: int | None
    user_id: int
    endpoint: str
    p256dh_key: str
    auth_key: str
    user_agent: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_used_at: datetime | None = None

    def to_subscription_info(self) -> dict[str, object]:
        """Return the structure expected by Web Push libraries."""

        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh_key, "auth": self.auth_key},
        }


__all__ = ["PushSubscription"]
