"""Outcomes reported by the external delivery collaborators."""

from __future__ import annotations

from dataclasses import dataclass

PUSH_ERROR_EXPIRED = "expired"
PUSH_ERROR_INVALID = "invalid"
PUSH_ERROR_RATE_LIMITED = "rate_limited"
PUSH_ERROR_SERVER = "server_error"
PUSH_ERROR_NETWORK = "network_error"

PERMANENT_PUSH_ERRORS = frozenset({PUSH_ERROR_EXPIRED, PUSH_ERROR_INVALID})


@dataclass(frozen=True)
class EmailDeliveryResult:
    """Result of ``send(to_address, subject, body, metadata)``."""

    success: bool
    error: str | None = None
    permanent: bool = False


@dataclass(frozen=True)
class PushDeliveryResult:
    """Result of ``send(subscription, payload)``.

    ``error_code == "expired"`` means the endpoint no longer exists and the
    subscription must be deactivated.
    """

    success: bool
    error_code: str | None = None
    error: str | None = None

    @property
    def permanent(self) -> bool:
        return self.error_code in PERMANENT_PUSH_ERRORS


__all__ = [
    "EmailDeliveryResult",
    "PERMANENT_PUSH_ERRORS",
    "PUSH_ERROR_EXPIRED",
    "PUSH_ERROR_INVALID",
    "PUSH_ERROR_NETWORK",
    "PUSH_ERROR_RATE_LIMITED",
    "PUSH_ERROR_SERVER",
    "PushDeliveryResult",
]
