"""Ports for the external delivery collaborators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from app.domain.entities import EmailDeliveryResult, PushDeliveryResult, PushSubscription


class EmailSender(ABC):
    """Attempts one email delivery and reports the outcome.

    Implementations hold no retry logic. They raise
    :class:`~app.domain.exceptions.ChannelUnavailableError` when the provider
    cannot be used at all.
    """

    @abstractmethod
    def send(
        self,
        to_address: str,
        subject: str,
        body: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> EmailDeliveryResult:
        ...


class PushSender(ABC):
    """Attempts one Web Push delivery to a single subscription."""

    @abstractmethod
    def send(
        self, subscription: PushSubscription, payload: Mapping[str, Any]
    ) -> PushDeliveryResult:
        ...


__all__ = ["EmailSender", "PushSender"]
