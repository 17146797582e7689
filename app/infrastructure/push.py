"""Web Push implementation of the push delivery collaborator."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from pywebpush import WebPushException, webpush
from requests import RequestException

from app.config import Settings, get_settings
from app.domain.channels import PushSender
from app.domain.entities import (
    PUSH_ERROR_EXPIRED,
    PUSH_ERROR_INVALID,
    PUSH_ERROR_NETWORK,
    PUSH_ERROR_RATE_LIMITED,
    PUSH_ERROR_SERVER,
    Notification,
    PushDeliveryResult,
    PushSubscription,
)
from app.domain.exceptions import ChannelUnavailableError

logger = logging.getLogger(__name__)

PUSH_TTL_SECONDS = 86_400

_URGENCY_BY_PRIORITY = {
    "low": "low",
    "medium": "normal",
    "high": "high",
    "urgent": "high",
}


def _error_code_for_status(status_code: int | None) -> str:
    if status_code in (404, 410):
        return PUSH_ERROR_EXPIRED
    if status_code == 429:
        return PUSH_ERROR_RATE_LIMITED
    if status_code is None:
        return PUSH_ERROR_NETWORK
    if 400 <= status_code < 500:
        return PUSH_ERROR_INVALID
    return PUSH_ERROR_SERVER


class WebPushSender(PushSender):
    """Send encrypted Web Push messages signed with the configured VAPID keys."""

    def __init__(self, settings: Settings | None = None, *, timeout: float | None = None) -> None:
        self._settings = settings or get_settings()
        self._timeout = timeout or self._settings.notification_delivery_timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self._settings.vapid_private_key and self._settings.vapid_public_key)

    def send(
        self, subscription: PushSubscription, payload: Mapping[str, Any]
    ) -> PushDeliveryResult:
        if not self.configured:
            raise ChannelUnavailableError("VAPID keys are not configured")

        urgency = _URGENCY_BY_PRIORITY.get(str(payload.get("priority", "medium")), "normal")
        try:
            webpush(
                subscription_info=subscription.to_subscription_info(),
                data=json.dumps(payload),
                vapid_private_key=self._settings.vapid_private_key,
                vapid_claims={"sub": self._settings.vapid_subject},
                ttl=PUSH_TTL_SECONDS,
                headers={"Urgency": urgency},
                timeout=self._timeout,
            )
        except WebPushException as exc:
            response = getattr(exc, "response", None)
            status_code = getattr(response, "status_code", None)
            error_code = _error_code_for_status(status_code)
            if error_code == PUSH_ERROR_EXPIRED:
                logger.warning(
                    "Push endpoint for subscription %s is gone (status %s)",
                    subscription.id,
                    status_code,
                )
            return PushDeliveryResult(success=False, error_code=error_code, error=str(exc))
        except RequestException as exc:
            # One browser vendor being unreachable is not an outage of the channel.
            return PushDeliveryResult(
                success=False, error_code=PUSH_ERROR_NETWORK, error=str(exc)
            )

        return PushDeliveryResult(success=True)


def build_push_payload(notification: Notification, *, icon: str) -> dict[str, Any]:
    """Return the JSON document the service worker renders."""

    return {
        "title": notification.title,
        "body": notification.message,
        "icon": icon,
        "tag": f"notification-{notification.id}",
        "url": notification.action_url,
        "priority": notification.priority.value,
        "data": {
            "notification_id": notification.id,
            "type": notification.type.value,
        },
    }


__all__ = ["PUSH_TTL_SECONDS", "WebPushSender", "build_push_payload"]
