"""SendGrid implementation of the email delivery collaborator."""

from __future__ import annotations

import html
import json
import logging
from typing import Any, Mapping

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import CustomArg, Mail

from app.config import Settings, get_settings
from app.domain.channels import EmailSender
from app.domain.entities import EmailDeliveryResult, Notification
from app.domain.exceptions import ChannelUnavailableError

logger = logging.getLogger(__name__)

# Client errors worth retrying: request timeout and throttling.
_RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages: list[str] = []
            for item in errors:
                if not isinstance(item, dict):
                    continue
                message = item.get("message")
                field = item.get("field")
                if message and field:
                    messages.append(f"{field}: {message}")
                elif message:
                    messages.append(str(message))
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _describe_failure(status_code: int | None, body: Any) -> str:
    details = _extract_sendgrid_error_details(body)
    if status_code and details:
        return f"SendGrid responded with status {status_code}: {details}"
    if status_code:
        return f"SendGrid responded with status {status_code}"
    return f"SendGrid request failed: {details}" if details else "SendGrid request failed"


def _result_for_status(status_code: int | None, body: Any) -> EmailDeliveryResult:
    error = _describe_failure(status_code, body)
    permanent = (
        isinstance(status_code, int)
        and 400 <= status_code < 500
        and status_code not in _RETRYABLE_CLIENT_STATUSES
    )
    return EmailDeliveryResult(success=False, error=error, permanent=permanent)


class SendGridEmailSender(EmailSender):
    """Deliver single emails through the SendGrid REST API."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    @property
    def configured(self) -> bool:
        return bool(self._settings.sendgrid_api_key and self._settings.sendgrid_sender)

    def send(
        self,
        to_address: str,
        subject: str,
        body: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> EmailDeliveryResult:
        if not self.configured:
            raise ChannelUnavailableError("SendGrid configuration incomplete")

        message = Mail(
            from_email=self._settings.sendgrid_sender,
            to_emails=to_address,
            subject=subject,
            html_content=body,
        )
        custom_args = [
            CustomArg(key=str(key), value=str(value))
            for key, value in (metadata or {}).items()
            if value is not None
        ]
        if custom_args:
            message.custom_arg = custom_args

        try:
            client = SendGridAPIClient(self._settings.sendgrid_api_key)
            response = client.send(message)
        except TimeoutError as exc:
            return EmailDeliveryResult(success=False, error=f"SendGrid timed out: {exc}")
        except OSError as exc:
            # DNS failures and refused connections mean the provider is unreachable.
            raise ChannelUnavailableError(f"SendGrid is unreachable: {exc}") from exc
        except Exception as exc:  # python-http-client raises one class per status
            status_code = getattr(exc, "status_code", None)
            result = _result_for_status(status_code, getattr(exc, "body", None))
            logger.error("%s", result.error)
            return result

        status_code = getattr(response, "status_code", None)
        if not isinstance(status_code, int) or not 200 <= status_code < 300:
            result = _result_for_status(status_code, getattr(response, "body", None))
            logger.error("%s", result.error)
            return result

        return EmailDeliveryResult(success=True)


def build_notification_email(
    notification: Notification, *, base_url: str
) -> tuple[str, str]:
    """Return ``(subject, html_body)`` for ``notification``."""

    paragraphs = [f"<p>{html.escape(notification.message)}</p>"]
    if notification.action_url:
        url = notification.action_url
        if url.startswith("/"):
            url = base_url.rstrip("/") + url
        paragraphs.append(f'<p><a href="{html.escape(url, quote=True)}">Open in ProjectFlow</a></p>')
    paragraphs.append(
        "<p style=\"color:#6b7280;font-size:12px\">"
        "You can change which emails you receive in your notification settings."
        "</p>"
    )
    return notification.title, "".join(paragraphs)


__all__ = ["SendGridEmailSender", "build_notification_email"]
