"""Transactional email API sender (SendGrid v3)."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from ..config import SendGridConfig
from ..exceptions import EmailDeliveryError
from .base import EmailSender

logger = structlog.get_logger(__name__)


class SendGridEmailSender(EmailSender):
    """Send messages through the SendGrid ``mail/send`` endpoint."""

    def __init__(self, config: SendGridConfig) -> None:
        self._config = config

    async def send_email(self, email: str, subject: str, html_message: str) -> None:
        if not self._config.api_key:
            raise EmailDeliveryError("SendGrid API key is not configured")
        headers = {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
                response = await client.post(
                    self._config.api_url,
                    headers=headers,
                    json=self._build_payload(email, subject, html_message),
                )
        except httpx.HTTPError as exc:
            raise EmailDeliveryError(f"SendGrid request failed: {exc}") from exc
        if response.status_code >= 300:
            logger.error(
                "email.sendgrid.failed",
                to=email,
                status_code=response.status_code,
                body=response.text,
            )
            raise EmailDeliveryError(f"SendGrid rejected message with status {response.status_code}")
        logger.info("email.sendgrid.sent", to=email, subject=subject)

    def _build_payload(self, email: str, subject: str, html_message: str) -> dict[str, Any]:
        return {
            "personalizations": [{"to": [{"email": email}]}],
            "from": {"email": self._config.from_address, "name": self._config.from_name},
            "subject": subject,
            "content": [{"type": "text/html", "value": html_message}],
        }
