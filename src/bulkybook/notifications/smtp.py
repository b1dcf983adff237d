"""SMTP relay sender."""

from __future__ import annotations

import asyncio
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

import structlog

from ..config import SmtpConfig
from ..exceptions import EmailDeliveryError
from .base import EmailSender

logger = structlog.get_logger(__name__)


class SmtpEmailSender(EmailSender):
    """Send messages through an SMTP server (STARTTLS when enabled)."""

    def __init__(self, config: SmtpConfig) -> None:
        self._config = config

    async def send_email(self, email: str, subject: str, html_message: str) -> None:
        message = self._build_message(email, subject, html_message)
        await asyncio.to_thread(self._deliver, message)
        logger.info("email.smtp.sent", to=email, subject=subject, host=self._config.host)

    def _build_message(self, email: str, subject: str, html_message: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self._config.from_name, self._config.from_address))
        message["To"] = email
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html_message, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        cfg = self._config
        try:
            with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout_seconds) as client:
                if cfg.use_tls:
                    client.starttls()
                if cfg.username and cfg.password:
                    client.login(cfg.username, cfg.password)
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("email.smtp.failed", host=cfg.host, error=str(exc))
            raise EmailDeliveryError(f"SMTP delivery to {message['To']} failed") from exc
