"""No-op sender used when no delivery backend is configured."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from .base import EmailSender

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class DummyEmailSender(EmailSender):
    """Log and discard every message."""

    sent: list[tuple[str, str]] = field(default_factory=list)

    async def send_email(self, email: str, subject: str, html_message: str) -> None:
        self.sent.append((email, subject))
        logger.info("email.dummy.discarded", to=email, subject=subject)
