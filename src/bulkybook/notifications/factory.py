"""Select the notification sender registered for the process."""

from __future__ import annotations

from ..config import AppConfig
from .base import EmailSender
from .dummy import DummyEmailSender
from .sendgrid import SendGridEmailSender
from .smtp import SmtpEmailSender

# Deployments configured for the MailKit based sender keep selecting SMTP.
SMTP_SENDER_NAMES = frozenset({SmtpEmailSender.__name__.lower(), "mailkitsmtpemailsender"})


def create_email_sender(config: AppConfig) -> EmailSender:
    """Instantiate the sender named by ``application.email_sender``.

    Names match the sender class names case-insensitively, and
    ``MailKitSmtpEmailSender`` also selects SMTP. A missing or unknown name
    yields :class:`DummyEmailSender`.
    """
    name = (config.application.email_sender or "").strip().lower()
    if name == SendGridEmailSender.__name__.lower():
        return SendGridEmailSender(config.sendgrid)
    if name in SMTP_SENDER_NAMES:
        return SmtpEmailSender(config.smtp)
    return DummyEmailSender()


def describe_sender(sender: EmailSender) -> str:
    """Fully qualified type name of ``sender``."""
    cls = type(sender)
    return f"{cls.__module__}.{cls.__qualname__}"
