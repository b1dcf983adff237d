"""Outbound user notifications (email)."""

from .base import EmailSender
from .dummy import DummyEmailSender
from .factory import create_email_sender, describe_sender
from .sendgrid import SendGridEmailSender
from .smtp import SmtpEmailSender

__all__ = [
    "DummyEmailSender",
    "EmailSender",
    "SendGridEmailSender",
    "SmtpEmailSender",
    "create_email_sender",
    "describe_sender",
]
