"""Notification sender interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class EmailSender(ABC):
    """Deliver outbound user notifications by email."""

    @abstractmethod
    async def send_email(self, email: str, subject: str, html_message: str) -> None:
        """Send ``html_message`` to ``email``."""
