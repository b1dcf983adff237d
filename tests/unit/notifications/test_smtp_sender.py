from __future__ import annotations

import smtplib
from typing import Any

import pytest

from src.bulkybook.config import SmtpConfig
from src.bulkybook.exceptions import EmailDeliveryError
from src.bulkybook.notifications import SmtpEmailSender


class DummySMTP:
    instances: list["DummySMTP"] = []

    def __init__(self, host: str, port: int, timeout: float | None = None) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls: list[tuple[str, Any]] = []
        DummySMTP.instances.append(self)

    def __enter__(self) -> "DummySMTP":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.calls.append(("quit", None))

    def starttls(self) -> None:
        self.calls.append(("starttls", None))

    def login(self, username: str, password: str) -> None:
        self.calls.append(("login", (username, password)))

    def send_message(self, message) -> None:
        self.calls.append(("send_message", message))


class RefusingSMTP(DummySMTP):
    def send_message(self, message) -> None:
        raise smtplib.SMTPRecipientsRefused({message["To"]: (550, b"no such user")})


@pytest.fixture(autouse=True)
def reset_instances():
    DummySMTP.instances.clear()
    yield
    DummySMTP.instances.clear()


@pytest.mark.unit
async def test_smtp_sender_uses_starttls_and_login(monkeypatch) -> None:
    monkeypatch.setattr("src.bulkybook.notifications.smtp.smtplib.SMTP", DummySMTP)
    sender = SmtpEmailSender(
        SmtpConfig(host="mail.test", port=2525, username="user", password="pass", from_address="shop@test")
    )

    await sender.send_email("reader@example.com", "Welcome", "<b>Hello</b>")

    (client,) = DummySMTP.instances
    assert (client.host, client.port) == ("mail.test", 2525)
    names = [name for name, _ in client.calls]
    assert names == ["starttls", "login", "send_message", "quit"]
    message = client.calls[2][1]
    assert message["To"] == "reader@example.com"
    assert message["Subject"] == "Welcome"
    assert "shop@test" in message["From"]
    html = message.get_body(preferencelist=("html",))
    assert "<b>Hello</b>" in html.get_content()


@pytest.mark.unit
async def test_smtp_sender_skips_tls_and_login_when_not_configured(monkeypatch) -> None:
    monkeypatch.setattr("src.bulkybook.notifications.smtp.smtplib.SMTP", DummySMTP)
    sender = SmtpEmailSender(SmtpConfig(use_tls=False))

    await sender.send_email("reader@example.com", "Hi", "<p>x</p>")

    (client,) = DummySMTP.instances
    assert [name for name, _ in client.calls] == ["send_message", "quit"]


@pytest.mark.unit
async def test_smtp_failures_raise_delivery_error(monkeypatch) -> None:
    monkeypatch.setattr("src.bulkybook.notifications.smtp.smtplib.SMTP", RefusingSMTP)
    sender = SmtpEmailSender(SmtpConfig(use_tls=False))

    with pytest.raises(EmailDeliveryError):
        await sender.send_email("nobody@example.com", "Hi", "<p>x</p>")


@pytest.mark.unit
async def test_connection_errors_raise_delivery_error(monkeypatch) -> None:
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr("src.bulkybook.notifications.smtp.smtplib.SMTP", refuse)
    sender = SmtpEmailSender(SmtpConfig())

    with pytest.raises(EmailDeliveryError):
        await sender.send_email("reader@example.com", "Hi", "<p>x</p>")
