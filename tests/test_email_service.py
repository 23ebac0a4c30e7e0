import logging
import smtplib

import pytest

from usermanager.domain.errors import DeliveryError
from usermanager.services import email_service
from usermanager.services.email_service import EmailService, build_confirmation_email


def test_disabled_service_logs_instead_of_sending(caplog):
    service = EmailService()
    assert service.enabled is False

    with caplog.at_level(logging.INFO, logger="usermanager.services.email_service"):
        service.send("user@example.com", "Hello", "<p>link</p>")

    assert "user@example.com" in caplog.text


def test_smtp_failures_become_delivery_errors(monkeypatch):
    class BrokenSMTP:
        def __init__(self, *args, **kwargs):
            raise smtplib.SMTPConnectError(421, "service not available")

    monkeypatch.setattr(email_service.smtplib, "SMTP", BrokenSMTP)
    service = EmailService(
        smtp_host="smtp.example.com",
        smtp_username="mailer",
        smtp_password="secret",
        from_email="noreply@example.com",
    )

    with pytest.raises(DeliveryError):
        service.send("user@example.com", "Hello", "<p>link</p>")


def test_successful_send_uses_starttls_and_login(monkeypatch):
    calls = []

    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            calls.append(("connect", host, port))

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            calls.append(("starttls",))

        def login(self, username, password):
            calls.append(("login", username))

        def send_message(self, msg):
            calls.append(("send", msg["To"], msg["Subject"]))

    monkeypatch.setattr(email_service.smtplib, "SMTP", FakeSMTP)
    service = EmailService(
        smtp_host="smtp.example.com",
        smtp_port=2525,
        smtp_username="mailer",
        smtp_password="secret",
        from_email="noreply@example.com",
    )

    service.send("user@example.com", "Hello", "<p>link</p>")

    assert calls == [
        ("connect", "smtp.example.com", 2525),
        ("starttls",),
        ("login", "mailer"),
        ("send", "user@example.com", "Hello"),
    ]


def test_confirmation_email_escapes_user_input():
    subject, body = build_confirmation_email("<script>", "https://x.test/confirm?token=a&b=c")
    assert subject == "Confirm your email"
    assert "<script>" not in body
    assert "token=a&amp;b=c" in body
