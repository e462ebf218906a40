"""
NGO Portal - Email Notifier Tests

Run with: pytest tests/test_notifications.py -v
"""

import smtplib
from datetime import datetime

from ngo_portal import notifications
from ngo_portal.notifications import EmailNotifier, redact_email


class TestRedaction:

    def test_redact_email(self):
        assert redact_email("volunteer@ngo.org") == "vo***@ngo.org"

    def test_redact_non_email(self):
        assert redact_email("nobody") == "redacted"


class TestEmailNotifier:

    def test_unconfigured_logs_instead_of_sending(self, caplog):
        notifier = EmailNotifier()

        with caplog.at_level("INFO", logger="ngo_portal.notifications"):
            sent = notifier.send_welcome("volunteer@ngo.org", "Vee", temporary_password="Secret123x")

        assert sent is True
        assert notifier.is_configured is False
        assert "vo***@ngo.org" in caplog.text
        assert "Secret123x" not in caplog.text

    def test_smtp_failure_returns_false(self, monkeypatch):
        def refuse(*args, **kwargs):
            raise smtplib.SMTPConnectError(421, "unavailable")

        monkeypatch.setattr(notifications.smtplib, "SMTP", refuse)
        notifier = EmailNotifier(smtp_host="smtp.invalid", from_email="portal@ngo.org")

        sent = notifier.send_password_reset(
            "volunteer@ngo.org", "Vee", "tok", datetime(2026, 3, 1, 12, 30),
        )

        assert sent is False

    def test_reset_link_uses_site_url(self, monkeypatch):
        captured = {}

        def capture(to_email, subject, text_body):
            captured["body"] = text_body
            return True

        notifier = EmailNotifier(site_url="https://portal.ngo.org/")
        monkeypatch.setattr(notifier, "send", capture)

        notifier.send_password_reset("volunteer@ngo.org", "Vee", "tok123", datetime(2026, 3, 1, 12, 30))

        assert "https://portal.ngo.org/reset-password?token=tok123" in captured["body"]
        assert "2026-03-01 12:30 UTC" in captured["body"]
