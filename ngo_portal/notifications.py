"""
NGO Portal - Email Notifications

Transactional emails sent after successful account operations
(welcome, password reset, admin access changes, hub decisions) and the
new-application notice to the membership inbox.

Sending is best-effort: a failed email is logged and never undoes the
operation that triggered it. Without SMTP settings the message is
logged instead of sent (development mode).
"""

import json
import logging
import smtplib
import ssl
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from functools import lru_cache
from typing import Any, Dict, Optional

from ngo_portal.config import get_settings


logger = logging.getLogger(__name__)


def redact_email(email: str) -> str:
    """Redact an email address for logging."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class EmailNotifier:
    """SMTP sender with a logging fallback when unconfigured."""

    def __init__(
        self,
        *,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        smtp_use_tls: bool = True,
        from_email: Optional[str] = None,
        from_name: str = "NGO Portal",
        site_url: str = "http://localhost:3000",
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_user
        self.from_name = from_name
        self.site_url = site_url.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    def send(self, to_email: str, subject: str, text_body: str) -> bool:
        """
        Send a plain-text email.

        Returns:
            True if sent (or logged in development mode), False on failure
        """
        if not self.is_configured:
            logger.info("Email (dev mode) to=%s subject=%r", redact_email(to_email), subject)
            return True

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))

        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                    server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
            else:
                with smtplib.SMTP_SSL(
                    self.smtp_host, self.smtp_port, context=context, timeout=30
                ) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            logger.error(
                "Email to %s failed: %s: %s",
                redact_email(to_email), type(e).__name__, e,
            )
            return False

        logger.info("Email sent to=%s subject=%r", redact_email(to_email), subject)
        return True

    # Messages

    def send_welcome(self, to_email: str, name: str, temporary_password: Optional[str] = None) -> bool:
        lines = [f"Dear {name},", "", "Your account has been created."]
        if temporary_password:
            lines += [
                "",
                f"Email: {to_email}",
                f"Temporary password: {temporary_password}",
                "Please change your password after signing in for the first time.",
            ]
        lines += ["", f"Sign in: {self.site_url}/signin"]
        return self.send(to_email, "Welcome to the portal", "\n".join(lines))

    def send_password_reset(self, to_email: str, name: str, token: str, expires_at: datetime) -> bool:
        body = "\n".join([
            f"Dear {name},",
            "",
            "We received a request to reset your password.",
            f"Reset link: {self.site_url}/reset-password?token={token}",
            f"The link expires at {expires_at:%Y-%m-%d %H:%M} UTC.",
            "",
            "If you did not request this, you can ignore this email.",
        ])
        return self.send(to_email, "Reset your password", body)

    def send_temporary_admin_granted(self, to_email: str, name: str, until: datetime) -> bool:
        body = "\n".join([
            f"Dear {name},",
            "",
            f"You have been granted temporary admin access until {until:%Y-%m-%d %H:%M} UTC.",
        ])
        return self.send(to_email, "Temporary admin access granted", body)

    def send_temporary_admin_revoked(self, to_email: str, name: str) -> bool:
        body = "\n".join([
            f"Dear {name},",
            "",
            "Your temporary admin access has been revoked.",
        ])
        return self.send(to_email, "Temporary admin access revoked", body)

    def send_hub_application_decision(
        self,
        to_email: str,
        name: str,
        hub_name: str,
        status: str,
        notes: Optional[str] = None,
    ) -> bool:
        lines = [
            f"Dear {name},",
            "",
            f"Your application to join {hub_name} has been {status}.",
        ]
        if notes:
            lines += ["", f"Notes: {notes}"]
        return self.send(to_email, f"Hub application {status}", "\n".join(lines))

    def send_membership_application(
        self,
        to_email: str,
        applicant_name: str,
        applicant_email: str,
        application_data: Dict[str, Any],
    ) -> bool:
        """Tell the membership inbox about a new application."""
        body = "\n".join([
            "A new membership application was submitted.",
            "",
            f"Name: {applicant_name}",
            f"Email: {applicant_email}",
            "",
            json.dumps(application_data, indent=2, sort_keys=True, default=str),
            "",
            f"Review: {self.site_url}/dashboard/membership",
        ])
        return self.send(to_email, f"New membership application - {applicant_name}", body)


@lru_cache
def get_notifier() -> EmailNotifier:
    settings = get_settings()
    return EmailNotifier(
        smtp_host=settings.SMTP_HOST,
        smtp_port=settings.SMTP_PORT,
        smtp_user=settings.SMTP_USER,
        smtp_password=settings.SMTP_PASSWORD,
        smtp_use_tls=settings.SMTP_USE_TLS,
        from_email=settings.MAIL_FROM,
        from_name=settings.MAIL_FROM_NAME,
        site_url=settings.SITE_URL,
    )
