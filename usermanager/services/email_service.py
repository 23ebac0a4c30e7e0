"""Service for sending account emails."""

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Tuple

from ..domain.errors import DeliveryError

logger = logging.getLogger(__name__)


class EmailService:
    """Notification gateway delivering HTML emails over SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: str = "User Manager",
        timeout: float = 10.0,
    ):
        self.smtp_host = smtp_host or ""
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username or ""
        self.smtp_password = smtp_password or ""
        self.from_email = from_email or ""
        self.from_name = from_name
        self.timeout = timeout
        self.enabled = bool(self.smtp_host and self.smtp_username and self.from_email)

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        """
        Send an email via SMTP.

        Without SMTP settings the message is only logged, which keeps local
        development usable.

        Raises:
            DeliveryError: If the SMTP conversation fails
        """
        if not self.enabled:
            logger.info("SMTP disabled; email to %s (%s):\n%s", to_address, subject, html_body)
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_address
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"Failed to send email to {to_address}: {exc}") from exc


def build_confirmation_email(full_name: str, confirmation_url: str) -> Tuple[str, str]:
    """Subject and HTML body for the email confirmation link."""
    url = html.escape(confirmation_url, quote=True)
    body = f"""
    <html>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2>Welcome, {html.escape(full_name)}!</h2>
            <p>Please confirm your email address by clicking the link below:</p>
            <p><a href="{url}">Confirm email</a></p>
            <p>After confirming, an administrator still needs to approve your account before you can sign in.</p>
        </body>
    </html>
    """
    return "Confirm your email", body


def build_password_reset_email(full_name: str, reset_url: str) -> Tuple[str, str]:
    """Subject and HTML body for the password reset link."""
    url = html.escape(reset_url, quote=True)
    body = f"""
    <html>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2>Hello, {html.escape(full_name)}</h2>
            <p>Someone asked to reset the password for this account. Use the link below to choose a new one:</p>
            <p><a href="{url}">Reset password</a></p>
            <p>If you did not request this, you can ignore this email.</p>
        </body>
    </html>
    """
    return "Reset your password", body
