"""
Best-effort email notifications.

Routes schedule ``notify(...)`` through FastAPI BackgroundTasks, so mail is
sent after the response and outside any database transaction. Delivery
failures are logged and counted, never raised.
"""

from dataclasses import dataclass
from email.message import EmailMessage
from html import escape

import aiosmtplib

from gfa_api.core.config import Settings, get_settings
from gfa_api.core.logging import get_logger
from gfa_api.core.metrics import record_notification

logger = get_logger(__name__)


@dataclass
class EmailContent:
    kind: str
    to: str
    subject: str
    html: str


class Notifier:
    """Interface for outbound email delivery."""

    async def send(self, to: str, subject: str, html: str) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    """Used when email is disabled: records the message in the log only."""

    async def send(self, to: str, subject: str, html: str) -> None:
        logger.info("email_skipped", to=to, subject=subject, reason="email_disabled")


class SMTPNotifier(Notifier):
    def __init__(self, settings: Settings):
        self.settings = settings

    async def send(self, to: str, subject: str, html: str) -> None:
        message = EmailMessage()
        message["From"] = self.settings.EMAIL_FROM
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")

        await aiosmtplib.send(
            message,
            hostname=self.settings.SMTP_HOST,
            port=self.settings.SMTP_PORT,
            username=self.settings.SMTP_USERNAME,
            password=self.settings.SMTP_PASSWORD,
            use_tls=self.settings.SMTP_USE_TLS,
            start_tls=self.settings.SMTP_START_TLS if not self.settings.SMTP_USE_TLS else False,
            timeout=self.settings.SMTP_TIMEOUT,
        )


_notifier: Notifier | None = None


def get_notifier() -> Notifier:
    """FastAPI dependency; overridden in tests with a recording notifier."""
    global _notifier
    if _notifier is None:
        settings = get_settings()
        _notifier = SMTPNotifier(settings) if settings.EMAIL_ENABLED else LogNotifier()
    return _notifier


async def notify(notifier: Notifier, content: EmailContent) -> bool:
    """Send one message. Returns False on failure instead of raising."""
    try:
        await notifier.send(content.to, content.subject, content.html)
    except Exception as e:
        logger.error(
            "notification_failed",
            kind=content.kind,
            to=content.to,
            error=str(e),
            exc_info=True,
        )
        record_notification(content.kind, sent=False)
        return False

    logger.info("notification_sent", kind=content.kind, to=content.to)
    record_notification(content.kind, sent=True)
    return True


# ==================== Message builders ====================

def _wrap(body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"{body}"
        "<p>Best regards,<br>The GFA Team</p>"
        "</div>"
    )


def welcome_email(to: str, name: str) -> EmailContent:
    events_url = f"{get_settings().FRONTEND_URL}/events.html"
    body = (
        "<h2>Welcome to Global Finance Academy!</h2>"
        f"<p>Dear {escape(name)},</p>"
        "<p>Thank you for registering with Global Finance Academy. "
        "We're excited to have you join our community!</p>"
        "<p>You now have access to all member features including:</p>"
        "<ul>"
        "<li>Exclusive events and workshops</li>"
        "<li>Job opportunities in finance</li>"
        "<li>Networking with industry professionals</li>"
        "</ul>"
        f'<p>Get started by exploring our <a href="{events_url}">upcoming events</a>.</p>'
    )
    return EmailContent("welcome", to, "Welcome to Global Finance Academy", _wrap(body))


def password_reset_email(to: str, reset_token: str) -> EmailContent:
    settings = get_settings()
    reset_link = f"{settings.FRONTEND_URL}/reset-password.html?token={reset_token}"
    body = (
        "<h2>Password Reset Request</h2>"
        "<p>You requested a password reset for your Global Finance Academy account.</p>"
        "<p>Click the link below to reset your password. "
        f"This link expires in {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes.</p>"
        f'<p style="text-align: center; margin: 30px 0;"><a href="{reset_link}">Reset Password</a></p>'
        "<p>If you didn't request this, please ignore this email.</p>"
    )
    return EmailContent("password_reset", to, "Password Reset Request", _wrap(body))


def registration_confirmation_email(to: str, event_title: str, event_date: str, location: str) -> EmailContent:
    body = (
        "<h2>Registration Confirmed</h2>"
        f"<p>You are registered for <strong>{escape(event_title)}</strong> "
        f"on {event_date} at {escape(location)}.</p>"
        "<p>If you can no longer attend, please cancel your registration so "
        "another member can take your seat.</p>"
    )
    return EmailContent("registration", to, f"Registration confirmed: {event_title}", _wrap(body))
