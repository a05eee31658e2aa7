"""Outbound email: password reset links.

Learn: smtplib is blocking, so delivery runs in a worker thread via
asyncio.to_thread to keep the event loop free. When no SMTP host is
configured (local dev, tests) the message is logged instead of sent.
"""

import asyncio
import smtplib
from email.message import EmailMessage

import structlog

from crewboard.config import Settings

logger = structlog.get_logger()


class EmailDeliveryError(Exception):
    """Raised when the SMTP server refuses or can't be reached."""


class EmailService:
    """Sends transactional mail through the configured SMTP server."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        return bool(self.settings.email_host)

    async def send_password_reset(self, to_email: str, name: str, url: str) -> None:
        first_name = name.split(" ")[0] if name else ""
        body = (
            f"Hi {first_name or 'there'},\n\n"
            "You requested a password reset. Use the link below to set a new "
            f"password. This link is valid for only "
            f"{self.settings.password_reset_expires_minutes} minutes.\n\n"
            f"{url}\n\n"
            "If you didn't request this, you can ignore this email.\n"
        )
        await self.send(to_email, "Your password reset token", body)

    async def send(self, to_email: str, subject: str, body: str) -> None:
        if not self.configured:
            logger.info("email.skipped", to=to_email, subject=subject, body=body)
            return

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"Crewboard <{self.settings.email_from}>"
        msg["To"] = to_email
        msg.set_content(body)

        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("email.failed", to=to_email, error=str(e))
            raise EmailDeliveryError(str(e)) from e
        logger.info("email.sent", to=to_email, subject=subject)

    def _deliver(self, msg: EmailMessage) -> None:
        s = self.settings
        with smtplib.SMTP(s.email_host, s.email_port, timeout=10) as smtp:
            smtp.starttls()
            if s.email_username:
                smtp.login(s.email_username, s.email_password)
            smtp.send_message(msg)
