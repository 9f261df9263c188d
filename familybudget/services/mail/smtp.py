"""
SMTP Mail Sender

smtplib is blocking, so each message is sent from a worker thread.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Optional

import structlog

from familybudget.config import MailSettings, get_settings
from familybudget.services.mail.interface import MailError, MailSender


INVITE_SUBJECT = "You're invited to join {family} on Family Budget"

INVITE_BODY = """\
Hi,

{inviter} has invited you to join the "{family}" family budget.

Accept the invitation here:
{url}

If you weren't expecting this email you can ignore it.
"""


class SmtpMailSender(MailSender):
    """Sends invitations through an SMTP relay."""

    def __init__(self, settings: Optional[MailSettings] = None):
        self._settings = settings or get_settings().mail
        self._logger = structlog.get_logger(__name__)

    def build_message(
        self,
        to_address: str,
        family_name: str,
        inviter_email: str,
        accept_url: str,
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._settings.from_address
        message["To"] = to_address
        message["Subject"] = INVITE_SUBJECT.format(family=family_name)
        message.set_content(INVITE_BODY.format(
            inviter=inviter_email or "A family member",
            family=family_name,
            url=accept_url,
        ))
        return message

    def _send(self, message: EmailMessage) -> None:
        settings = self._settings
        with smtplib.SMTP(settings.host, settings.port, timeout=settings.timeout_seconds) as smtp:
            if settings.use_tls:
                smtp.starttls()
            if settings.username:
                smtp.login(settings.username, settings.password or "")
            smtp.send_message(message)

    async def send_invite(
        self,
        to_address: str,
        family_name: str,
        inviter_email: str,
        accept_url: str,
    ) -> None:
        message = self.build_message(to_address, family_name, inviter_email, accept_url)
        try:
            await asyncio.to_thread(self._send, message)
        except (smtplib.SMTPException, OSError) as e:
            self._logger.error("invite_mail_failed", to=to_address, error=str(e))
            raise MailError(f"Failed to send invite to {to_address}: {e}") from e

        self._logger.info("invite_mail_sent", to=to_address)
