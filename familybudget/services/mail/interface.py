"""
Abstract Mail Sender Interface

Invitation mail goes through this interface so the invite flow can be
tested without an SMTP server.
"""

from abc import ABC, abstractmethod


class MailSender(ABC):
    """Sends invitation emails."""

    @abstractmethod
    async def send_invite(
        self,
        to_address: str,
        family_name: str,
        inviter_email: str,
        accept_url: str,
    ) -> None:
        """
        Send one invitation.

        Raises:
            MailError: If the message could not be handed to the mail server
        """
        pass


class MailError(Exception):
    """Mail dispatch failed."""
    pass
