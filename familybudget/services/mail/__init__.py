"""Invitation mail: the sender interface and the SMTP implementation."""

from familybudget.services.mail.interface import MailError, MailSender
from familybudget.services.mail.smtp import SmtpMailSender

__all__ = ["MailError", "MailSender", "SmtpMailSender"]
