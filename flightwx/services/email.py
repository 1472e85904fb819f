"""SMTP delivery for participant notifications."""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Sequence

from flightwx.config.settings import MailConfig

logger = logging.getLogger(__name__)


class EmailServiceError(RuntimeError):
    """Raised when the email service cannot deliver a message."""


class SmtpMailer:
    """Sends plain text mail through one SMTP session per batch of recipients."""

    def __init__(self, config: MailConfig):
        self.config = config

    def build_message(self, recipient: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.config.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.config.use_ssl:
            client: smtplib.SMTP = smtplib.SMTP_SSL(
                self.config.host, self.config.port, context=context
            )
        else:
            client = smtplib.SMTP(self.config.host, self.config.port)
            if self.config.use_tls:
                client.starttls(context=context)
        password = (
            self.config.password.get_secret_value() if self.config.password is not None else None
        )
        if self.config.username and password:
            client.login(self.config.username, password)
        return client

    def _send_sync(self, messages: Sequence[EmailMessage]) -> None:
        with self._connect() as client:
            for message in messages:
                client.send_message(message)

    async def send(self, recipients: Sequence[str], subject: str, body: str) -> None:
        """Deliver the same message to every recipient."""

        if not self.config.is_configured():
            raise EmailServiceError("SMTP settings are not configured.")
        if not recipients:
            return

        messages = [self.build_message(recipient, subject, body) for recipient in recipients]
        try:
            await asyncio.to_thread(self._send_sync, messages)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailServiceError(f"Failed to send '{subject}'.") from exc
        logger.debug("Delivered '%s' to %d recipient(s) via %s", subject, len(messages), self.config.host)


__all__ = ["EmailServiceError", "SmtpMailer"]
