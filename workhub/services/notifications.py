"""Fire-and-forget notification delivery.

Email goes out through aiosmtplib (STARTTLS). When SMTP credentials are not
configured the message is logged instead. Delivery errors are logged and
reported as ``False``; they never propagate to the operation that queued the
notification.
"""

import logging
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Iterable

import aiosmtplib
from fastapi import BackgroundTasks

from workhub.core.config import settings

logger = logging.getLogger(__name__)

EMAIL = "email"
SMS = "sms"


@dataclass(frozen=True)
class Notification:
    channel: str
    destination: str
    subject: str
    body: str


class Notifier:
    def __init__(
        self,
        host: str = settings.SMTP_HOST,
        port: int = settings.SMTP_PORT,
        username: str = settings.SMTP_USER,
        password: str = settings.SMTP_PASSWORD,
        sender: str = settings.MAIL_FROM,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender

    def is_email_configured(self) -> bool:
        return bool(self.username and self.password)

    async def send(self, destination: str, subject: str, body: str) -> bool:
        """Send an email; returns False instead of raising on any failure"""
        if not self.is_email_configured():
            logger.info("[MOCK EMAIL] To: %s, Subject: %s, Message: %s", destination, subject, body)
            return True

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = destination
        msg.set_content(body)

        try:
            await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                start_tls=True,
                username=self.username,
                password=self.password,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.warning("Failed to send email to %s: %s", destination, e)
            return False
        logger.info("Email sent to %s", destination)
        return True

    async def send_sms(self, destination: str, body: str) -> bool:
        # No SMS provider wired in yet
        logger.info("[MOCK SMS] To: %s, Message: %s", destination, body)
        return True

    async def deliver(self, notification: Notification) -> bool:
        if notification.channel == SMS:
            return await self.send_sms(notification.destination, notification.body)
        return await self.send(notification.destination, notification.subject, notification.body)

    def schedule(self, background_tasks: BackgroundTasks, notifications: Iterable[Notification]) -> int:
        """Queue deliveries to run after the response has been sent"""
        count = 0
        for notification in notifications:
            background_tasks.add_task(self.deliver, notification)
            count += 1
        return count
