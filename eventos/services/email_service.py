"""
Email delivery for FMP Eventos
==============================
Notifier implementations behind the notification dispatcher:
- EmailService: SMTP via aiosmtplib
- ConsoleEmailService: logs the message instead of sending (development)

Both follow the same contract: `send(message) -> bool`, never raising for
delivery problems.
"""

import aiosmtplib
from dataclasses import dataclass, field
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from eventos.core.config import settings
from eventos.core.logging_config import logger


@dataclass
class EmailMessage:
    to: str
    subject: str
    html_body: str
    text_body: str = ""
    kind: str = "generic"
    metadata: dict = field(default_factory=dict)


class EmailService:
    """Async email service using SMTP"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        return bool(self.smtp_user and self.smtp_password)

    async def send(self, message: EmailMessage) -> bool:
        return await self.send_email(message.to, message.subject, message.html_body, message.text_body)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email asynchronously.

        Returns True if successful, False otherwise.
        """
        if not self.is_configured:
            logger.warning("[Email] Email service not configured, skipping email send")
            return False

        try:
            message = MIMEMultipart("alternative")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = to_email
            message["Subject"] = subject

            # Plain text first so HTML-capable clients prefer the last part
            if text_content:
                message.attach(MIMEText(text_content, "plain", "utf-8"))
            message.attach(MIMEText(html_content, "html", "utf-8"))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=True
            )

            logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
            return True

        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False


class ConsoleEmailService:
    """Development notifier: writes the email to the log"""

    async def send(self, message: EmailMessage) -> bool:
        logger.info(
            f"[Email/Console] To: {message.to} | Subject: {message.subject}",
            extra={
                "event_type": "email_console",
                "email_kind": message.kind,
                "email_to": message.to,
                "email_subject": message.subject,
            }
        )
        logger.debug(message.text_body or message.html_body)
        return True


def get_email_backend():
    """Pick the notifier configured by EMAIL_BACKEND"""
    if settings.EMAIL_BACKEND == "smtp":
        return EmailService()
    return ConsoleEmailService()
