"""Outgoing email through fastapi-mail.

Sending is a logged no-op when no SMTP server is configured, so local and
test environments run without a mail server.
"""

from html import escape
from typing import List, Optional

import structlog
from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType

from app.config import settings
from app.core.exceptions import EmailDeliveryError
from app.core.retry import mail_retry
from app.models.message import Message

logger = structlog.get_logger(__name__)


def build_mail_config() -> ConnectionConfig:
    """Build the fastapi-mail connection config from settings."""
    return ConnectionConfig(
        MAIL_USERNAME=settings.MAIL_USERNAME,
        MAIL_PASSWORD=settings.MAIL_PASSWORD,
        MAIL_FROM=settings.MAIL_FROM,
        MAIL_PORT=settings.MAIL_PORT,
        MAIL_SERVER=settings.MAIL_SERVER,
        MAIL_FROM_NAME=settings.MAIL_FROM_NAME,
        MAIL_STARTTLS=settings.MAIL_STARTTLS,
        MAIL_SSL_TLS=settings.MAIL_SSL_TLS,
        USE_CREDENTIALS=bool(settings.MAIL_USERNAME),
        VALIDATE_CERTS=True,
    )


def _paragraphs(text: str) -> str:
    return "".join(f"<p>{escape(line)}</p>" for line in text.splitlines() if line.strip())


class EmailService:
    """Sends HTML emails for the message inbox."""

    def __init__(self, mailer: Optional[FastMail] = None):
        """Initialize email service.

        Args:
            mailer: FastMail client; built from settings on first use when omitted
        """
        self._mailer = mailer
        self.logger = logger.bind(service="email_service")

    @property
    def enabled(self) -> bool:
        return self._mailer is not None or settings.mail_enabled

    def _get_mailer(self) -> FastMail:
        if self._mailer is None:
            self._mailer = FastMail(build_mail_config())
        return self._mailer

    async def send(self, recipients: List[str], subject: str, html: str) -> bool:
        """Send an HTML email.

        Returns:
            True when handed to the SMTP server, False when mail is disabled

        Raises:
            fastapi_mail.errors.ConnectionErrors: When delivery still fails after retries
        """
        if not self.enabled:
            self.logger.info("email_skipped_disabled", subject=subject, recipients=len(recipients))
            return False

        message = MessageSchema(
            subject=subject,
            recipients=recipients,
            body=html,
            subtype=MessageType.html,
        )
        await self._deliver(message)

        self.logger.info("email_sent", subject=subject, recipients=len(recipients))
        return True

    @mail_retry
    async def _deliver(self, message: MessageSchema) -> None:
        await self._get_mailer().send_message(message)

    async def notify_new_message(self, message: Message) -> bool:
        """Tell the administrator about a new inbox message.

        Never raises: a notification failure must not lose the message.
        """
        rows = [
            ("Type", message.type_label),
            ("Name", message.name),
            ("Email", message.email),
            ("Phone", message.phone),
            ("Company", message.company),
            ("Product", message.product),
            ("Quantity", message.quantity),
            ("Destination", message.destination),
        ]
        details = "".join(
            f"<tr><th align='left'>{label}</th><td>{escape(value)}</td></tr>"
            for label, value in rows
            if value
        )
        html = (
            f"<h2>New {escape(message.type_label.lower())}: {escape(message.subject)}</h2>"
            f"<table>{details}</table>"
            f"{_paragraphs(message.message)}"
        )

        try:
            return await self.send(
                [settings.ADMIN_EMAIL],
                f"[{message.type_label}] {message.subject}",
                html,
            )
        except Exception as e:
            self.logger.error(
                "admin_notification_failed",
                message_id=str(message.id),
                error=str(e),
                exc_info=True,
            )
            return False

    async def send_reply(self, message: Message, subject: str, body: str) -> None:
        """Email an administrator's reply to the message sender.

        Raises:
            EmailDeliveryError: If mail is disabled or delivery fails
        """
        html = (
            f"<p>Dear {escape(message.name)},</p>"
            f"{_paragraphs(body)}"
            f"<hr><p><em>Your message of {message.created_at:%Y-%m-%d}:</em></p>"
            f"<blockquote>{_paragraphs(message.message)}</blockquote>"
        )

        try:
            sent = await self.send([message.email], subject, html)
        except Exception as e:
            self.logger.error(
                "reply_delivery_failed",
                message_id=str(message.id),
                error=str(e),
                exc_info=True,
            )
            raise EmailDeliveryError(f"Could not deliver reply to {message.email}") from e

        if not sent:
            raise EmailDeliveryError("Outgoing mail is not configured")


_email_instance: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """FastAPI dependency returning the shared email service."""
    global _email_instance

    if _email_instance is None:
        _email_instance = EmailService()

    return _email_instance
