"""Tests for MessageService and EmailService."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import EmailDeliveryError, NotFoundError
from app.models import Message
from app.schemas.message import MessageCreate
from app.services.email_service import EmailService
from app.services.message_service import MessageService


def _payload(**fields) -> MessageCreate:
    data = dict(
        name="Jean Kamga",
        email="jean@example.com",
        subject="Demande de prix",
        message="Bonjour, je souhaite un devis pour 2 tonnes.",
    )
    data.update(fields)
    return MessageCreate(**data)


@pytest.fixture
def message_service(test_db: AsyncSession, email_service: EmailService) -> MessageService:
    return MessageService(test_db, email_service)


# ============================================================================
# INTAKE
# ============================================================================

class TestCreateMessage:
    """Tests for public message submission."""

    async def test_message_stored_and_admin_notified(self, message_service: MessageService, mailer: AsyncMock):
        """Test a submission is stored unread and the admin is emailed."""
        message = await message_service.create_message(
            _payload(type="quote", product="Farine de manioc", quantity="2 t"),
            ip_address="203.0.113.7",
            user_agent="pytest",
        )

        assert message.status == "unread"
        assert message.ip_address == "203.0.113.7"
        mailer.send_message.assert_awaited_once()
        sent = mailer.send_message.await_args.args[0]
        assert sent.subject == "[Quote request] Demande de prix"
        assert "Farine de manioc" in sent.body

    async def test_notification_failure_keeps_message(
        self, test_db: AsyncSession, message_service: MessageService, mailer: AsyncMock
    ):
        """Test a failing mail server does not lose the submission."""
        mailer.send_message.side_effect = RuntimeError("smtp down")

        message = await message_service.create_message(_payload())

        assert await test_db.get(Message, message.id) is not None

    async def test_sender_input_escaped(self, message_service: MessageService, mailer: AsyncMock):
        """Test user-provided text is HTML escaped in the notification."""
        await message_service.create_message(_payload(message="<script>alert(1)</script> pour 2 tonnes"))

        body = mailer.send_message.await_args.args[0].body
        assert "<script>" not in body
        assert "&lt;script&gt;" in body

    async def test_disabled_mail_skips_notification(self, test_db: AsyncSession):
        """Test without a mail server the message is stored silently."""
        service = MessageService(test_db, EmailService())

        message = await service.create_message(_payload())

        assert message.id is not None


# ============================================================================
# TRIAGE
# ============================================================================

class TestTriage:
    """Tests for admin operations on the inbox."""

    async def test_reply_marks_replied(self, message_service: MessageService, mailer: AsyncMock):
        """Test a delivered reply sets status, timestamp and a note."""
        message = await message_service.create_message(_payload())
        mailer.send_message.reset_mock()

        replied = await message_service.reply(message.id, "Merci, voici notre offre.")

        assert replied.status == "replied"
        assert replied.replied_at is not None
        assert "Replied: Re: Demande de prix" in replied.admin_notes
        sent = mailer.send_message.await_args.args[0]
        assert sent.recipients[0].email == "jean@example.com"

    async def test_reply_failure_leaves_message(self, message_service: MessageService, mailer: AsyncMock):
        """Test an undeliverable reply raises and keeps the status."""
        message = await message_service.create_message(_payload())
        mailer.send_message.side_effect = RuntimeError("smtp down")

        with pytest.raises(EmailDeliveryError) as exc_info:
            await message_service.reply(message.id, "Merci.")

        assert exc_info.value.status_code == 502
        assert message.status == "unread"
        assert message.replied_at is None

    async def test_reply_requires_mail(self, test_db: AsyncSession):
        """Test replying without a mail server is an error."""
        service = MessageService(test_db, EmailService())
        message = await service.create_message(_payload())

        with pytest.raises(EmailDeliveryError):
            await service.reply(message.id, "Merci.")

    async def test_update_status_with_notes(self, message_service: MessageService):
        message = await message_service.create_message(_payload())

        updated = await message_service.update_status(message.id, "archived", admin_notes="spam")

        assert updated.status == "archived"
        assert updated.admin_notes == "spam"

    async def test_unknown_message(self, message_service: MessageService):
        with pytest.raises(NotFoundError):
            await message_service.get_message(uuid4())

    async def test_list_filters(self, message_service: MessageService):
        """Test type and search filters."""
        await message_service.create_message(_payload(type="quote"))
        await message_service.create_message(_payload(type="contact", company="Agro SARL"))

        quotes, total = await message_service.list_messages(type="quote")
        assert total == 1
        assert quotes[0].type == "quote"

        found, total = await message_service.list_messages(search="agro")
        assert total == 1
        assert found[0].company == "Agro SARL"

    async def test_bulk_operations(self, test_db: AsyncSession, message_service: MessageService):
        """Test bulk status update and bulk delete report affected rows."""
        first = await message_service.create_message(_payload())
        second = await message_service.create_message(_payload())
        third = await message_service.create_message(_payload())

        assert await message_service.bulk_update_status([first.id, second.id], "read") == 2
        await test_db.refresh(first)
        assert first.status == "read"

        assert await message_service.bulk_delete([second.id, third.id]) == 2
        _, total = await message_service.list_messages()
        assert total == 1

    async def test_stats(self, message_service: MessageService):
        """Test inbox counters by status and type."""
        first = await message_service.create_message(_payload(type="quote"))
        await message_service.create_message(_payload())
        await message_service.create_message(_payload())
        await message_service.update_status(first.id, "read")

        stats = await message_service.get_stats()

        assert stats.total == 3
        assert stats.unread == 2
        assert stats.this_year == 3
        assert stats.by_type == {"quote": 1, "contact": 2}
        assert stats.by_status == {"read": 1, "unread": 2}
