"""Message service for contact/quote intake and admin triage."""

from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

import structlog
from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.message import Message
from app.schemas.message import MessageCreate, MessageStats
from app.services.email_service import EmailService

logger = structlog.get_logger(__name__)


class MessageService:
    """Stores inbound messages and supports replying to them.

    Args:
        db: Async database session
        email: Email service used for admin notifications and replies
    """

    def __init__(self, db: AsyncSession, email: EmailService):
        self.db = db
        self.email = email
        self.logger = logger.bind(service="message_service")

    async def create_message(
        self,
        data: MessageCreate,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Message:
        """Persist a public submission, then notify the administrator.

        The notification is best effort; the message is stored either way.
        """
        message = Message(
            **data.model_dump(),
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        self.db.add(message)
        await self.db.flush()

        self.logger.info(
            "message_received",
            message_id=str(message.id),
            type=message.type,
        )

        await self.email.notify_new_message(message)
        return message

    async def get_message(self, message_id: UUID) -> Message:
        message = await self.db.get(Message, message_id)
        if message is None:
            raise NotFoundError("Message", str(message_id))
        return message

    async def list_messages(
        self,
        page: int = 1,
        limit: int = 20,
        type: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Message], int]:
        """Get messages newest first with optional filters.

        Args:
            page: Page number (1-indexed)
            limit: Results per page
            type: Message type filter
            status: Triage status filter
            search: Case-insensitive match on name, email, subject, company or body

        Returns:
            Tuple of (messages, total_count)
        """
        query = select(Message)

        if type:
            query = query.where(Message.type == type)
        if status:
            query = query.where(Message.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(
                Message.name.ilike(pattern),
                Message.email.ilike(pattern),
                Message.subject.ilike(pattern),
                Message.company.ilike(pattern),
                Message.message.ilike(pattern),
            ))

        count_result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        result = await self.db.execute(
            query.order_by(Message.created_at.desc(), Message.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def update_status(
        self,
        message_id: UUID,
        status: str,
        admin_notes: Optional[str] = None,
    ) -> Message:
        message = await self.get_message(message_id)
        message.status = status
        if admin_notes is not None:
            message.admin_notes = admin_notes
        await self.db.flush()

        self.logger.info("message_status_updated", message_id=str(message_id), status=status)
        return message

    async def reply(self, message_id: UUID, body: str, subject: Optional[str] = None) -> Message:
        """Email a reply to the sender and mark the message as replied.

        Raises:
            EmailDeliveryError: If the reply could not be sent; the message
                is left untouched
        """
        message = await self.get_message(message_id)
        subject = subject or f"Re: {message.subject}"

        await self.email.send_reply(message, subject, body)

        now = datetime.now(timezone.utc)
        note = f"[{now:%Y-%m-%d %H:%M}] Replied: {subject}"
        message.status = "replied"
        message.replied_at = now
        message.admin_notes = f"{message.admin_notes}\n{note}" if message.admin_notes else note
        await self.db.flush()

        self.logger.info("message_replied", message_id=str(message_id))
        return message

    async def delete_message(self, message_id: UUID) -> None:
        message = await self.get_message(message_id)
        await self.db.delete(message)
        await self.db.flush()
        self.logger.info("message_deleted", message_id=str(message_id))

    async def bulk_update_status(self, message_ids: Sequence[UUID], status: str) -> int:
        """Set ``status`` on every listed message. Returns rows updated."""
        result = await self.db.execute(
            update(Message)
            .where(Message.id.in_(list(message_ids)))
            .values(status=status)
            .execution_options(synchronize_session="fetch")
        )
        self.logger.info("messages_bulk_status_updated", status=status, updated=result.rowcount)
        return result.rowcount

    async def bulk_delete(self, message_ids: Sequence[UUID]) -> int:
        result = await self.db.execute(
            delete(Message)
            .where(Message.id.in_(list(message_ids)))
            .execution_options(synchronize_session="fetch")
        )
        self.logger.info("messages_bulk_deleted", deleted=result.rowcount)
        return result.rowcount

    async def get_stats(self, now: Optional[datetime] = None) -> MessageStats:
        """Inbox counters: total, unread, this month, this year, per type and status."""
        now = now or datetime.now(timezone.utc)
        year_start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
        month_start = year_start.replace(month=now.month)

        total = (await self.db.execute(select(func.count(Message.id)))).scalar() or 0
        this_month = (await self.db.execute(
            select(func.count(Message.id)).where(Message.created_at >= month_start)
        )).scalar() or 0
        this_year = (await self.db.execute(
            select(func.count(Message.id)).where(Message.created_at >= year_start)
        )).scalar() or 0

        type_rows = await self.db.execute(
            select(Message.type, func.count(Message.id)).group_by(Message.type)
        )
        status_rows = await self.db.execute(
            select(Message.status, func.count(Message.id)).group_by(Message.status)
        )
        by_status = {status: count for status, count in status_rows.all()}

        return MessageStats(
            total=total,
            unread=by_status.get("unread", 0),
            this_month=this_month,
            this_year=this_year,
            by_type={type_: count for type_, count in type_rows.all()},
            by_status=by_status,
        )
