"""Inbound contact and quote-request messages."""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

MESSAGE_TYPES = ("contact", "quote", "partnership", "sourcing")
MESSAGE_STATUSES = ("unread", "read", "replied", "archived")

MESSAGE_TYPE_LABELS = {
    "contact": "Contact",
    "quote": "Quote request",
    "partnership": "Partnership",
    "sourcing": "Sourcing",
}


class Message(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A message submitted through the public contact or quote forms."""

    __tablename__ = "messages"

    # Sender
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    company: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Content
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="contact", index=True)

    # Quote details
    product: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    quantity: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    destination: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Triage
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="unread", index=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    replied_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Request metadata
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        Index("idx_messages_created", "created_at"),
    )

    @property
    def type_label(self) -> str:
        return MESSAGE_TYPE_LABELS.get(self.type, self.type)

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, type='{self.type}', status='{self.status}')>"
