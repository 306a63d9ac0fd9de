"""Message Pydantic schemas for the contact form and admin triage."""

from datetime import datetime
from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

MessageType = Literal["contact", "quote", "partnership", "sourcing"]
MessageStatus = Literal["unread", "read", "replied", "archived"]


class MessageCreate(BaseModel):
    """Public contact or quote request submission."""

    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    company: Optional[str] = Field(None, max_length=100)
    subject: str = Field(min_length=5, max_length=200)
    message: str = Field(min_length=10, max_length=2000)
    type: MessageType = "contact"

    # Quote details
    product: Optional[str] = Field(None, max_length=200)
    quantity: Optional[str] = Field(None, max_length=100)
    destination: Optional[str] = Field(None, max_length=100)


class MessageResponse(BaseModel):
    """Message as shown to administrators."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    subject: str
    message: str
    type: str
    type_label: str
    product: Optional[str] = None
    quantity: Optional[str] = None
    destination: Optional[str] = None
    status: str
    admin_notes: Optional[str] = None
    replied_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MessageStatusUpdate(BaseModel):
    """Status change with optional admin notes."""

    status: MessageStatus
    admin_notes: Optional[str] = Field(None, max_length=2000)


class MessageReply(BaseModel):
    """Email reply to the sender. Subject defaults to ``Re: <original subject>``."""

    subject: Optional[str] = Field(None, max_length=200)
    body: str = Field(min_length=1, max_length=10000)


class MessageBulkStatusUpdate(BaseModel):
    """Set the same status on several messages."""

    ids: List[UUID] = Field(min_length=1)
    status: MessageStatus


class MessageBulkDelete(BaseModel):
    """Delete several messages."""

    ids: List[UUID] = Field(min_length=1)


class MessageStats(BaseModel):
    """Summary counters for the triage dashboard."""

    total: int = 0
    unread: int = 0
    this_month: int = 0
    this_year: int = 0
    by_type: Dict[str, int] = {}
    by_status: Dict[str, int] = {}
