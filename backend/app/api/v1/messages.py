"""Messages API endpoints: public submission and admin inbox."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db, require_permission
from app.models.user import User
from app.schemas import (
    ApiResponse,
    MessageBulkDelete,
    MessageBulkStatusUpdate,
    MessageCreate,
    MessageReply,
    MessageResponse,
    MessageStatusUpdate,
    PaginationMeta,
)
from app.services.email_service import EmailService, get_email_service
from app.services.message_service import MessageService

router = APIRouter()

manage_messages = require_permission("manage_messages")


@router.post("", response_model=ApiResponse, status_code=201)
async def submit_message(
    body: MessageCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
):
    """Submit a contact form or quote request."""
    message = await MessageService(db, email).create_message(
        body,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return ApiResponse(
        status="success",
        data={"id": str(message.id), "type": message.type, "created_at": message.created_at.isoformat()},
    )


@router.get("", response_model=ApiResponse)
async def list_messages(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    type: Optional[str] = Query(None, pattern="^(contact|quote|partnership|sourcing)$"),
    status: Optional[str] = Query(None, pattern="^(unread|read|replied|archived)$"),
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
    _: User = Depends(manage_messages),
):
    messages, total = await MessageService(db, email).list_messages(
        page=page, limit=limit, type=type, status=status, search=search,
    )
    return ApiResponse(
        status="success",
        data=[MessageResponse.model_validate(m) for m in messages],
        meta=PaginationMeta(
            page=page,
            limit=limit,
            total=total,
            total_pages=(total + limit - 1) // limit if total > 0 else 0,
        ),
    )


@router.get("/stats", response_model=ApiResponse)
async def get_message_stats(
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
    _: User = Depends(manage_messages),
):
    return ApiResponse(status="success", data=await MessageService(db, email).get_stats())


@router.post("/bulk/status", response_model=ApiResponse)
async def bulk_update_status(
    body: MessageBulkStatusUpdate,
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
    _: User = Depends(manage_messages),
):
    updated = await MessageService(db, email).bulk_update_status(body.ids, body.status)
    return ApiResponse(status="success", data={"updated": updated})


@router.post("/bulk/delete", response_model=ApiResponse)
async def bulk_delete(
    body: MessageBulkDelete,
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
    _: User = Depends(require_permission("delete_data")),
):
    deleted = await MessageService(db, email).bulk_delete(body.ids)
    return ApiResponse(status="success", data={"deleted": deleted})


@router.get("/{message_id}", response_model=ApiResponse)
async def get_message(
    message_id: UUID,
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
    _: User = Depends(manage_messages),
):
    """Open a message; unread messages become read."""
    service = MessageService(db, email)
    message = await service.get_message(message_id)
    if message.status == "unread":
        message = await service.update_status(message_id, "read")
    return ApiResponse(status="success", data=MessageResponse.model_validate(message))


@router.patch("/{message_id}/status", response_model=ApiResponse)
async def update_message_status(
    message_id: UUID,
    body: MessageStatusUpdate,
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
    _: User = Depends(manage_messages),
):
    message = await MessageService(db, email).update_status(message_id, body.status, body.admin_notes)
    return ApiResponse(status="success", data=MessageResponse.model_validate(message))


@router.post("/{message_id}/reply", response_model=ApiResponse)
async def reply_to_message(
    message_id: UUID,
    body: MessageReply,
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
    _: User = Depends(manage_messages),
):
    """Email a reply to the sender. Fails with 502 if the email cannot be sent."""
    message = await MessageService(db, email).reply(message_id, body.body, subject=body.subject)
    return ApiResponse(status="success", data=MessageResponse.model_validate(message))


@router.delete("/{message_id}", response_model=ApiResponse)
async def delete_message(
    message_id: UUID,
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
    _: User = Depends(require_permission("delete_data")),
):
    await MessageService(db, email).delete_message(message_id)
    return ApiResponse(status="success", data={"deleted": str(message_id)})
