"""User administration endpoints."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db, require_permission
from app.models.user import User
from app.schemas import ApiResponse, PaginationMeta, UserResponse, UserRoleUpdate, UserStatusUpdate
from app.services.auth_service import AuthService

router = APIRouter()

manage_users = require_permission("manage_users")


@router.get("", response_model=ApiResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[str] = None,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(manage_users),
):
    users, total = await AuthService(db).list_users(page=page, limit=limit, role=role, status=status)
    return ApiResponse(
        status="success",
        data=[UserResponse.model_validate(u) for u in users],
        meta=PaginationMeta(
            page=page,
            limit=limit,
            total=total,
            total_pages=(total + limit - 1) // limit if total > 0 else 0,
        ),
    )


@router.patch("/{user_id}/role", response_model=ApiResponse)
async def change_role(
    user_id: UUID,
    body: UserRoleUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(manage_users),
):
    user = await AuthService(db).set_role(user_id, body.role)
    return ApiResponse(status="success", data=UserResponse.model_validate(user))


@router.patch("/{user_id}/status", response_model=ApiResponse)
async def change_status(
    user_id: UUID,
    body: UserStatusUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(manage_users),
):
    user = await AuthService(db).set_status(user_id, body.status)
    return ApiResponse(status="success", data=UserResponse.model_validate(user))
