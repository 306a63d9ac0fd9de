"""Authentication API endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError
from app.dependencies import get_db, get_current_user
from app.models.user import User
from app.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from app.schemas.common import ApiResponse
from app.services.auth_service import AuthService, create_access_token

router = APIRouter()


def _session_payload(user: User) -> dict:
    return {
        "user": UserResponse.model_validate(user).model_dump(mode="json"),
        "token": TokenResponse(access_token=create_access_token(user)).model_dump(),
    }


@router.post("/register", response_model=ApiResponse, status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Register a new customer account."""
    user = await AuthService(db).register(
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        password=body.password,
        phone=body.phone,
        company=body.company,
    )
    return ApiResponse(status="success", data=_session_payload(user))


@router.post("/login", response_model=ApiResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Login with email and password."""
    try:
        user = await AuthService(db).authenticate(email=body.email, password=body.password)
    except AuthenticationError:
        # Persist the failed-attempt counter before the request rolls back
        await db.commit()
        raise
    return ApiResponse(status="success", data=_session_payload(user))


@router.get("/me", response_model=ApiResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user info."""
    return ApiResponse(
        status="success",
        data=UserResponse.model_validate(current_user).model_dump(mode="json"),
    )
