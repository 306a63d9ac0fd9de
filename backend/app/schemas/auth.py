"""Auth Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator

UserRole = Literal["admin", "manager", "sales", "supplier", "customer", "partner"]
UserStatus = Literal["active", "inactive", "suspended", "pending_verification"]


class RegisterRequest(BaseModel):
    """User registration request."""
    email: EmailStr
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=8, max_length=128)
    phone: Optional[str] = Field(None, max_length=30)
    company: Optional[str] = Field(None, max_length=100)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not any(c.isalpha() for c in v):
            raise ValueError("Password must contain at least one letter")
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one digit")
        return v


class LoginRequest(BaseModel):
    """User login request."""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """JWT token response."""
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """User info response."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    company: Optional[str] = None
    role: str
    status: str
    permissions: List[str] = []
    last_login_at: Optional[datetime] = None
    created_at: datetime


class UserBrief(BaseModel):
    """Minimal user info for embedding in other responses."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str


class UserRoleUpdate(BaseModel):
    """Admin change of a user's role."""
    role: UserRole


class UserStatusUpdate(BaseModel):
    """Admin change of a user's account status."""
    status: UserStatus
