"""User model for back-office accounts and customers."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Boolean, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

USER_ROLES = ("admin", "manager", "sales", "supplier", "customer", "partner")
USER_STATUSES = ("active", "inactive", "suspended", "pending_verification")

ROLE_PERMISSIONS = {
    "admin": [
        "manage_users",
        "manage_products",
        "manage_orders",
        "manage_content",
        "manage_messages",
        "view_analytics",
        "manage_settings",
        "delete_data",
    ],
    "manager": [
        "manage_products",
        "manage_orders",
        "manage_content",
        "manage_messages",
        "view_analytics",
    ],
    "sales": [
        "manage_products",
        "manage_orders",
        "manage_messages",
        "view_analytics",
    ],
    "supplier": [
        "manage_own_products",
        "view_orders",
        "update_profile",
    ],
    "customer": [
        "place_orders",
        "view_own_orders",
        "update_profile",
        "leave_reviews",
    ],
    "partner": [
        "view_products",
        "place_orders",
        "update_profile",
        "refer_clients",
    ],
}


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Application user.

    Supports email/password authentication with bcrypt hashing and
    role-based permissions.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True,
        comment="User email address (unique)"
    )
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    company: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    hashed_password: Mapped[str] = mapped_column(
        String(128), nullable=False,
        comment="bcrypt hashed password"
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="customer", index=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="active", index=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Login tracking
    login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    login_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
        comment="Last login timestamp"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def permissions(self) -> List[str]:
        return list(ROLE_PERMISSIONS.get(self.role, []))

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def has_permission(self, permission: str) -> bool:
        return permission in ROLE_PERMISSIONS.get(self.role, [])

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
