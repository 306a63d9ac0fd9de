"""SQLAlchemy models for Tradeline.

All models are imported here so Base.metadata knows every table.
"""

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.user import User
from app.models.category import Category
from app.models.product import Product
from app.models.message import Message

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "User",
    "Category",
    "Product",
    "Message",
]
