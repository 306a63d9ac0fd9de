"""Category model for the product taxonomy tree."""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Integer, Boolean, ForeignKey, DateTime, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

CATEGORY_STATUSES = ("active", "inactive", "archived")
CATEGORY_VISIBILITIES = ("public", "private", "partners_only")


class Category(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A node in the product taxonomy.

    The tree is stored by parent pointer plus a denormalized ancestor path:
    ``ancestors`` holds the ids of every category from the root down to the
    immediate parent, and ``level`` is its length. Both fields are owned by
    HierarchyMaintainer; ``product_count`` is owned by AggregateSynchronizer.
    """

    __tablename__ = "categories"

    # Basic info
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(120), unique=True, index=True, nullable=False, comment="URL-friendly identifier")
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, comment="Icon identifier (e.g., 'wheat', 'coffee')")
    image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Hierarchy
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="Parent category ID, NULL for roots",
    )
    ancestors: Mapped[List[str]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment="Ancestor ids from root to immediate parent",
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)

    # Display
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Display order")
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    show_in_menu: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    color: Mapped[str] = mapped_column(String(20), nullable=False, default="#2d5a27")

    # Status
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    visibility: Mapped[str] = mapped_column(String(20), nullable=False, default="public", index=True)

    # Cached statistics
    product_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="Last time product_count was recomputed",
    )

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint("level >= 0 AND level <= 5", name="ck_categories_level_range"),
        CheckConstraint("product_count >= 0", name="ck_categories_product_count"),
        Index("idx_categories_parent_level", "parent_id", "level"),
        Index("idx_categories_status_visibility", "status", "visibility"),
    )

    @property
    def ancestor_ids(self) -> List[uuid.UUID]:
        return [uuid.UUID(a) for a in self.ancestors or []]

    @property
    def is_root(self) -> bool:
        return self.level == 0

    @property
    def url(self) -> str:
        return f"/categories/{self.slug}"

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, slug='{self.slug}', level={self.level})>"
