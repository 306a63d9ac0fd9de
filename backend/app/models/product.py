"""Product model for the import/export catalog."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import String, Text, ForeignKey, Boolean, Integer, Numeric, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin

PRODUCT_STATUSES = ("draft", "pending_review", "published", "archived", "suspended")
PRODUCT_VISIBILITIES = ("public", "private", "partners_only", "wholesale_only")
STOCK_STATUSES = ("in_stock", "low_stock", "out_of_stock", "on_demand")
CURRENCIES = ("XAF", "EUR", "USD", "GBP")
PRICE_TYPES = ("fixed", "negotiable", "quote_required")
UNITS = ("kg", "g", "t", "l", "ml", "pcs", "box", "carton", "sack", "bag")


class Product(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A catalog product offered for import/export.

    ``stock_status`` and ``published_at`` are derived on every save by
    ProductService. Only products with status ``published`` count towards
    their category's ``product_count``.
    """

    __tablename__ = "products"

    # Identity
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(220), unique=True, index=True, nullable=False)
    sku: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    short_description: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)

    # Categorization
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Owning category; cleared when the category is deleted",
    )
    subcategory_ids: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    tags: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)

    # Pricing
    base_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    sale_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(5), nullable=False, default="XAF")
    price_type: Mapped[str] = mapped_column(String(20), nullable=False, default="fixed")
    bulk_pricing: Mapped[List[dict]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment="Tiers of {min_quantity, max_quantity, price, discount}",
    )
    moq: Mapped[int] = mapped_column(Integer, nullable=False, default=1, comment="Minimum order quantity")
    unit: Mapped[str] = mapped_column(String(10), nullable=False, default="kg")

    # Inventory
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stock_status: Mapped[str] = mapped_column(String(20), nullable=False, default="in_stock", index=True)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    backorder_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Origin
    origin_country: Mapped[str] = mapped_column(String(100), nullable=False, default="Cameroon")
    origin_region: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Display
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    trending: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bestseller: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Lifecycle
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    visibility: Mapped[str] = mapped_column(String(20), nullable=False, default="public", index=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    # Statistics
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    inquiry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    order_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False, default=Decimal("0"))

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index("idx_products_category_status", "category_id", "status", "visibility"),
        Index("idx_products_published", "status", "published_at"),
    )

    @property
    def is_on_sale(self) -> bool:
        return self.sale_price is not None and self.sale_price < self.base_price

    @property
    def current_price(self) -> Decimal:
        return self.sale_price if self.is_on_sale else self.base_price

    @property
    def discount_percentage(self) -> int:
        if not self.is_on_sale or not self.base_price:
            return 0
        return round((self.base_price - self.sale_price) / self.base_price * 100)

    @property
    def is_published(self) -> bool:
        return self.status == "published"

    @property
    def url(self) -> str:
        return f"/products/{self.slug}"

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, sku='{self.sku}', status='{self.status}')>"
