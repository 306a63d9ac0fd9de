"""Product Pydantic schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.config import settings

ProductStatus = Literal["draft", "pending_review", "published", "archived", "suspended"]
ProductVisibility = Literal["public", "private", "partners_only", "wholesale_only"]
Currency = Literal["XAF", "EUR", "USD", "GBP"]
PriceType = Literal["fixed", "negotiable", "quote_required"]
Unit = Literal["kg", "g", "t", "l", "ml", "pcs", "box", "carton", "sack", "bag"]
ProductSort = Literal["newest", "price_asc", "price_desc", "popular", "rating"]


class BulkPriceTier(BaseModel):
    """Volume price: applies to orders of min_quantity..max_quantity units."""

    min_quantity: int = Field(ge=1)
    max_quantity: Optional[int] = Field(None, ge=1)
    price: Decimal = Field(ge=0)
    discount: Optional[float] = Field(None, ge=0, le=100)


class ProductCreate(BaseModel):
    """Product creation request.

    ``slug`` is derived from ``name`` and ``sku`` is generated from the
    category when omitted.
    """

    name: str = Field(min_length=1, max_length=200)
    slug: Optional[str] = Field(None, max_length=220)
    sku: Optional[str] = Field(None, max_length=50)
    description: str = Field(min_length=1)
    short_description: Optional[str] = Field(None, max_length=300)

    category_id: UUID
    subcategory_ids: List[UUID] = []
    tags: List[str] = []

    base_price: Decimal = Field(ge=0)
    sale_price: Optional[Decimal] = Field(None, ge=0)
    currency: Currency = "XAF"
    price_type: PriceType = "fixed"
    bulk_pricing: List[BulkPriceTier] = []
    moq: int = Field(1, ge=1)
    unit: Unit = "kg"

    stock_quantity: int = Field(0, ge=0)
    low_stock_threshold: int = Field(default_factory=lambda: settings.LOW_STOCK_THRESHOLD_DEFAULT, ge=0)
    backorder_allowed: bool = False

    origin_country: str = Field("Cameroon", max_length=100)
    origin_region: Optional[str] = Field(None, max_length=100)

    featured: bool = False
    trending: bool = False
    bestseller: bool = False
    display_order: int = 0
    status: ProductStatus = "draft"
    visibility: ProductVisibility = "public"


class ProductUpdate(BaseModel):
    """Partial product update."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    slug: Optional[str] = Field(None, max_length=220)
    sku: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, min_length=1)
    short_description: Optional[str] = Field(None, max_length=300)

    category_id: Optional[UUID] = None
    subcategory_ids: Optional[List[UUID]] = None
    tags: Optional[List[str]] = None

    base_price: Optional[Decimal] = Field(None, ge=0)
    sale_price: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[Currency] = None
    price_type: Optional[PriceType] = None
    bulk_pricing: Optional[List[BulkPriceTier]] = None
    moq: Optional[int] = Field(None, ge=1)
    unit: Optional[Unit] = None

    stock_quantity: Optional[int] = Field(None, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    backorder_allowed: Optional[bool] = None

    origin_country: Optional[str] = Field(None, max_length=100)
    origin_region: Optional[str] = Field(None, max_length=100)

    featured: Optional[bool] = None
    trending: Optional[bool] = None
    bestseller: Optional[bool] = None
    display_order: Optional[int] = None
    status: Optional[ProductStatus] = None
    visibility: Optional[ProductVisibility] = None


class ProductResponse(BaseModel):
    """Product response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    sku: str
    short_description: Optional[str] = None
    category_id: Optional[UUID] = None
    base_price: Decimal
    sale_price: Optional[Decimal] = None
    current_price: Decimal
    discount_percentage: int = 0
    currency: str
    price_type: str
    moq: int
    unit: str
    stock_status: str
    origin_country: str
    featured: bool
    trending: bool = False
    bestseller: bool = False
    status: str
    visibility: str
    average_rating: Decimal
    published_at: Optional[datetime] = None


class ProductDetailResponse(ProductResponse):
    """Detailed product response with additional information."""

    description: str
    subcategory_ids: List[UUID] = []
    tags: List[str] = []
    bulk_pricing: List[BulkPriceTier] = []
    stock_quantity: int
    low_stock_threshold: int
    backorder_allowed: bool
    origin_region: Optional[str] = None
    display_order: int
    view_count: int
    inquiry_count: int
    order_count: int = 0
    created_at: datetime
    updated_at: datetime


class PriceQuoteResponse(BaseModel):
    """Unit and total price for an order quantity."""

    quantity: int
    unit_price: Decimal
    total_price: Decimal
    currency: str
    available: bool


class ProductStats(BaseModel):
    """Aggregate figures over all products."""

    total_products: int = 0
    published_products: int = 0
    draft_products: int = 0
    featured_products: int = 0
    low_stock_products: int = 0
    out_of_stock_products: int = 0
    total_views: int = 0
    total_inquiries: int = 0
    average_price: float = 0.0
    by_status: Dict[str, int] = {}
