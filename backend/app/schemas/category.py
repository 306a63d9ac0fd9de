"""Category Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.product import ProductResponse

CategoryStatus = Literal["active", "inactive", "archived"]
CategoryVisibility = Literal["public", "private", "partners_only"]


class CategoryCreate(BaseModel):
    """Category creation request.

    ``slug`` is derived from ``name`` when omitted and ``id`` is generated
    when omitted. ``ancestors`` and ``level`` are never accepted from clients.
    """

    id: Optional[UUID] = None
    name: str = Field(min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = Field(None, max_length=50)
    image_url: Optional[str] = Field(None, max_length=1000)
    parent_id: Optional[UUID] = None
    display_order: int = 0
    featured: bool = False
    show_in_menu: bool = True
    color: str = Field("#2d5a27", pattern=r"^#[0-9a-fA-F]{6}$")
    status: CategoryStatus = "active"
    visibility: CategoryVisibility = "public"


class CategoryUpdate(BaseModel):
    """Partial category update. Send ``parent_id: null`` to make a category a root."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = Field(None, max_length=50)
    image_url: Optional[str] = Field(None, max_length=1000)
    parent_id: Optional[UUID] = None
    display_order: Optional[int] = None
    featured: Optional[bool] = None
    show_in_menu: Optional[bool] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    status: Optional[CategoryStatus] = None
    visibility: Optional[CategoryVisibility] = None


class CategoryResponse(BaseModel):
    """Category response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    description: Optional[str] = None
    icon: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[UUID] = None
    ancestors: List[UUID] = []
    level: int
    display_order: int
    featured: bool
    show_in_menu: bool
    color: str
    status: str
    visibility: str
    product_count: int
    view_count: int
    last_updated: datetime
    created_at: datetime
    updated_at: datetime


class CategoryTreeResponse(CategoryResponse):
    """Category response with nested children for tree structure."""

    children: list["CategoryTreeResponse"] = []


class CategoryBrief(BaseModel):
    """Minimal category info, used for breadcrumbs."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    level: int


class CategoryReorderRequest(BaseModel):
    """New display order: position in the list becomes display_order."""

    ordered_ids: List[UUID] = Field(min_length=1)


class CategoryStats(BaseModel):
    """Aggregate figures over all categories."""

    total_categories: int = 0
    active_categories: int = 0
    featured_categories: int = 0
    main_categories: int = 0
    subcategories: int = 0
    categories_with_products: int = 0
    empty_categories: int = 0
    total_products: int = 0
    total_views: int = 0
    average_products_per_category: float = 0.0
    by_level: Dict[int, int] = {}


class CategoryDeleteResult(BaseModel):
    """Outcome of deleting a category subtree."""

    deleted_categories: int
    products_uncategorized: int


class CategoryLowStock(CategoryBrief):
    """Category with published products at or under their low-stock threshold."""

    low_stock_count: int
    products: List[ProductResponse] = []


class CategoryTopProducts(CategoryBrief):
    """Category with its most viewed public products."""

    product_count: int
    top_products: List[ProductResponse] = []
