"""Pydantic schemas for the Tradeline API.

All request/response models are defined here for easy import.
"""

from app.schemas.common import ApiResponse, ErrorDetail, ErrorResponse, PaginationMeta
from app.schemas.category import (
    CategoryBrief,
    CategoryCreate,
    CategoryDeleteResult,
    CategoryLowStock,
    CategoryReorderRequest,
    CategoryResponse,
    CategoryStats,
    CategoryTopProducts,
    CategoryTreeResponse,
    CategoryUpdate,
)
from app.schemas.product import (
    BulkPriceTier,
    PriceQuoteResponse,
    ProductCreate,
    ProductDetailResponse,
    ProductResponse,
    ProductStats,
    ProductUpdate,
)
from app.schemas.health import HealthCheckResponse
from app.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserBrief,
    UserResponse,
    UserRoleUpdate,
    UserStatusUpdate,
)
from app.schemas.message import (
    MessageBulkDelete,
    MessageBulkStatusUpdate,
    MessageCreate,
    MessageReply,
    MessageResponse,
    MessageStats,
    MessageStatusUpdate,
)
from app.schemas.dashboard import DashboardOverview

__all__ = [
    # Common
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    "PaginationMeta",
    # Category
    "CategoryBrief",
    "CategoryCreate",
    "CategoryDeleteResult",
    "CategoryLowStock",
    "CategoryReorderRequest",
    "CategoryResponse",
    "CategoryStats",
    "CategoryTopProducts",
    "CategoryTreeResponse",
    "CategoryUpdate",
    # Product
    "BulkPriceTier",
    "PriceQuoteResponse",
    "ProductCreate",
    "ProductDetailResponse",
    "ProductResponse",
    "ProductStats",
    "ProductUpdate",
    # Health
    "HealthCheckResponse",
    # Auth
    "LoginRequest",
    "RegisterRequest",
    "TokenResponse",
    "UserBrief",
    "UserResponse",
    "UserRoleUpdate",
    "UserStatusUpdate",
    # Message
    "MessageBulkDelete",
    "MessageBulkStatusUpdate",
    "MessageCreate",
    "MessageReply",
    "MessageResponse",
    "MessageStats",
    "MessageStatusUpdate",
    # Dashboard
    "DashboardOverview",
]
