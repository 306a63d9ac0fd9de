"""Products API endpoints."""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.dependencies import get_db, require_permission
from app.models.user import User
from app.schemas import (
    ApiResponse,
    PaginationMeta,
    PriceQuoteResponse,
    ProductCreate,
    ProductDetailResponse,
    ProductResponse,
    ProductUpdate,
)
from app.services.cache_service import CacheService, get_cache
from app.services.product_service import ProductService

router = APIRouter()

SORT_PATTERN = "^(newest|price_asc|price_desc|popular|rating)$"


def _paginated(products, page: int, limit: int, total: int) -> ApiResponse:
    return ApiResponse(
        status="success",
        data=[ProductResponse.model_validate(p) for p in products],
        meta=PaginationMeta(
            page=page,
            limit=limit,
            total=total,
            total_pages=(total + limit - 1) // limit if total > 0 else 0,
        ),
    )


def _as_list(products) -> ApiResponse:
    return ApiResponse(status="success", data=[ProductResponse.model_validate(p) for p in products])


@router.get("", response_model=ApiResponse)
async def list_products(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    category_id: Optional[UUID] = None,
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    origin_country: Optional[str] = None,
    featured: Optional[bool] = None,
    sort_by: str = Query("newest", pattern=SORT_PATTERN, description="Sort method"),
    db: AsyncSession = Depends(get_db),
):
    """List published public products with filters and pagination."""
    products, total = await ProductService(db).list_products(
        page=page,
        limit=limit,
        category_id=category_id,
        status="published",
        visibility="public",
        search=search,
        min_price=min_price,
        max_price=max_price,
        origin_country=origin_country,
        featured=featured,
        sort_by=sort_by,
    )
    return _paginated(products, page, limit, total)


@router.get("/manage", response_model=ApiResponse)
async def list_all_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category_id: Optional[UUID] = None,
    status: Optional[str] = Query(None, pattern="^(draft|pending_review|published|archived|suspended)$"),
    visibility: Optional[str] = None,
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    sort_by: str = Query("newest", pattern=SORT_PATTERN),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("manage_products")),
):
    """List products in any status for back-office editing."""
    products, total = await ProductService(db).list_products(
        page=page,
        limit=limit,
        category_id=category_id,
        status=status,
        visibility=visibility,
        search=search,
        sort_by=sort_by,
    )
    return _paginated(products, page, limit, total)


@router.get("/featured", response_model=ApiResponse)
async def get_featured_products(limit: int = Query(12, ge=1, le=50), db: AsyncSession = Depends(get_db)):
    return _as_list(await ProductService(db).get_featured(limit))


@router.get("/on-sale", response_model=ApiResponse)
async def get_on_sale_products(limit: int = Query(12, ge=1, le=50), db: AsyncSession = Depends(get_db)):
    return _as_list(await ProductService(db).get_on_sale(limit))


@router.get("/new-arrivals", response_model=ApiResponse)
async def get_new_arrivals(
    limit: int = Query(12, ge=1, le=50),
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    return _as_list(await ProductService(db).get_new_arrivals(limit, days))


@router.get("/trending", response_model=ApiResponse)
async def get_trending_products(limit: int = Query(12, ge=1, le=50), db: AsyncSession = Depends(get_db)):
    return _as_list(await ProductService(db).get_trending(limit))


@router.get("/bestsellers", response_model=ApiResponse)
async def get_bestseller_products(limit: int = Query(12, ge=1, le=50), db: AsyncSession = Depends(get_db)):
    return _as_list(await ProductService(db).get_bestsellers(limit))


@router.get("/origins", response_model=ApiResponse)
async def get_product_origins(db: AsyncSession = Depends(get_db)):
    """Countries of origin offered by the public catalog."""
    return ApiResponse(status="success", data=await ProductService(db).get_origins())


@router.get("/low-stock", response_model=ApiResponse)
async def get_low_stock_products(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("manage_products")),
):
    return _as_list(await ProductService(db).get_low_stock(limit))


@router.get("/stats", response_model=ApiResponse)
async def get_product_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("view_analytics")),
):
    return ApiResponse(status="success", data=await ProductService(db).get_global_stats())


@router.get("/slug/{slug}", response_model=ApiResponse)
async def get_product_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    """Public product page: only published products are visible."""
    service = ProductService(db)
    product = await service.get_by_slug(slug)
    if not product.is_published:
        raise NotFoundError("Product", slug)

    response = ApiResponse(status="success", data=ProductDetailResponse.model_validate(product))
    await service.increment_views(product.id)
    return response


@router.post("", response_model=ApiResponse, status_code=201)
async def create_product(
    body: ProductCreate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_permission("manage_products")),
):
    product = await ProductService(db, cache).create_product(body, created_by=current_user)
    return ApiResponse(status="success", data=ProductDetailResponse.model_validate(product))


@router.get("/{product_id}", response_model=ApiResponse)
async def get_product(product_id: UUID, db: AsyncSession = Depends(get_db)):
    product = await ProductService(db).get_product(product_id)
    return ApiResponse(status="success", data=ProductDetailResponse.model_validate(product))


@router.get("/{product_id}/similar", response_model=ApiResponse)
async def get_similar_products(
    product_id: UUID,
    limit: int = Query(6, ge=1, le=24),
    db: AsyncSession = Depends(get_db),
):
    service = ProductService(db)
    product = await service.get_product(product_id)
    return _as_list(await service.get_similar(product, limit))


@router.get("/{product_id}/price", response_model=ApiResponse)
async def get_price_quote(
    product_id: UUID,
    quantity: int = Query(..., ge=1, description="Number of units"),
    db: AsyncSession = Depends(get_db),
):
    """Unit price, total and availability for an order quantity."""
    product = await ProductService(db).get_product(product_id)
    unit_price = ProductService.price_for_quantity(product, quantity)
    return ApiResponse(
        status="success",
        data=PriceQuoteResponse(
            quantity=quantity,
            unit_price=unit_price,
            total_price=unit_price * quantity,
            currency=product.currency,
            available=ProductService.check_availability(product, quantity),
        ),
    )


@router.post("/{product_id}/inquiries", response_model=ApiResponse)
async def record_inquiry(product_id: UUID, db: AsyncSession = Depends(get_db)):
    """Count a quote request made from the product page."""
    await ProductService(db).increment_inquiries(product_id)
    return ApiResponse(status="success", data={"product_id": str(product_id)})


@router.put("/{product_id}", response_model=ApiResponse)
async def update_product(
    product_id: UUID,
    body: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    _: User = Depends(require_permission("manage_products")),
):
    product = await ProductService(db, cache).update_product(product_id, body)
    return ApiResponse(status="success", data=ProductDetailResponse.model_validate(product))


@router.post("/{product_id}/featured", response_model=ApiResponse)
async def toggle_featured(
    product_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("manage_content")),
):
    product = await ProductService(db).toggle_featured(product_id)
    return ApiResponse(status="success", data={"id": str(product.id), "featured": product.featured})


@router.delete("/{product_id}", response_model=ApiResponse)
async def delete_product(
    product_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    _: User = Depends(require_permission("manage_products")),
):
    await ProductService(db, cache).delete_product(product_id)
    return ApiResponse(status="success", data={"deleted": str(product_id)})
