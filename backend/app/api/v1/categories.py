"""Categories API endpoints."""

from typing import Awaitable, Callable, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.dependencies import get_db, require_permission
from app.models.user import User
from app.repositories import SQLAlchemyCategoryRepository, SQLAlchemyProductRepository
from app.schemas import (
    ApiResponse,
    CategoryBrief,
    CategoryCreate,
    CategoryDeleteResult,
    CategoryReorderRequest,
    CategoryResponse,
    CategoryUpdate,
    PaginationMeta,
)
from app.services.aggregates import AggregateSynchronizer
from app.services.cache_service import CacheService, cache_key_for_categories, get_cache, invalidate_categories_cache
from app.services.category_service import CategoryService

router = APIRouter()


async def _cached(cache: CacheService, key: str, build: Callable[[], Awaitable[ApiResponse]]) -> ApiResponse:
    """Serve ``key`` from cache, or build the response and cache it."""
    cached = await cache.get(key)
    if cached:
        return ApiResponse.model_validate_json(cached)

    response = await build()
    await cache.set(key, response.model_dump_json(), ttl=settings.CATEGORY_CACHE_TTL)
    return response


def _as_list(categories) -> ApiResponse:
    return ApiResponse(status="success", data=[CategoryResponse.model_validate(c) for c in categories])


@router.get("", response_model=ApiResponse)
async def list_categories(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
    level: Optional[int] = Query(None, ge=0, le=5),
    parent_id: Optional[UUID] = None,
    status: Optional[str] = Query(None, pattern="^(active|inactive|archived)$"),
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    """List categories as a flat, paginated list.

    This endpoint is cached; any category or product write clears it.
    """
    async def build() -> ApiResponse:
        service = CategoryService(db)
        categories, total = await service.list_categories(
            page=page,
            limit=limit,
            level=level,
            parent_id=parent_id,
            status=status,
            search=search,
        )
        return ApiResponse(
            status="success",
            data=[CategoryResponse.model_validate(c) for c in categories],
            meta=PaginationMeta(
                page=page,
                limit=limit,
                total=total,
                total_pages=(total + limit - 1) // limit if total > 0 else 0,
            ),
        )

    key = cache_key_for_categories(
        "list", page=page, limit=limit, level=level, parent=parent_id, status=status, q=search,
    )
    return await _cached(cache, key, build)


@router.get("/tree", response_model=ApiResponse)
async def get_category_tree(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    """Active public categories as a nested tree."""
    async def build() -> ApiResponse:
        return ApiResponse(status="success", data=await CategoryService(db).get_tree())

    return await _cached(cache, cache_key_for_categories("tree"), build)


@router.get("/main", response_model=ApiResponse)
async def get_main_categories(
    limit: int = Query(20, ge=1, le=100),
    with_products_only: bool = False,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    async def build() -> ApiResponse:
        return _as_list(await CategoryService(db).get_main_categories(limit, with_products_only))

    key = cache_key_for_categories("main", limit=limit, with_products=with_products_only)
    return await _cached(cache, key, build)


@router.get("/featured", response_model=ApiResponse)
async def get_featured_categories(
    limit: int = Query(6, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    async def build() -> ApiResponse:
        return _as_list(await CategoryService(db).get_featured(limit))

    return await _cached(cache, cache_key_for_categories("featured", limit=limit), build)


@router.get("/popular", response_model=ApiResponse)
async def get_popular_categories(
    limit: int = Query(12, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    async def build() -> ApiResponse:
        return _as_list(await CategoryService(db).get_popular(limit))

    return await _cached(cache, cache_key_for_categories("popular", limit=limit), build)


@router.get("/search", response_model=ApiResponse)
async def search_categories(
    q: str = Query(..., min_length=1, max_length=100, description="Search text"),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return _as_list(await CategoryService(db).search(q, limit=limit))


@router.get("/level/{level}", response_model=ApiResponse)
async def get_categories_by_level(
    level: int,
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return _as_list(await CategoryService(db).get_by_level(level, limit))


@router.get("/empty", response_model=ApiResponse)
async def get_empty_categories(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("manage_products")),
):
    """Active categories without published products."""
    return _as_list(await CategoryService(db).get_empty_categories())


@router.get("/low-stock", response_model=ApiResponse)
async def get_low_stock_categories(
    per_category: int = Query(5, ge=1, le=20),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("manage_products")),
):
    """Categories with products at or under their low-stock threshold."""
    return ApiResponse(
        status="success",
        data=await CategoryService(db).get_categories_with_low_stock(per_category),
    )


@router.get("/popular-products", response_model=ApiResponse)
async def get_categories_with_popular_products(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    """Categories with their most viewed products."""
    async def build() -> ApiResponse:
        return ApiResponse(
            status="success",
            data=await CategoryService(db).get_categories_with_popular_products(limit),
        )

    return await _cached(cache, cache_key_for_categories("popular_products", limit=limit), build)


@router.get("/stats", response_model=ApiResponse)
async def get_category_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("view_analytics")),
):
    return ApiResponse(status="success", data=await CategoryService(db).get_global_stats())


@router.get("/slug/{slug}", response_model=ApiResponse)
async def get_category_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    """Get a category by slug and count the visit."""
    service = CategoryService(db)
    category = await service.get_by_slug(slug)
    response = ApiResponse(status="success", data=CategoryResponse.model_validate(category))
    await service.increment_views(category.id)
    return response


@router.post("", response_model=ApiResponse, status_code=201)
async def create_category(
    body: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    current_user: User = Depends(require_permission("manage_products")),
):
    category = await CategoryService(db, cache).create_category(body, created_by=current_user)
    return ApiResponse(status="success", data=CategoryResponse.model_validate(category))


@router.post("/reorder", response_model=ApiResponse)
async def reorder_categories(
    body: CategoryReorderRequest,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    _: User = Depends(require_permission("manage_content")),
):
    updated = await CategoryService(db, cache).reorder_categories(body.ordered_ids)
    return ApiResponse(status="success", data={"updated": updated})


@router.post("/recount", response_model=ApiResponse)
async def recount_categories(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    _: User = Depends(require_permission("manage_settings")),
):
    """Recompute every category's product count now."""
    synchronizer = AggregateSynchronizer(
        SQLAlchemyCategoryRepository(db),
        SQLAlchemyProductRepository(db),
    )
    summary = await synchronizer.reconcile_all()
    await invalidate_categories_cache(cache)
    return ApiResponse(status="success", data=summary)


@router.get("/{category_id}", response_model=ApiResponse)
async def get_category(category_id: UUID, db: AsyncSession = Depends(get_db)):
    category = await CategoryService(db).get_category(category_id)
    return ApiResponse(status="success", data=CategoryResponse.model_validate(category))


@router.get("/{category_id}/path", response_model=ApiResponse)
async def get_category_path(category_id: UUID, db: AsyncSession = Depends(get_db)):
    """Breadcrumb from the root category down to this one."""
    path = await CategoryService(db).get_full_path(category_id)
    return ApiResponse(status="success", data=[CategoryBrief.model_validate(c) for c in path])


@router.put("/{category_id}", response_model=ApiResponse)
async def update_category(
    category_id: UUID,
    body: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    _: User = Depends(require_permission("manage_products")),
):
    """Update a category; changing parent_id moves its whole subtree."""
    category = await CategoryService(db, cache).update_category(category_id, body)
    return ApiResponse(status="success", data=CategoryResponse.model_validate(category))


@router.delete("/{category_id}", response_model=ApiResponse)
async def delete_category(
    category_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    _: User = Depends(require_permission("delete_data")),
):
    """Delete a category, its descendants, and uncategorize their products."""
    result = await CategoryService(db, cache).delete_category(category_id)
    return ApiResponse(status="success", data=CategoryDeleteResult(**result))
