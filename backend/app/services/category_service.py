"""Category service for the product taxonomy.

Handles validated category creation, updates that move categories around
the tree, subtree deletion, and the read queries behind the catalog
navigation.
"""

from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

import structlog
from sqlalchemy import select, update, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateSlugError, NotFoundError, ValidationError
from app.core.text import slugify
from app.models.category import Category
from app.models.product import Product
from app.models.user import User
from app.repositories import SQLAlchemyCategoryRepository, SQLAlchemyProductRepository
from app.schemas.category import (
    CategoryCreate,
    CategoryLowStock,
    CategoryStats,
    CategoryTopProducts,
    CategoryTreeResponse,
    CategoryUpdate,
)
from app.schemas.product import ProductResponse
from app.services.cache_service import CacheService, invalidate_categories_cache
from app.services.hierarchy import HierarchyMaintainer

logger = structlog.get_logger(__name__)

# Fields an update may explicitly set to null
_CLEARABLE_FIELDS = {"parent_id", "description", "icon", "image_url"}


class CategoryService:
    """Service for managing the category tree.

    Structural fields (``ancestors``, ``level``) are delegated to
    HierarchyMaintainer. All writes happen inside the caller's session, so
    a request that fails half-way through a cascade is rolled back whole.
    """

    def __init__(self, db: AsyncSession, cache: Optional[CacheService] = None):
        """Initialize category service.

        Args:
            db: Async database session
            cache: Cache to invalidate after writes (skipped when None)
        """
        self.db = db
        self.cache = cache
        self.categories = SQLAlchemyCategoryRepository(db)
        self.products = SQLAlchemyProductRepository(db)
        self.hierarchy = HierarchyMaintainer(self.categories)
        self.logger = logger.bind(service="category_service")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_category(self, data: CategoryCreate, created_by: Optional[User] = None) -> Category:
        """Create a category after validating slug, parent and depth.

        Args:
            data: Validated creation payload
            created_by: Acting user, recorded on the category

        Returns:
            The persisted category with ancestors and level filled in

        Raises:
            ValidationError: If the requested id is already used
            DuplicateSlugError: If the slug (given or derived) is taken
            SelfParentError: If parent_id equals the requested id
            ParentNotFoundError: If parent_id does not exist
            MaxDepthExceededError: If the parent is already at the deepest level
        """
        if data.id is not None and await self.categories.get(data.id) is not None:
            raise ValidationError(f"Category id '{data.id}' is already in use")

        slug = await self._claim_slug(data.slug or data.name)

        parent = None
        if data.parent_id is not None:
            parent = await self.hierarchy.validate_parent(data.id, data.parent_id)

        category = Category(
            **data.model_dump(exclude={"id", "slug"}),
            slug=slug,
            created_by_id=created_by.id if created_by else None,
        )
        if data.id is not None:
            category.id = data.id
        await self.hierarchy.recompute_self(category, parent)
        await self.categories.add(category)

        self.logger.info(
            "category_created",
            category_id=str(category.id),
            slug=slug,
            level=category.level,
            parent_id=str(category.parent_id) if category.parent_id else None,
        )

        await self._invalidate_cache()
        return category

    async def update_category(self, category_id: UUID, data: CategoryUpdate) -> Category:
        """Apply a partial update, moving the category if parent_id changed.

        A parent change is validated (no self-parenting, no cycle, depth
        limit for the whole moved subtree), then the category's path is
        recomputed and pushed down to every descendant.

        Args:
            category_id: Category to update
            data: Fields to change; only fields explicitly sent are applied

        Returns:
            Updated category
        """
        category = await self.get_category(category_id)
        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in _CLEARABLE_FIELDS
        }

        if "slug" in changes:
            changes["slug"] = await self._claim_slug(changes["slug"] or changes.get("name", category.name), current=category)

        parent_changed = "parent_id" in changes and changes["parent_id"] != category.parent_id
        name_changed = "name" in changes and changes["name"] != category.name

        parent = None
        if parent_changed:
            if changes["parent_id"] is not None:
                parent = await self.hierarchy.validate_parent(category.id, changes["parent_id"])
            await self.hierarchy.ensure_subtree_fits(category, parent)

        for field, value in changes.items():
            setattr(category, field, value)

        if parent_changed:
            await self.hierarchy.recompute_self(category, parent)

        await self.categories.save(category)

        if parent_changed or name_changed:
            await self.hierarchy.cascade_to_children(category)

        self.logger.info(
            "category_updated",
            category_id=str(category.id),
            fields=sorted(changes),
            moved=parent_changed,
            level=category.level,
        )

        await self._invalidate_cache()
        return category

    async def delete_category(self, category_id: UUID) -> Dict[str, int]:
        """Delete a category together with all of its descendants.

        Products referencing any deleted category keep existing but lose
        their category reference.

        Returns:
            Dict with ``deleted_categories`` and ``products_uncategorized``
        """
        category = await self.get_category(category_id)
        subtree = [category, *await self.hierarchy.collect_subtree(category)]

        uncategorized = await self.products.clear_category([c.id for c in subtree])

        for node in sorted(subtree, key=lambda c: c.level, reverse=True):
            await self.categories.delete(node)

        self.logger.info(
            "category_deleted",
            category_id=str(category_id),
            deleted_categories=len(subtree),
            products_uncategorized=uncategorized,
        )

        await self._invalidate_cache()
        return {
            "deleted_categories": len(subtree),
            "products_uncategorized": uncategorized,
        }

    async def reorder_categories(self, ordered_ids: Sequence[UUID]) -> int:
        """Set display_order from each id's position in ``ordered_ids``.

        Returns:
            Number of categories updated
        """
        updated = await self.categories.set_display_orders(ordered_ids)
        self.logger.info("categories_reordered", requested=len(ordered_ids), updated=updated)
        await self._invalidate_cache()
        return updated

    async def increment_views(self, category_id: UUID) -> None:
        result = await self.db.execute(
            update(Category)
            .where(Category.id == category_id)
            .values(view_count=Category.view_count + 1)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise NotFoundError("Category", str(category_id))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_category(self, category_id: UUID) -> Category:
        category = await self.categories.get(category_id)
        if category is None:
            raise NotFoundError("Category", str(category_id))
        return category

    async def get_by_slug(self, slug: str) -> Category:
        category = await self.categories.get_by_slug(slug)
        if category is None:
            raise NotFoundError("Category", slug)
        return category

    async def list_categories(
        self,
        page: int = 1,
        limit: int = 50,
        level: Optional[int] = None,
        parent_id: Optional[UUID] = None,
        status: Optional[str] = None,
        visibility: Optional[str] = None,
        featured: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Category], int]:
        """Get a filtered, paginated flat list of categories.

        Returns:
            Tuple of (categories, total_count)
        """
        filters = dict(
            level=level,
            parent_id=parent_id,
            status=status,
            visibility=visibility,
            featured=featured,
            search=search,
        )
        total = await self.categories.count(**filters)
        categories = await self.categories.find(
            **filters,
            order_by=(Category.level, Category.display_order, Category.name),
            offset=(page - 1) * limit,
            limit=limit,
        )
        return categories, total

    async def get_tree(self, status: Optional[str] = "active", visibility: Optional[str] = "public") -> List[CategoryTreeResponse]:
        """Build the nested category tree from one flat query.

        Nodes are indexed by id and attached to their parent's ``children``.
        A node whose parent was filtered out becomes a root of the result.

        Returns:
            Root nodes with children nested to any depth
        """
        categories = await self.categories.find(
            status=status,
            visibility=visibility,
            order_by=(Category.level, Category.display_order, Category.name),
        )

        nodes = {c.id: CategoryTreeResponse.model_validate(c) for c in categories}
        roots: List[CategoryTreeResponse] = []

        for category in categories:
            node = nodes[category.id]
            parent = nodes.get(category.parent_id) if category.parent_id else None
            if parent is None:
                roots.append(node)
            else:
                parent.children.append(node)

        return roots

    async def get_main_categories(self, limit: int = 20, with_products_only: bool = False) -> List[Category]:
        return await self.categories.find(
            roots_only=True,
            status="active",
            visibility="public",
            min_product_count=1 if with_products_only else None,
            order_by=(Category.display_order, Category.product_count.desc()),
            limit=limit,
        )

    async def get_featured(self, limit: int = 6) -> List[Category]:
        return await self.categories.find(
            featured=True,
            status="active",
            visibility="public",
            limit=limit,
        )

    async def get_popular(self, limit: int = 12) -> List[Category]:
        """Active public categories with products, most viewed first."""
        return await self.categories.find(
            status="active",
            visibility="public",
            min_product_count=1,
            order_by=(Category.view_count.desc(), Category.product_count.desc()),
            limit=limit,
        )

    async def get_by_level(self, level: int = 0, limit: int = 20) -> List[Category]:
        return await self.categories.find(
            level=level,
            status="active",
            visibility="public",
            order_by=(Category.display_order, Category.product_count.desc()),
            limit=limit,
        )

    async def search(self, query: str, limit: int = 20, offset: int = 0) -> List[Category]:
        return await self.categories.find(
            search=query,
            status="active",
            visibility="public",
            order_by=(Category.product_count.desc(), Category.name),
            offset=offset,
            limit=limit,
        )

    async def get_empty_categories(self) -> List[Category]:
        """Active categories without any published product."""
        return await self.categories.find(
            status="active",
            max_product_count=0,
            order_by=(Category.level, Category.name),
        )

    async def get_categories_with_low_stock(self, per_category: int = 5) -> List[CategoryLowStock]:
        """Active public categories holding published products that run low.

        Categories are ordered by how many of their products are at or under
        their low-stock threshold; each lists its ``per_category`` scarcest.
        """
        grouped = await self._products_by_category(
            Product.stock_quantity <= Product.low_stock_threshold,
            order_by=(Product.stock_quantity.asc(), Product.name),
        )
        highlights = [
            CategoryLowStock(
                id=category.id,
                name=category.name,
                slug=category.slug,
                level=category.level,
                low_stock_count=len(products),
                products=[ProductResponse.model_validate(p) for p in products[:per_category]],
            )
            for category, products in grouped
        ]
        highlights.sort(key=lambda h: h.low_stock_count, reverse=True)
        return highlights

    async def get_categories_with_popular_products(
        self,
        limit: int = 10,
        per_category: int = 5,
    ) -> List[CategoryTopProducts]:
        """Active public categories with their most viewed public products.

        Categories are ordered by cached product count.
        """
        grouped = await self._products_by_category(
            Product.visibility == "public",
            order_by=(Product.view_count.desc(), Product.name),
        )
        grouped.sort(key=lambda pair: pair[0].product_count, reverse=True)
        return [
            CategoryTopProducts(
                id=category.id,
                name=category.name,
                slug=category.slug,
                level=category.level,
                product_count=category.product_count,
                top_products=[ProductResponse.model_validate(p) for p in products[:per_category]],
            )
            for category, products in grouped[:limit]
        ]

    async def get_full_path(self, category_id: UUID) -> List[Category]:
        """Return the breadcrumb from the root down to the category itself."""
        category = await self.get_category(category_id)
        ancestors = {c.id: c for c in await self.categories.get_many(category.ancestor_ids)}
        path = [ancestors[a] for a in category.ancestor_ids if a in ancestors]
        return [*path, category]

    async def get_global_stats(self) -> CategoryStats:
        """Aggregate counters over active categories."""
        result = await self.db.execute(
            select(
                func.count(Category.id),
                func.coalesce(func.sum(Category.product_count), 0),
                func.coalesce(func.sum(Category.view_count), 0),
                func.coalesce(func.avg(Category.product_count), 0),
                func.sum(case((Category.product_count > 0, 1), else_=0)),
                func.sum(case((Category.featured.is_(True), 1), else_=0)),
                func.sum(case((Category.level == 0, 1), else_=0)),
            ).where(Category.status == "active")
        )
        active, products, views, average, with_products, featured, roots = result.one()

        total = await self.categories.count()

        level_rows = await self.db.execute(
            select(Category.level, func.count(Category.id)).group_by(Category.level)
        )

        active = active or 0
        return CategoryStats(
            total_categories=total,
            active_categories=active,
            featured_categories=featured or 0,
            main_categories=roots or 0,
            subcategories=active - (roots or 0),
            categories_with_products=with_products or 0,
            empty_categories=active - (with_products or 0),
            total_products=int(products),
            total_views=int(views),
            average_products_per_category=round(float(average), 2),
            by_level={level: count for level, count in level_rows.all()},
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _claim_slug(self, value: str, current: Optional[Category] = None) -> str:
        slug = slugify(value)
        if not slug:
            raise ValidationError(f"Cannot derive a slug from '{value}'")

        existing = await self.categories.get_by_slug(slug)
        if existing is not None and (current is None or existing.id != current.id):
            raise DuplicateSlugError("Category", slug)
        return slug

    async def _products_by_category(self, *conditions, order_by) -> List[Tuple[Category, List[Product]]]:
        """Published products matching ``conditions``, grouped under their
        active public category. Categories without a match are left out."""
        result = await self.db.execute(
            select(Category, Product)
            .join(Product, Product.category_id == Category.id)
            .where(
                Category.status == "active",
                Category.visibility == "public",
                Product.status == "published",
                *conditions,
            )
            .order_by(*order_by)
        )

        grouped: Dict[UUID, Tuple[Category, List[Product]]] = {}
        for category, product in result.all():
            grouped.setdefault(category.id, (category, []))[1].append(product)
        return list(grouped.values())

    async def _invalidate_cache(self) -> None:
        if self.cache is not None:
            await invalidate_categories_cache(self.cache)
