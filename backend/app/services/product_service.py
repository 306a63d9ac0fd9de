"""Product service for the import/export catalog.

Handles validated product CRUD, derived inventory fields, catalog queries
and volume pricing. Every write refreshes the cached product count of the
categories it touches through AggregateSynchronizer.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import select, update, func, or_, case
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    CategoryNotFoundError,
    DuplicateSkuError,
    DuplicateSlugError,
    InvalidPriceError,
    NotFoundError,
    ValidationError,
)
from app.core.text import generate_sku, normalize_sku, slugify
from app.models.product import Product
from app.models.user import User
from app.repositories import SQLAlchemyCategoryRepository, SQLAlchemyProductRepository
from app.schemas.product import BulkPriceTier, ProductCreate, ProductStats, ProductUpdate
from app.services.aggregates import AggregateSynchronizer
from app.services.cache_service import CacheService, invalidate_categories_cache

logger = structlog.get_logger(__name__)

SKU_GENERATION_ATTEMPTS = 10

# Fields an update may explicitly set to null
_CLEARABLE_FIELDS = {"sale_price", "short_description", "origin_region"}

_SORT_ORDERS = {
    "newest": (Product.created_at.desc(),),
    "price_asc": (Product.base_price.asc(),),
    "price_desc": (Product.base_price.desc(),),
    "popular": (Product.view_count.desc(), Product.inquiry_count.desc()),
    "rating": (Product.average_rating.desc(), Product.view_count.desc()),
}


def derive_stock_status(quantity: int, threshold: int) -> str:
    """Map a stock quantity to its stock status."""
    if quantity == 0:
        return "out_of_stock"
    if quantity <= threshold:
        return "low_stock"
    return "in_stock"


def apply_derived_fields(product: Product, now: Optional[datetime] = None) -> Product:
    """Refresh fields computed from other fields before a save.

    ``published_at`` is stamped the first time the product is published
    and never moved afterwards.
    """
    product.stock_status = derive_stock_status(product.stock_quantity, product.low_stock_threshold)

    if product.status == "published" and product.published_at is None:
        product.published_at = now or datetime.now(timezone.utc)

    return product


def validate_pricing(
    base_price: Decimal,
    sale_price: Optional[Decimal],
    bulk_pricing: Iterable[BulkPriceTier],
) -> None:
    """Reject inconsistent prices.

    Raises:
        InvalidPriceError: If the sale price is not below the base price, or
            a volume tier has min_quantity above max_quantity
    """
    if sale_price is not None and sale_price >= base_price:
        raise InvalidPriceError("Sale price must be less than base price")

    for tier in bulk_pricing:
        if tier.max_quantity is not None and tier.min_quantity > tier.max_quantity:
            raise InvalidPriceError("Bulk pricing min quantity cannot be greater than max quantity")


class ProductService:
    """Service for managing catalog products.

    Args:
        db: Async database session
        cache: Cache to invalidate after writes (skipped when None)
    """

    def __init__(self, db: AsyncSession, cache: Optional[CacheService] = None):
        self.db = db
        self.cache = cache
        self.categories = SQLAlchemyCategoryRepository(db)
        self.products = SQLAlchemyProductRepository(db)
        self.aggregates = AggregateSynchronizer(self.categories, self.products)
        self.logger = logger.bind(service="product_service")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_product(self, data: ProductCreate, created_by: Optional[User] = None) -> Product:
        """Create a product after validating references and prices.

        Args:
            data: Validated creation payload
            created_by: Acting user, recorded on the product

        Returns:
            The persisted product

        Raises:
            DuplicateSlugError: If the slug (given or derived) is taken
            DuplicateSkuError: If the given SKU is taken
            CategoryNotFoundError: If the category or a subcategory is missing
            InvalidPriceError: If the prices are inconsistent
        """
        slug = await self._claim_slug(data.slug or data.name)
        await self._require_categories([data.category_id, *data.subcategory_ids])
        validate_pricing(data.base_price, data.sale_price, data.bulk_pricing)

        if data.sku:
            sku = await self._claim_sku(data.sku)
        else:
            sku = await self._generate_unique_sku(data.category_id)

        fields = data.model_dump(exclude={"slug", "sku", "subcategory_ids", "bulk_pricing"})
        product = Product(
            **fields,
            slug=slug,
            sku=sku,
            subcategory_ids=[str(c) for c in data.subcategory_ids],
            bulk_pricing=[tier.model_dump(mode="json") for tier in data.bulk_pricing],
            created_by_id=created_by.id if created_by else None,
        )
        apply_derived_fields(product)

        await self.products.add(product)
        await self.aggregates.on_product_persisted(product)

        self.logger.info(
            "product_created",
            product_id=str(product.id),
            sku=sku,
            category_id=str(product.category_id),
            status=product.status,
        )

        await self._invalidate_cache()
        return product

    async def update_product(self, product_id: UUID, data: ProductUpdate) -> Product:
        """Apply a partial update and refresh derived fields and counts.

        When the category changes, both the old and the new category are
        recounted.
        """
        product = await self.get_product(product_id)
        changes: Dict[str, Any] = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in _CLEARABLE_FIELDS
        }

        if "slug" in changes:
            changes["slug"] = await self._claim_slug(changes["slug"] or changes.get("name", product.name), current=product)
        if "sku" in changes:
            changes["sku"] = await self._claim_sku(changes["sku"], current=product)

        if "category_id" in changes:
            await self._require_categories([changes["category_id"]])
        if "subcategory_ids" in changes:
            await self._require_categories(changes["subcategory_ids"])
            changes["subcategory_ids"] = [str(c) for c in changes["subcategory_ids"]]

        tiers = data.bulk_pricing if data.bulk_pricing is not None else [
            BulkPriceTier.model_validate(t) for t in product.bulk_pricing or []
        ]
        validate_pricing(
            changes.get("base_price", product.base_price),
            changes["sale_price"] if "sale_price" in changes else product.sale_price,
            tiers,
        )
        if "bulk_pricing" in changes:
            changes["bulk_pricing"] = [tier.model_dump(mode="json") for tier in data.bulk_pricing]

        previous_category_id = product.category_id

        for field, value in changes.items():
            setattr(product, field, value)
        apply_derived_fields(product)

        await self.products.save(product)
        await self.aggregates.on_product_persisted(product, previous_category_id=previous_category_id)

        self.logger.info(
            "product_updated",
            product_id=str(product.id),
            fields=sorted(changes),
            status=product.status,
        )

        await self._invalidate_cache()
        return product

    async def delete_product(self, product_id: UUID) -> None:
        """Delete a product, recounting its category first."""
        product = await self.get_product(product_id)

        await self.aggregates.on_product_removed(product)
        await self.products.delete(product)

        self.logger.info("product_deleted", product_id=str(product_id), sku=product.sku)
        await self._invalidate_cache()

    async def toggle_featured(self, product_id: UUID) -> Product:
        product = await self.get_product(product_id)
        product.featured = not product.featured
        await self.products.save(product)
        self.logger.info("product_featured_toggled", product_id=str(product_id), featured=product.featured)
        return product

    async def increment_views(self, product_id: UUID) -> None:
        await self._increment(product_id, view_count=Product.view_count + 1)

    async def increment_inquiries(self, product_id: UUID) -> None:
        await self._increment(product_id, inquiry_count=Product.inquiry_count + 1)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_product(self, product_id: UUID) -> Product:
        product = await self.products.get(product_id)
        if product is None:
            raise NotFoundError("Product", str(product_id))
        return product

    async def get_by_slug(self, slug: str) -> Product:
        product = await self.products.get_by_slug(slug)
        if product is None:
            raise NotFoundError("Product", slug)
        return product

    async def list_products(
        self,
        page: int = 1,
        limit: int = 20,
        category_id: Optional[UUID] = None,
        status: Optional[str] = None,
        visibility: Optional[str] = None,
        search: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        origin_country: Optional[str] = None,
        featured: Optional[bool] = None,
        sort_by: str = "newest",
    ) -> Tuple[List[Product], int]:
        """Get filtered, sorted and paginated products.

        Args:
            page: Page number (1-indexed)
            limit: Results per page
            category_id: Only products of this category
            status: Lifecycle status filter
            visibility: Visibility filter
            search: Case-insensitive match on name, SKU or description
            min_price: Lowest base price
            max_price: Highest base price
            origin_country: Country of origin
            featured: Only featured (True) or non-featured (False) products
            sort_by: One of newest, price_asc, price_desc, popular, rating

        Returns:
            Tuple of (products, total_count)
        """
        query = select(Product)

        if category_id is not None:
            query = query.where(Product.category_id == category_id)
        if status:
            query = query.where(Product.status == status)
        if visibility:
            query = query.where(Product.visibility == visibility)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(
                Product.name.ilike(pattern),
                Product.sku.ilike(pattern),
                Product.description.ilike(pattern),
            ))
        if min_price is not None:
            query = query.where(Product.base_price >= min_price)
        if max_price is not None:
            query = query.where(Product.base_price <= max_price)
        if origin_country:
            query = query.where(Product.origin_country == origin_country)
        if featured is not None:
            query = query.where(Product.featured == featured)

        count_result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        query = query.order_by(*_SORT_ORDERS.get(sort_by, _SORT_ORDERS["newest"]), Product.id)
        query = query.offset((page - 1) * limit).limit(limit)

        result = await self.db.execute(query)
        products = list(result.scalars().all())

        self.logger.debug(
            "products_retrieved",
            count=len(products),
            total=total,
            page=page,
            sort_by=sort_by,
        )

        return products, total

    async def get_featured(self, limit: int = 12) -> List[Product]:
        return await self._published(
            Product.featured.is_(True),
            order_by=(Product.display_order, Product.created_at.desc()),
            limit=limit,
        )

    async def get_on_sale(self, limit: int = 12) -> List[Product]:
        return await self._published(
            Product.sale_price.is_not(None),
            Product.sale_price < Product.base_price,
            order_by=(Product.created_at.desc(),),
            limit=limit,
        )

    async def get_new_arrivals(self, limit: int = 12, days: int = 30) -> List[Product]:
        """Products published within the last ``days`` days, newest first."""
        since = datetime.now(timezone.utc) - timedelta(days=days)
        return await self._published(
            Product.published_at >= since,
            order_by=(Product.published_at.desc(),),
            limit=limit,
        )

    async def get_trending(self, limit: int = 12) -> List[Product]:
        return await self._published(
            Product.trending.is_(True),
            order_by=(Product.view_count.desc(), Product.created_at.desc()),
            limit=limit,
        )

    async def get_bestsellers(self, limit: int = 12) -> List[Product]:
        return await self._published(
            Product.bestseller.is_(True),
            order_by=(Product.order_count.desc(), Product.created_at.desc()),
            limit=limit,
        )

    async def get_origins(self) -> List[str]:
        """Distinct origin countries of the public catalog, for filter menus."""
        result = await self.db.execute(
            select(Product.origin_country)
            .where(Product.status == "published", Product.visibility == "public")
            .distinct()
            .order_by(Product.origin_country)
        )
        return list(result.scalars().all())

    async def get_low_stock(self, limit: int = 20) -> List[Product]:
        """Published products at or under their low-stock threshold."""
        result = await self.db.execute(
            select(Product)
            .where(
                Product.status == "published",
                Product.stock_quantity <= Product.low_stock_threshold,
            )
            .order_by(Product.stock_quantity.asc(), Product.name)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_similar(self, product: Product, limit: int = 6) -> List[Product]:
        """Other published products of the same category."""
        if product.category_id is None:
            return []
        return await self._published(
            Product.category_id == product.category_id,
            Product.id != product.id,
            order_by=(Product.average_rating.desc(), Product.view_count.desc()),
            limit=limit,
        )

    async def get_global_stats(self) -> ProductStats:
        result = await self.db.execute(
            select(
                func.count(Product.id),
                func.sum(case((Product.featured.is_(True), 1), else_=0)),
                func.sum(case((Product.stock_status == "low_stock", 1), else_=0)),
                func.sum(case((Product.stock_status == "out_of_stock", 1), else_=0)),
                func.coalesce(func.sum(Product.view_count), 0),
                func.coalesce(func.sum(Product.inquiry_count), 0),
                func.coalesce(func.avg(Product.base_price), 0),
            )
        )
        total, featured, low_stock, out_of_stock, views, inquiries, average = result.one()

        status_rows = await self.db.execute(
            select(Product.status, func.count(Product.id)).group_by(Product.status)
        )
        by_status = {status: count for status, count in status_rows.all()}

        return ProductStats(
            total_products=total or 0,
            published_products=by_status.get("published", 0),
            draft_products=by_status.get("draft", 0),
            featured_products=featured or 0,
            low_stock_products=low_stock or 0,
            out_of_stock_products=out_of_stock or 0,
            total_views=int(views),
            total_inquiries=int(inquiries),
            average_price=round(float(average), 2),
            by_status=by_status,
        )

    # ------------------------------------------------------------------
    # Commerce helpers
    # ------------------------------------------------------------------

    @staticmethod
    def price_for_quantity(product: Product, quantity: int) -> Decimal:
        """Unit price for an order of ``quantity`` units.

        Among the volume tiers whose range contains the quantity, the one
        with the highest min_quantity wins. Without a matching tier the
        current (sale or base) price applies.
        """
        applicable = [
            tier for tier in product.bulk_pricing or []
            if quantity >= tier["min_quantity"]
            and (tier.get("max_quantity") is None or quantity <= tier["max_quantity"])
        ]
        if applicable:
            best = max(applicable, key=lambda tier: tier["min_quantity"])
            return Decimal(str(best["price"]))

        return product.current_price

    @staticmethod
    def check_availability(product: Product, quantity: int) -> bool:
        """Whether ``quantity`` units can be supplied from stock."""
        if product.stock_status == "out_of_stock":
            return False
        if product.stock_status == "on_demand":
            return True
        return product.stock_quantity >= quantity

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _published(self, *conditions, order_by, limit: int) -> List[Product]:
        result = await self.db.execute(
            select(Product)
            .where(
                Product.status == "published",
                Product.visibility == "public",
                *conditions,
            )
            .order_by(*order_by)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def _increment(self, product_id: UUID, **values) -> None:
        result = await self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise NotFoundError("Product", str(product_id))

    async def _require_categories(self, category_ids: Iterable[UUID]) -> None:
        wanted = list(dict.fromkeys(category_ids))
        if not wanted:
            return
        found = {c.id for c in await self.categories.get_many(wanted)}
        for category_id in wanted:
            if category_id not in found:
                raise CategoryNotFoundError(str(category_id))

    async def _claim_slug(self, value: str, current: Optional[Product] = None) -> str:
        slug = slugify(value)
        if not slug:
            raise ValidationError(f"Cannot derive a slug from '{value}'")

        existing = await self.products.get_by_slug(slug)
        if existing is not None and (current is None or existing.id != current.id):
            raise DuplicateSlugError("Product", slug)
        return slug

    async def _claim_sku(self, value: str, current: Optional[Product] = None) -> str:
        sku = normalize_sku(value)
        if not sku:
            raise ValidationError("SKU cannot be empty")

        existing = await self.products.get_by_sku(sku)
        if existing is not None and (current is None or existing.id != current.id):
            raise DuplicateSkuError(sku)
        return sku

    async def _generate_unique_sku(self, category_id: UUID) -> str:
        for _ in range(SKU_GENERATION_ATTEMPTS):
            sku = generate_sku(category_id)
            if await self.products.get_by_sku(sku) is None:
                return sku
        raise ValidationError("Could not generate a unique SKU, please provide one")

    async def _invalidate_cache(self) -> None:
        if self.cache is not None:
            await invalidate_categories_cache(self.cache)
