"""SQLAlchemy implementation of ProductRepository."""

from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.product import Product
from app.repositories.base import ProductRepository


class SQLAlchemyProductRepository(ProductRepository):
    """Product persistence over an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, product_id: UUID) -> Optional[Product]:
        return await self.db.get(Product, product_id)

    async def get_by_slug(self, slug: str) -> Optional[Product]:
        result = await self.db.execute(select(Product).where(Product.slug == slug))
        return result.scalar_one_or_none()

    async def get_by_sku(self, sku: str) -> Optional[Product]:
        result = await self.db.execute(select(Product).where(Product.sku == sku))
        return result.scalar_one_or_none()

    async def count_published(self, category_id: UUID, exclude_product_id: Optional[UUID] = None) -> int:
        query = select(func.count(Product.id)).where(
            Product.category_id == category_id,
            Product.status == "published",
        )
        if exclude_product_id is not None:
            query = query.where(Product.id != exclude_product_id)

        result = await self.db.execute(query)
        return result.scalar() or 0

    async def add(self, product: Product) -> Product:
        self.db.add(product)
        await self.db.flush()
        return product

    async def save(self, product: Product) -> Product:
        self.db.add(product)
        await self.db.flush()
        return product

    async def delete(self, product: Product) -> None:
        await self.db.delete(product)
        await self.db.flush()

    async def clear_category(self, category_ids: Iterable[UUID]) -> int:
        ids = list(category_ids)
        if not ids:
            return 0
        result = await self.db.execute(
            update(Product)
            .where(Product.category_id.in_(ids))
            .values(category_id=None)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
