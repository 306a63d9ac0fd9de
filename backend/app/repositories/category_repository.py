"""SQLAlchemy implementation of CategoryRepository."""

from datetime import datetime
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import Select, select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.category import Category
from app.repositories.base import CategoryRepository


def _apply_filters(
    query: Select,
    level: Optional[int] = None,
    parent_id: Optional[UUID] = None,
    roots_only: bool = False,
    status: Optional[str] = None,
    visibility: Optional[str] = None,
    featured: Optional[bool] = None,
    min_product_count: Optional[int] = None,
    max_product_count: Optional[int] = None,
    search: Optional[str] = None,
) -> Select:
    if level is not None:
        query = query.where(Category.level == level)
    if parent_id is not None:
        query = query.where(Category.parent_id == parent_id)
    if roots_only:
        query = query.where(Category.parent_id.is_(None))
    if status:
        query = query.where(Category.status == status)
    if visibility:
        query = query.where(Category.visibility == visibility)
    if featured is not None:
        query = query.where(Category.featured == featured)
    if min_product_count is not None:
        query = query.where(Category.product_count >= min_product_count)
    if max_product_count is not None:
        query = query.where(Category.product_count <= max_product_count)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            Category.name.ilike(pattern),
            Category.description.ilike(pattern),
        ))
    return query


class SQLAlchemyCategoryRepository(CategoryRepository):
    """Category persistence over an async SQLAlchemy session.

    Writes are flushed, never committed: the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, category_id: UUID) -> Optional[Category]:
        return await self.db.get(Category, category_id)

    async def get_by_slug(self, slug: str) -> Optional[Category]:
        result = await self.db.execute(select(Category).where(Category.slug == slug))
        return result.scalar_one_or_none()

    async def get_many(self, category_ids: Iterable[UUID]) -> List[Category]:
        ids = list(category_ids)
        if not ids:
            return []
        result = await self.db.execute(select(Category).where(Category.id.in_(ids)))
        return list(result.scalars().all())

    async def find_children(self, parent_id: UUID) -> List[Category]:
        result = await self.db.execute(
            select(Category)
            .where(Category.parent_id == parent_id)
            .order_by(Category.display_order, Category.name)
        )
        return list(result.scalars().all())

    async def find(
        self,
        *,
        level: Optional[int] = None,
        parent_id: Optional[UUID] = None,
        roots_only: bool = False,
        status: Optional[str] = None,
        visibility: Optional[str] = None,
        featured: Optional[bool] = None,
        min_product_count: Optional[int] = None,
        max_product_count: Optional[int] = None,
        search: Optional[str] = None,
        order_by: Sequence = (),
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Category]:
        query = _apply_filters(
            select(Category),
            level=level,
            parent_id=parent_id,
            roots_only=roots_only,
            status=status,
            visibility=visibility,
            featured=featured,
            min_product_count=min_product_count,
            max_product_count=max_product_count,
            search=search,
        )
        query = query.order_by(*(order_by or (Category.display_order, Category.name)))

        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count(
        self,
        *,
        level: Optional[int] = None,
        parent_id: Optional[UUID] = None,
        roots_only: bool = False,
        status: Optional[str] = None,
        visibility: Optional[str] = None,
        featured: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> int:
        query = _apply_filters(
            select(func.count(Category.id)),
            level=level,
            parent_id=parent_id,
            roots_only=roots_only,
            status=status,
            visibility=visibility,
            featured=featured,
            search=search,
        )
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def list_ids(self) -> List[UUID]:
        result = await self.db.execute(select(Category.id))
        return list(result.scalars().all())

    async def add(self, category: Category) -> Category:
        self.db.add(category)
        await self.db.flush()
        return category

    async def save(self, category: Category) -> Category:
        self.db.add(category)
        await self.db.flush()
        return category

    async def set_product_count(self, category_id: UUID, count: int, updated_at: datetime) -> bool:
        result = await self.db.execute(
            update(Category)
            .where(Category.id == category_id)
            .values(product_count=count, last_updated=updated_at)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0

    def savepoint(self):
        return self.db.begin_nested()

    async def set_display_orders(self, ordered_ids: Sequence[UUID]) -> int:
        touched = 0
        for index, category_id in enumerate(ordered_ids):
            result = await self.db.execute(
                update(Category)
                .where(Category.id == category_id)
                .values(display_order=index)
                .execution_options(synchronize_session="fetch")
            )
            touched += result.rowcount
        return touched

    async def delete(self, category: Category) -> None:
        await self.db.delete(category)
        await self.db.flush()
