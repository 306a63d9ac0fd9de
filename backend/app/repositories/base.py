"""Repository interfaces for the catalog.

HierarchyMaintainer and AggregateSynchronizer only talk to these
interfaces, so they can run against any store offering point lookup,
filtered find, count, insert, field update, delete and bulk update.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncContextManager, Iterable, List, Optional, Sequence
from uuid import UUID

from app.models.category import Category
from app.models.product import Product


class CategoryRepository(ABC):
    """Abstract repository for Category."""

    @abstractmethod
    async def get(self, category_id: UUID) -> Optional[Category]:
        """Find a category by ID."""

    @abstractmethod
    async def get_by_slug(self, slug: str) -> Optional[Category]:
        """Find a category by slug."""

    @abstractmethod
    async def get_many(self, category_ids: Iterable[UUID]) -> List[Category]:
        """Find all categories whose ID is in ``category_ids``."""

    @abstractmethod
    async def find_children(self, parent_id: UUID) -> List[Category]:
        """Find the direct children of a category, ordered by display order."""

    @abstractmethod
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
        """Filtered find with ordering and pagination."""

    @abstractmethod
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
        """Count categories matching the same filters as ``find``."""

    @abstractmethod
    async def list_ids(self) -> List[UUID]:
        """Return the ID of every category."""

    @abstractmethod
    async def add(self, category: Category) -> Category:
        """Insert a new category."""

    @abstractmethod
    async def save(self, category: Category) -> Category:
        """Persist changes made to a loaded category."""

    @abstractmethod
    async def set_product_count(self, category_id: UUID, count: int, updated_at: datetime) -> bool:
        """Write the cached product count. Returns False if the category is gone."""

    @abstractmethod
    def savepoint(self) -> AsyncContextManager:
        """Open a nested transaction. A failure inside undoes only its own writes."""

    @abstractmethod
    async def set_display_orders(self, ordered_ids: Sequence[UUID]) -> int:
        """Bulk-assign display_order from list position. Returns rows touched."""

    @abstractmethod
    async def delete(self, category: Category) -> None:
        """Delete a single category."""


class ProductRepository(ABC):
    """Abstract repository for Product."""

    @abstractmethod
    async def get(self, product_id: UUID) -> Optional[Product]:
        """Find a product by ID."""

    @abstractmethod
    async def get_by_slug(self, slug: str) -> Optional[Product]:
        """Find a product by slug."""

    @abstractmethod
    async def get_by_sku(self, sku: str) -> Optional[Product]:
        """Find a product by SKU."""

    @abstractmethod
    async def count_published(self, category_id: UUID, exclude_product_id: Optional[UUID] = None) -> int:
        """Count published products whose category is ``category_id``."""

    @abstractmethod
    async def add(self, product: Product) -> Product:
        """Insert a new product."""

    @abstractmethod
    async def save(self, product: Product) -> Product:
        """Persist changes made to a loaded product."""

    @abstractmethod
    async def delete(self, product: Product) -> None:
        """Delete a product."""

    @abstractmethod
    async def clear_category(self, category_ids: Iterable[UUID]) -> int:
        """Bulk-clear the category of every product in ``category_ids``."""
