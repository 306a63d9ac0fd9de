"""Denormalized category statistics.

Keeps ``Category.product_count`` equal to the number of published products
referencing the category. Updates are a best-effort side effect of product
writes: a failed recount is logged and never undoes the product write.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import structlog

from app.models.product import Product
from app.repositories.base import CategoryRepository, ProductRepository

logger = structlog.get_logger(__name__)


class AggregateSynchronizer:
    """Recomputes cached category product counts after product writes."""

    def __init__(self, categories: CategoryRepository, products: ProductRepository):
        self.categories = categories
        self.products = products
        self.logger = logger.bind(service="aggregate_synchronizer")

    async def recount(self, category_id: UUID, exclude_product_id: Optional[UUID] = None) -> int:
        """Count published products of a category and store the result.

        Args:
            category_id: Category to recount
            exclude_product_id: Product to leave out (one about to be deleted)

        Returns:
            The stored count
        """
        count = await self.products.count_published(category_id, exclude_product_id)
        found = await self.categories.set_product_count(
            category_id, count, datetime.now(timezone.utc)
        )

        if not found:
            self.logger.warning("recount_category_missing", category_id=str(category_id))
        else:
            self.logger.debug("category_recounted", category_id=str(category_id), product_count=count)

        return count

    async def on_product_persisted(
        self,
        product: Product,
        previous_category_id: Optional[UUID] = None,
    ) -> None:
        """Refresh counts after a product was inserted or updated.

        When the product moved between categories, the category it left is
        recounted as well.
        """
        category_ids = []
        if product.category_id is not None:
            category_ids.append(product.category_id)
        if previous_category_id is not None and previous_category_id != product.category_id:
            category_ids.append(previous_category_id)

        for category_id in category_ids:
            await self._safe_recount(category_id, product_id=product.id)

    async def on_product_removed(self, product: Product) -> None:
        """Refresh the count of a product's category before the product is deleted."""
        if product.category_id is None:
            return
        await self._safe_recount(
            product.category_id,
            product_id=product.id,
            exclude_product_id=product.id,
        )

    async def reconcile_all(self) -> dict:
        """Recount every category.

        Repairs counts left stale by a recount that failed after its product
        write went through.

        Returns:
            Dict with the number of categories scanned and corrected
        """
        category_ids = await self.categories.list_ids()
        corrected = 0

        for category_id in category_ids:
            category = await self.categories.get(category_id)
            if category is None:
                continue
            before = category.product_count
            after = await self.recount(category_id)
            if before != after:
                corrected += 1
                self.logger.info(
                    "category_count_corrected",
                    category_id=str(category_id),
                    before=before,
                    after=after,
                )

        self.logger.info("reconcile_completed", categories=len(category_ids), corrected=corrected)
        return {"categories": len(category_ids), "corrected": corrected}

    async def _safe_recount(
        self,
        category_id: UUID,
        product_id: UUID,
        exclude_product_id: Optional[UUID] = None,
    ) -> Optional[int]:
        # A failed statement must not poison the surrounding product write
        try:
            async with self.categories.savepoint():
                return await self.recount(category_id, exclude_product_id)
        except Exception as e:
            self.logger.error(
                "category_recount_failed",
                category_id=str(category_id),
                product_id=str(product_id),
                error=str(e),
                exc_info=True,
            )
            return None
