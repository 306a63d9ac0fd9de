"""Category hierarchy maintenance.

Keeps every category's ``ancestors`` path and ``level`` consistent with its
parent pointer, and propagates structural changes to all descendants.
"""

from typing import List, Optional
from uuid import UUID

import structlog

from app.config import settings
from app.core.exceptions import (
    CategoryCycleError,
    MaxDepthExceededError,
    ParentNotFoundError,
    SelfParentError,
)
from app.models.category import Category
from app.repositories.base import CategoryRepository

logger = structlog.get_logger(__name__)


class HierarchyMaintainer:
    """Owns the ``ancestors`` and ``level`` fields of every category.

    Invariants maintained for each category C with parent P:
        C.ancestors == P.ancestors + [P.id]
        C.level == len(C.ancestors) == P.level + 1
    and for roots ``ancestors == []`` and ``level == 0``.
    """

    def __init__(self, categories: CategoryRepository, max_level: Optional[int] = None):
        """Initialize hierarchy maintainer.

        Args:
            categories: Category repository used for lookups and writes
            max_level: Deepest allowed level (0-indexed), defaults to settings
        """
        self.categories = categories
        self.max_level = settings.CATEGORY_MAX_LEVEL if max_level is None else max_level
        self.logger = logger.bind(service="hierarchy_maintainer")

    async def recompute_self(self, category: Category, parent: Optional[Category] = None) -> Category:
        """Recompute ``ancestors`` and ``level`` from the category's parent.

        Does not persist the category.

        Args:
            category: Category whose parent_id is already set
            parent: Already loaded parent, looked up when omitted

        Returns:
            The same category, updated in place

        Raises:
            ParentNotFoundError: If parent_id does not resolve
        """
        if category.parent_id is None:
            category.ancestors = []
            category.level = 0
            return category

        if parent is None or parent.id != category.parent_id:
            parent = await self.categories.get(category.parent_id)
            if parent is None:
                raise ParentNotFoundError(str(category.parent_id))

        category.ancestors = [*parent.ancestors, str(parent.id)]
        category.level = parent.level + 1
        return category

    async def validate_parent(self, category_id: Optional[UUID], parent_id: UUID) -> Category:
        """Check that ``parent_id`` may become the parent of ``category_id``.

        Args:
            category_id: The category being created or moved (None if it has no id yet)
            parent_id: Designated parent

        Returns:
            The loaded parent category

        Raises:
            SelfParentError: If the category would be its own parent
            ParentNotFoundError: If the parent does not exist
            CategoryCycleError: If the parent is a descendant of the category
            MaxDepthExceededError: If the parent already sits at the deepest level
        """
        if category_id is not None and parent_id == category_id:
            raise SelfParentError(str(category_id))

        parent = await self.categories.get(parent_id)
        if parent is None:
            raise ParentNotFoundError(str(parent_id))

        if category_id is not None and str(category_id) in (parent.ancestors or []):
            raise CategoryCycleError(str(category_id), str(parent_id))

        if parent.level >= self.max_level:
            raise MaxDepthExceededError(self.max_level)

        return parent

    async def ensure_subtree_fits(self, category: Category, parent: Optional[Category]) -> None:
        """Reject a move that would push any descendant below the deepest level.

        Raises:
            MaxDepthExceededError: If the moved subtree does not fit
        """
        new_level = parent.level + 1 if parent is not None else 0
        descendants = await self.collect_subtree(category)
        relative_depth = max((d.level - category.level for d in descendants), default=0)

        if new_level + relative_depth > self.max_level:
            self.logger.info(
                "subtree_move_rejected",
                category_id=str(category.id),
                new_level=new_level,
                subtree_depth=relative_depth,
            )
            raise MaxDepthExceededError(self.max_level)

    async def cascade_to_children(self, category: Category) -> int:
        """Propagate the category's path to all of its transitive descendants.

        Descendants are visited depth-first from an explicit stack. Each child
        is recomputed from its freshly updated parent and persisted before its
        own children are visited. A failing write aborts the remaining walk.

        Args:
            category: Category whose ancestors/level are already correct

        Returns:
            Number of descendants rewritten
        """
        stack: List[Category] = [category]
        updated = 0

        while stack:
            parent = stack.pop()
            children = await self.categories.find_children(parent.id)

            for child in children:
                child.ancestors = [*parent.ancestors, str(parent.id)]
                child.level = parent.level + 1
                await self.categories.save(child)
                updated += 1
                stack.append(child)

        self.logger.info(
            "hierarchy_cascaded",
            category_id=str(category.id),
            descendants_updated=updated,
        )
        return updated

    async def collect_subtree(self, category: Category) -> List[Category]:
        """Return every transitive descendant of ``category`` (not itself).

        Parents always precede their children in the returned list.
        """
        descendants: List[Category] = []
        frontier: List[Category] = [category]

        while frontier:
            current = frontier.pop()
            children = await self.categories.find_children(current.id)
            descendants.extend(children)
            frontier.extend(children)

        return descendants
