"""Tests for category hierarchy maintenance.

Covers ancestor/level recomputation, parent validation (self, missing,
cycles, depth) and the cascade of moves to every descendant.
"""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    CategoryCycleError,
    MaxDepthExceededError,
    ParentNotFoundError,
    SelfParentError,
    ValidationError,
)
from app.models import Category
from app.repositories import SQLAlchemyCategoryRepository
from app.schemas.category import CategoryCreate, CategoryUpdate
from app.services.category_service import CategoryService
from app.services.hierarchy import HierarchyMaintainer


async def _chain(make_category, depth: int):
    """Create a chain of ``depth`` nested categories, level 0 first."""
    nodes = []
    parent = None
    for level in range(depth):
        parent = await make_category(f"Level {level}", parent=parent)
        nodes.append(parent)
    return nodes


# ============================================================================
# RECOMPUTE SELF
# ============================================================================

class TestRecomputeSelf:
    """Tests for HierarchyMaintainer.recompute_self."""

    async def test_root_has_empty_ancestors(self, make_category):
        """Test a category without parent is a level-0 root."""
        food = await make_category("Food")

        assert food.ancestors == []
        assert food.level == 0
        assert food.is_root

    async def test_child_extends_parent_path(self, make_category):
        """Test ancestors are the parent's ancestors followed by the parent."""
        food = await make_category("Food")
        grains = await make_category("Grains", parent=food)
        rice = await make_category("Rice", parent=grains)

        assert grains.ancestors == [str(food.id)]
        assert grains.level == 1
        assert rice.ancestors == [str(food.id), str(grains.id)]
        assert rice.level == 2
        assert rice.level == len(rice.ancestors)

    async def test_missing_parent_raises(self, test_db: AsyncSession):
        """Test a dangling parent_id is reported as ParentNotFoundError."""
        maintainer = HierarchyMaintainer(SQLAlchemyCategoryRepository(test_db))
        orphan = Category(name="Orphan", slug="orphan", parent_id=uuid4())

        with pytest.raises(ParentNotFoundError):
            await maintainer.recompute_self(orphan)

    async def test_clearing_parent_resets_to_root(self, make_category, category_service: CategoryService):
        """Test setting parent_id to null makes the category a root again."""
        food = await make_category("Food")
        grains = await make_category("Grains", parent=food)
        rice = await make_category("Rice", parent=grains)

        await category_service.update_category(grains.id, CategoryUpdate(parent_id=None))

        assert grains.parent_id is None
        assert grains.ancestors == []
        assert grains.level == 0
        assert rice.ancestors == [str(grains.id)]
        assert rice.level == 1


# ============================================================================
# PARENT VALIDATION
# ============================================================================

class TestValidateParent:
    """Tests for parent validation on create and move."""

    async def test_self_parent_rejected(self, make_category, category_service: CategoryService):
        """Test a category cannot be its own parent."""
        food = await make_category("Food")

        with pytest.raises(SelfParentError):
            await category_service.update_category(food.id, CategoryUpdate(parent_id=food.id))

    async def test_self_parent_rejected_on_create(self, category_service: CategoryService):
        """Test creating "Sub" with its own id as parent fails before the lookup."""
        category_id = uuid4()

        with pytest.raises(SelfParentError):
            await category_service.create_category(
                CategoryCreate(id=category_id, name="Sub", parent_id=category_id)
            )

    async def test_create_with_explicit_id(self, make_category, category_service: CategoryService):
        food = await make_category("Food")
        category_id = uuid4()

        grains = await category_service.create_category(
            CategoryCreate(id=category_id, name="Grains", parent_id=food.id)
        )

        assert grains.id == category_id
        assert grains.ancestors == [str(food.id)]
        with pytest.raises(ValidationError):
            await category_service.create_category(CategoryCreate(id=category_id, name="Rice"))

    async def test_unknown_parent_rejected_on_create(self, category_service: CategoryService):
        """Test creating under a non-existent parent fails."""
        with pytest.raises(ParentNotFoundError):
            await category_service.create_category(CategoryCreate(name="Lost", parent_id=uuid4()))

    async def test_descendant_parent_rejected(self, make_category, category_service: CategoryService):
        """Test moving a category under its own grandchild is a cycle."""
        food = await make_category("Food")
        grains = await make_category("Grains", parent=food)
        rice = await make_category("Rice", parent=grains)

        with pytest.raises(CategoryCycleError):
            await category_service.update_category(food.id, CategoryUpdate(parent_id=rice.id))

        assert food.parent_id is None
        assert food.level == 0

    async def test_parent_at_max_level_rejected(self, make_category, category_service: CategoryService):
        """Test a level-4 category cannot accept a child."""
        chain = await _chain(make_category, 5)
        assert chain[-1].level == 4

        with pytest.raises(MaxDepthExceededError):
            await category_service.create_category(CategoryCreate(name="Too deep", parent_id=chain[-1].id))

    async def test_parent_at_level_three_accepted(self, make_category):
        """Test a level-3 parent still accepts a child at level 4."""
        chain = await _chain(make_category, 4)

        leaf = await make_category("Deepest", parent=chain[-1])

        assert leaf.level == 4
        assert len(leaf.ancestors) == 4

    async def test_move_rejected_when_subtree_too_deep(self, make_category, category_service: CategoryService):
        """Test a move that would push a descendant past level 4 fails."""
        chain = await _chain(make_category, 4)
        food = await make_category("Food")
        grains = await make_category("Grains", parent=food)
        await make_category("Rice", parent=grains)

        # Food would land at level 4 and Rice at level 6
        with pytest.raises(MaxDepthExceededError):
            await category_service.update_category(food.id, CategoryUpdate(parent_id=chain[-1].id))

        assert food.level == 0


# ============================================================================
# CASCADE
# ============================================================================

class TestCascade:
    """Tests for propagating a move to all descendants."""

    async def test_move_updates_whole_subtree(self, make_category, category_service: CategoryService):
        """Test moving Grains under Imports rewrites Rice's path."""
        food = await make_category("Food")
        grains = await make_category("Grains", parent=food)
        rice = await make_category("Rice", parent=grains)
        imports = await make_category("Imports")

        await category_service.update_category(grains.id, CategoryUpdate(parent_id=imports.id))

        assert grains.ancestors == [str(imports.id)]
        assert grains.level == 1
        assert rice.ancestors == [str(imports.id), str(grains.id)]
        assert rice.level == 2

    async def test_move_persists_descendants(self, test_db: AsyncSession, make_category, category_service: CategoryService):
        """Test cascaded paths are written to the database."""
        food = await make_category("Food")
        grains = await make_category("Grains", parent=food)
        rice = await make_category("Rice", parent=grains)
        basmati = await make_category("Basmati", parent=rice)
        imports = await make_category("Imports")
        export = await make_category("Export", parent=imports)

        expected_path = [str(imports.id), str(export.id), str(grains.id), str(rice.id)]
        basmati_id = basmati.id

        await category_service.update_category(grains.id, CategoryUpdate(parent_id=export.id))
        await test_db.commit()
        test_db.expire_all()

        reloaded = await test_db.get(Category, basmati_id)
        assert reloaded.ancestors == expected_path
        assert reloaded.level == 4

    async def test_cascade_returns_descendant_count(self, test_db: AsyncSession, make_category):
        """Test cascade_to_children visits every transitive descendant once."""
        food = await make_category("Food")
        grains = await make_category("Grains", parent=food)
        await make_category("Rice", parent=grains)
        await make_category("Maize", parent=grains)
        await make_category("Spices", parent=food)

        maintainer = HierarchyMaintainer(SQLAlchemyCategoryRepository(test_db))

        assert await maintainer.cascade_to_children(food) == 4

    async def test_rename_keeps_paths(self, make_category, category_service: CategoryService):
        """Test a rename cascades without changing descendant paths."""
        food = await make_category("Food")
        grains = await make_category("Grains", parent=food)

        await category_service.update_category(food.id, CategoryUpdate(name="Foodstuffs"))

        assert food.name == "Foodstuffs"
        assert food.slug == "food"
        assert grains.ancestors == [str(food.id)]

    async def test_failed_write_aborts_cascade(self, test_db: AsyncSession, make_category):
        """Test a write error stops the walk and propagates."""
        food = await make_category("Food")
        await make_category("Grains", parent=food)

        repository = SQLAlchemyCategoryRepository(test_db)
        repository.save = AsyncMock(side_effect=RuntimeError("disk full"))
        maintainer = HierarchyMaintainer(repository)

        with pytest.raises(RuntimeError, match="disk full"):
            await maintainer.cascade_to_children(food)

    async def test_collect_subtree_lists_descendants(self, test_db: AsyncSession, make_category):
        """Test collect_subtree returns all descendants but not the root."""
        food = await make_category("Food")
        grains = await make_category("Grains", parent=food)
        rice = await make_category("Rice", parent=grains)
        await make_category("Imports")

        maintainer = HierarchyMaintainer(SQLAlchemyCategoryRepository(test_db))
        subtree = await maintainer.collect_subtree(food)

        assert {c.id for c in subtree} == {grains.id, rice.id}
