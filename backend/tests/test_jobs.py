"""Tests for the recount scheduler and database seeding."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.db.seed import CATEGORY_TREE, seed_admin, seed_categories
from app.jobs.scheduler import RECOUNT_JOB_ID, RecountScheduler
from app.models import Category


# ============================================================================
# RECOUNT SCHEDULER
# ============================================================================

class TestRecountScheduler:
    """Tests for the periodic recount job."""

    async def test_run_recount_repairs_and_invalidates(
        self, test_db: AsyncSession, fake_cache, sample_category, make_product
    ):
        """Test a drifted count is fixed and category cache keys dropped."""
        await make_product("Farine de manioc", sample_category, status="published")
        await test_db.execute(
            update(Category).where(Category.id == sample_category.id).values(product_count=9)
        )
        await test_db.commit()
        fake_cache.store["categories:tree"] = "[]"

        factory = async_sessionmaker(test_db.bind, class_=AsyncSession, expire_on_commit=False)
        scheduler = RecountScheduler(factory, cache=fake_cache)

        summary = await scheduler.run_recount()

        assert summary == {"categories": 1, "corrected": 1}
        assert "categories:tree" not in fake_cache.store
        await test_db.refresh(sample_category)
        assert sample_category.product_count == 1

    async def test_job_registration(self, test_db: AsyncSession):
        """Test the job is added once and a zero interval disables it."""
        scheduler = RecountScheduler(async_sessionmaker(test_db.bind))
        scheduler.start()

        try:
            assert scheduler.add_recount_job(0) is None

            job = scheduler.add_recount_job(60)
            assert job.id == RECOUNT_JOB_ID
            assert job.next_run_time is not None
            scheduler.add_recount_job(30)
            assert len(scheduler.scheduler.get_jobs()) == 1
        finally:
            scheduler.stop()

    async def test_job_errors_are_logged(self, test_db: AsyncSession):
        """Test the wrapper swallows a failing run."""
        def broken_factory():
            raise RuntimeError("database unavailable")

        scheduler = RecountScheduler(broken_factory)

        await scheduler._run_recount_wrapper()


# ============================================================================
# SEEDING
# ============================================================================

class TestSeed:
    """Tests for default data seeding."""

    async def test_seed_categories_once(self, test_db: AsyncSession):
        """Test the taxonomy is created with levels and skipped the second time."""
        expected = sum(1 + len(children) for _, _, children in CATEGORY_TREE)

        assert await seed_categories(test_db) == expected
        assert await seed_categories(test_db) == 0

        rice = (await test_db.execute(select(Category).where(Category.slug == "riz"))).scalar_one()
        assert rice.level == 1
        assert len(rice.ancestors) == 1

    async def test_seed_admin_requires_password(self, test_db: AsyncSession, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_PASSWORD", "")
        assert await seed_admin(test_db) is False

        monkeypatch.setattr(settings, "ADMIN_PASSWORD", "secret123")
        assert await seed_admin(test_db) is True
        assert await seed_admin(test_db) is False
