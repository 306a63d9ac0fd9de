"""APScheduler-based maintenance scheduler.

Runs the periodic category recount that repairs product counts left stale
by a failed best-effort recount during a product write.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.repositories import SQLAlchemyCategoryRepository, SQLAlchemyProductRepository
from app.services.aggregates import AggregateSynchronizer
from app.services.cache_service import CacheService, invalidate_categories_cache

logger = structlog.get_logger(__name__)

RECOUNT_JOB_ID = "category_recount"


class RecountScheduler:
    """Manages the periodic category recount job.

    Job errors are logged and never stop the scheduler.
    """

    def __init__(
        self,
        db_session_factory: async_sessionmaker[AsyncSession],
        cache: Optional[CacheService] = None,
    ):
        """Initialize recount scheduler.

        Args:
            db_session_factory: Async session factory for database access
            cache: Cache to invalidate when counts were corrected
        """
        self.db_session_factory = db_session_factory
        self.cache = cache
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(service="recount_scheduler")

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            self.logger.info("scheduler_started")
        else:
            self.logger.warning("scheduler_already_running")

    def stop(self) -> None:
        """Stop the scheduler, waiting for a running recount to finish."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            self.logger.info("scheduler_stopped")

    def add_recount_job(self, interval_minutes: int) -> Optional[Job]:
        """Schedule the recount every ``interval_minutes`` minutes.

        Returns:
            APScheduler Job instance, or None when the interval disables the job
        """
        if interval_minutes <= 0:
            self.logger.info("recount_job_disabled")
            return None

        trigger = IntervalTrigger(
            minutes=interval_minutes,
            start_date=datetime.now(timezone.utc),
            timezone="UTC",
        )
        job = self.scheduler.add_job(
            func=self._run_recount_wrapper,
            trigger=trigger,
            id=RECOUNT_JOB_ID,
            name="Recount category products",
            replace_existing=True,
            max_instances=1,
        )

        self.logger.info(
            "recount_job_added",
            interval_minutes=interval_minutes,
            next_run=job.next_run_time.isoformat() if job.next_run_time else None,
        )
        return job

    async def _run_recount_wrapper(self) -> None:
        try:
            await self.run_recount()
        except Exception as e:
            self.logger.error("recount_job_failed", error=str(e), exc_info=True)

    async def run_recount(self) -> dict:
        """Recount every category in its own session and commit.

        Returns:
            Dict with the number of categories scanned and corrected
        """
        started = datetime.now(timezone.utc)

        async with self.db_session_factory() as db:
            synchronizer = AggregateSynchronizer(
                SQLAlchemyCategoryRepository(db),
                SQLAlchemyProductRepository(db),
            )
            summary = await synchronizer.reconcile_all()
            await db.commit()

        if summary["corrected"] and self.cache is not None:
            await invalidate_categories_cache(self.cache)

        self.logger.info(
            "recount_job_completed",
            duration_seconds=round((datetime.now(timezone.utc) - started).total_seconds(), 2),
            **summary,
        )
        return summary

    def is_running(self) -> bool:
        return self.scheduler.running
