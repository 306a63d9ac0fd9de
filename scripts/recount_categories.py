"""Recompute every category's product count once.

Same pass as the scheduled recount job, for use after bulk imports or
manual database edits.

Usage:
    python scripts/recount_categories.py
"""

import asyncio
import sys
import os

# Add backend to path so we can import app modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from app.db.session import async_session_factory
from app.jobs.scheduler import RecountScheduler
from app.services.cache_service import get_cache_service


async def main():
    scheduler = RecountScheduler(async_session_factory, cache=get_cache_service())
    summary = await scheduler.run_recount()

    print(f"  Categories scanned: {summary['categories']}")
    print(f"  Counts corrected:   {summary['corrected']}")

    await get_cache_service().close()


if __name__ == "__main__":
    asyncio.run(main())
