"""Seed the base data needed by the Tradeline application.

1. Categories - the default trade taxonomy (roots and subcategories)
2. Administrator - from ADMIN_EMAIL / ADMIN_PASSWORD

Usage:
    python scripts/seed_all.py
"""

import asyncio
import sys
import os

# Add backend to path so we can import app modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from app.db.seed import seed_admin, seed_categories
from app.db.session import async_session_factory, engine
from app.models import Base


async def main():
    """Create tables if needed, then run all seeding steps in one transaction."""
    print("\n" + "=" * 60)
    print("  Tradeline Database Seeding")
    print("=" * 60 + "\n")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        created = await seed_categories(session)
        admin_created = await seed_admin(session)
        await session.commit()

    print(f"  Categories created: {created}")
    print(f"  Administrator created: {'yes' if admin_created else 'no'}")
    print("\n  Next: cd backend && uvicorn app.main:app --reload\n")


if __name__ == "__main__":
    asyncio.run(main())
