"""Database seeding for development and first deployments.

Populates the product taxonomy and the initial administrator.
Run with: python -m app.db.seed
"""

import asyncio

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db.session import async_session_factory
from app.models import Category
from app.schemas.category import CategoryCreate
from app.services.auth_service import AuthService
from app.services.category_service import CategoryService

logger = structlog.get_logger(__name__)

# (name, icon, subcategories)
CATEGORY_TREE = [
    ("Farines", "wheat", ["Farine de manioc", "Farine de maïs", "Farine de plantain"]),
    ("Céréales", "grain", ["Maïs", "Riz", "Sorgho"]),
    ("Épices & Condiments", "pepper", ["Poivre de Penja", "Piment", "Gingembre"]),
    ("Produits Transformés", "package", ["Huiles", "Conserves"]),
    ("Produits Bruts", "leaf", ["Cacao", "Café", "Arachides"]),
]


async def seed_categories(session: AsyncSession) -> int:
    """Create the default category tree unless categories already exist.

    Returns:
        Number of categories created
    """
    result = await session.execute(select(Category).limit(1))
    if result.scalar_one_or_none():
        logger.info("categories_already_seeded")
        return 0

    service = CategoryService(session)
    created = 0

    for order, (name, icon, children) in enumerate(CATEGORY_TREE):
        root = await service.create_category(
            CategoryCreate(name=name, icon=icon, display_order=order, featured=order < 3)
        )
        created += 1
        for child_order, child_name in enumerate(children):
            await service.create_category(
                CategoryCreate(name=child_name, parent_id=root.id, display_order=child_order)
            )
            created += 1

    logger.info("categories_seeded", count=created)
    return created


async def seed_admin(session: AsyncSession) -> bool:
    """Create the administrator account from ADMIN_EMAIL / ADMIN_PASSWORD.

    Skipped when no password is configured or an admin already exists.
    """
    if not settings.ADMIN_PASSWORD:
        logger.info("admin_seed_skipped", reason="ADMIN_PASSWORD not set")
        return False

    admin = await AuthService(session).ensure_admin(settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
    if admin is not None:
        logger.info("admin_seeded", email=admin.email)
    return admin is not None


async def seed_all() -> None:
    """Run all seeding steps in one transaction."""
    async with async_session_factory() as session:
        await seed_categories(session)
        await seed_admin(session)
        await session.commit()


if __name__ == "__main__":
    asyncio.run(seed_all())
