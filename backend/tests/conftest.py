"""Pytest configuration and shared fixtures."""

import os

# Must be set before any app module reads settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("MAIL_SERVER", "")

from decimal import Decimal
from typing import Dict, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base, Category, Product, User
from app.schemas.category import CategoryCreate
from app.schemas.product import ProductCreate
from app.services.auth_service import AuthService
from app.services.category_service import CategoryService
from app.services.email_service import EmailService
from app.services.product_service import ProductService


class FakeCache:
    """In-memory stand-in for CacheService."""

    def __init__(self):
        self.store: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        self.store[key] = value
        return True

    async def delete(self, key: str) -> bool:
        return self.store.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        prefix = pattern.rstrip("*")
        keys = [k for k in self.store if k.startswith(prefix)]
        for key in keys:
            del self.store[key]
        return len(keys)

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        pass


# ============================================================================
# FIXTURES
# ============================================================================

@pytest_asyncio.fixture
async def test_db():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with SessionLocal() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def mailer() -> AsyncMock:
    """FastMail double: send_message succeeds unless a test says otherwise."""
    mock = AsyncMock()
    mock.send_message = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def email_service(mailer: AsyncMock) -> EmailService:
    return EmailService(mailer=mailer)


@pytest.fixture
def category_service(test_db: AsyncSession, fake_cache: FakeCache) -> CategoryService:
    return CategoryService(test_db, fake_cache)


@pytest.fixture
def product_service(test_db: AsyncSession, fake_cache: FakeCache) -> ProductService:
    return ProductService(test_db, fake_cache)


@pytest.fixture
def make_category(category_service: CategoryService):
    """Factory creating a category, optionally under a parent."""

    async def _make(name: str, parent: Optional[Category] = None, **fields) -> Category:
        return await category_service.create_category(
            CategoryCreate(name=name, parent_id=parent.id if parent else None, **fields)
        )

    return _make


@pytest.fixture
def make_product(product_service: ProductService):
    """Factory creating a product in a category."""

    async def _make(name: str, category: Category, **fields) -> Product:
        data = {
            "name": name,
            "description": f"{name} from Cameroon",
            "category_id": category.id,
            "base_price": Decimal("1000.00"),
            "stock_quantity": 100,
        }
        data.update(fields)
        return await product_service.create_product(ProductCreate(**data))

    return _make


@pytest_asyncio.fixture
async def sample_category(make_category) -> Category:
    """Create a sample root category for testing."""
    return await make_category("Farines", icon="wheat")


@pytest_asyncio.fixture
async def admin_user(test_db: AsyncSession) -> User:
    """Create an administrator account."""
    user = await AuthService(test_db).register(
        email="admin@example.com",
        first_name="Ada",
        last_name="Admin",
        password="secret123",
        role="admin",
    )
    await test_db.commit()
    return user


@pytest_asyncio.fixture
async def customer_user(test_db: AsyncSession) -> User:
    """Create a customer account."""
    user = await AuthService(test_db).register(
        email="buyer@example.com",
        first_name="Bea",
        last_name="Buyer",
        password="secret123",
    )
    await test_db.commit()
    return user
