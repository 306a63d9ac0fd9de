"""Repository interfaces and their SQLAlchemy implementations."""

from app.repositories.base import CategoryRepository, ProductRepository
from app.repositories.category_repository import SQLAlchemyCategoryRepository
from app.repositories.product_repository import SQLAlchemyProductRepository

__all__ = [
    "CategoryRepository",
    "ProductRepository",
    "SQLAlchemyCategoryRepository",
    "SQLAlchemyProductRepository",
]
