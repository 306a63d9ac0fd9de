"""Services module for business logic and data operations.

This module contains service classes that implement the business logic of
the Tradeline catalog: the category hierarchy, product counts, products,
accounts and the message inbox.
"""

from app.services.hierarchy import HierarchyMaintainer
from app.services.aggregates import AggregateSynchronizer
from app.services.category_service import CategoryService
from app.services.product_service import ProductService
from app.services.auth_service import AuthService
from app.services.email_service import EmailService
from app.services.message_service import MessageService
from app.services.dashboard_service import DashboardService

__all__ = [
    "HierarchyMaintainer",
    "AggregateSynchronizer",
    "CategoryService",
    "ProductService",
    "AuthService",
    "EmailService",
    "MessageService",
    "DashboardService",
]
