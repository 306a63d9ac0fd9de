"""Dashboard figures for the admin overview page."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.dashboard import DashboardOverview
from app.services.category_service import CategoryService
from app.services.email_service import EmailService
from app.services.message_service import MessageService
from app.services.product_service import ProductService

logger = structlog.get_logger(__name__)


class DashboardService:
    """Assembles catalog and inbox statistics in one payload."""

    def __init__(self, db: AsyncSession, email: EmailService):
        self.categories = CategoryService(db)
        self.products = ProductService(db)
        self.messages = MessageService(db, email)
        self.logger = logger.bind(service="dashboard_service")

    async def get_overview(self) -> DashboardOverview:
        overview = DashboardOverview(
            categories=await self.categories.get_global_stats(),
            products=await self.products.get_global_stats(),
            messages=await self.messages.get_stats(),
        )
        self.logger.debug(
            "dashboard_overview_built",
            categories=overview.categories.total_categories,
            products=overview.products.total_products,
            messages=overview.messages.total,
        )
        return overview
