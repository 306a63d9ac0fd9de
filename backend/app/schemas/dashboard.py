"""Dashboard schemas."""

from pydantic import BaseModel

from app.schemas.category import CategoryStats
from app.schemas.message import MessageStats
from app.schemas.product import ProductStats


class DashboardOverview(BaseModel):
    """Combined catalog and inbox figures for the admin dashboard."""

    categories: CategoryStats
    products: ProductStats
    messages: MessageStats
