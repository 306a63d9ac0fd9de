"""Admin dashboard endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db, require_permission
from app.models.user import User
from app.schemas import ApiResponse
from app.services.dashboard_service import DashboardService
from app.services.email_service import EmailService, get_email_service

router = APIRouter()


@router.get("/overview", response_model=ApiResponse)
async def get_overview(
    db: AsyncSession = Depends(get_db),
    email: EmailService = Depends(get_email_service),
    _: User = Depends(require_permission("view_analytics")),
):
    """Category, product and inbox statistics in one payload."""
    overview = await DashboardService(db, email).get_overview()
    return ApiResponse(status="success", data=overview)
