"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db
from app.schemas import HealthCheckResponse
from app.services.cache_service import CacheService, get_cache
from app.services.email_service import EmailService, get_email_service

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    email: EmailService = Depends(get_email_service),
):
    """Return service health status.

    The database is required; Redis and SMTP are optional, so their
    failure reports ``degraded`` rather than an error.
    """
    services = {}

    try:
        await db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {str(e)}"
    services["database"] = db_status

    redis_status = "ok" if await cache.health_check() else "error: ping failed"
    services["redis"] = redis_status

    services["email"] = "ok" if email.enabled else "disabled"

    if db_status != "ok":
        overall_status = "error"
    elif redis_status != "ok":
        overall_status = "degraded"
    else:
        overall_status = "ok"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        redis=redis_status,
        services=services,
    )
