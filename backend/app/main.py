"""Tradeline Backend -- FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1.router import api_v1_router
from app.config import settings
from app.core.exceptions import TradelineException
from app.db.seed import seed_all
from app.db.session import async_session_factory, engine
from app.jobs.scheduler import RecountScheduler
from app.models import Base
from app.schemas.common import ErrorDetail, ErrorResponse
from app.services.cache_service import get_cache_service

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.DEBUG else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[RecountScheduler] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    global scheduler

    # Startup
    logger.info("Starting Tradeline API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    # Auto-create tables and seed defaults (safe for fresh deployments)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables verified/created")

        await seed_all()
    except Exception as e:
        logger.error(f"Database init failed: {e}", exc_info=True)

    cache = get_cache_service()
    if await cache.health_check():
        logger.info("Redis cache connected successfully")
    else:
        logger.warning("Redis cache connection failed (will operate without caching)")

    # Start recount scheduler (only in non-test environments)
    if settings.ENVIRONMENT != "test":
        scheduler = RecountScheduler(async_session_factory, cache=cache)
        scheduler.start()
        scheduler.add_recount_job(settings.CATEGORY_RECOUNT_INTERVAL_MINUTES)
    else:
        logger.info("Scheduler disabled (test environment)")

    yield

    # Shutdown
    logger.info("Shutting down Tradeline API server...")

    if scheduler:
        scheduler.stop()

    try:
        await cache.close()
    except Exception as e:
        logger.warning(f"Error closing cache: {e}")

    await engine.dispose()


app = FastAPI(
    title="Tradeline API",
    description="Catalog, inquiries and back office for an import/export trading business",
    version="0.1.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(TradelineException)
async def tradeline_exception_handler(request: Request, exc: TradelineException) -> JSONResponse:
    """Render domain errors in the standard error envelope."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return _error_response(exc.status_code, exc.code, exc.message)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return _error_response(500, "database_error", "A database error occurred")


# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Tradeline API",
        "version": "0.1.0",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
