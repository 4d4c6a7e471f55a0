"""
Health check endpoints for monitoring and orchestration.

- /health, /health/live: liveness, always 200 while the process serves requests
- /health/db: database connectivity
- /health/ready: readiness, 503 until every dependency answers
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.api.deps import get_db_session

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_NAME = "tour-booking-api"


async def _database_ok(session: AsyncSession) -> bool:
    try:
        result = await session.execute(text("SELECT 1"))
        result.scalar()
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database health check failed", exc_info=e)
        return False
    return True


@router.get("/health")
async def health_check():
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/health/live")
async def health_check_live():
    """Alias of /health for orchestrators that expect the /live name."""
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/health/db")
async def health_check_db(session: AsyncSession = Depends(get_db_session)):
    if not await _database_ok(session):
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "component": "database",
                "error": "Database connection failed",
            },
        )
    return {"status": "healthy", "component": "database"}


@router.get("/health/ready")
async def health_check_ready(session: AsyncSession = Depends(get_db_session)):
    checks = {"database": "healthy"}
    if not await _database_ok(session):
        checks["database"] = "unhealthy"
        return JSONResponse(status_code=503, content={"status": "not_ready", "checks": checks})
    return {"status": "ready", "checks": checks}
