"""
Health check endpoint.

Provides system health status for monitoring and load balancers.
"""

import logging

from fastapi import APIRouter
from sqlalchemy import text

from facturier import __version__
from facturier.api.schemas import HealthResponse
from facturier.config import get_settings
from facturier.infrastructure.database import get_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Check system health.

    Reports whether the sequence counter database answers. With the
    in-memory counter backend no database is involved.
    """
    settings = get_settings()

    if settings.sequence_backend == "memory":
        database = "not used"
    else:
        try:
            async with get_session() as session:
                await session.execute(text("SELECT 1"))
            database = "connected"
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            database = "unavailable"

    return HealthResponse(
        status="healthy" if database != "unavailable" else "degraded",
        version=__version__,
        database=database,
        sequence_backend=settings.sequence_backend,
    )
