"""Liveness plus a database round trip, for container and load balancer probes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from escrow_platform.api.deps import get_database
from escrow_platform.infrastructure.database.engine import Database
from escrow_platform.logging_config import get_logger
from escrow_platform.schemas.users import HealthResponse

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Reports whether the service can reach its database.",
)
async def health_check(database: Database = Depends(get_database)) -> HealthResponse:
    """Check connectivity to the database."""
    try:
        await database.ping()
        db_status = "healthy"
    except Exception as exc:
        db_status = f"unhealthy: {exc}"
        logger.error("health.db_check_failed", error=str(exc))

    return HealthResponse(
        status="ok" if db_status == "healthy" else "degraded",
        version="0.1.0",
        database=db_status,
    )
