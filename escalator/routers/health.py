"""Health check endpoints for container orchestration."""

from typing import Any

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse

from escalator.database import check_database_connection
from escalator.services.scheduler import get_scheduler

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=None)
async def health_check() -> Response:
    """Report database connectivity and whether the scheduler is running.

    Returns 503 when the database is unreachable.
    """
    db_connected = await check_database_connection()
    instance = get_scheduler()
    scheduler_state = "running" if instance and instance.running else "stopped"

    if db_connected:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "status": "healthy",
                "database": "connected",
                "scheduler": scheduler_state,
            },
        )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "degraded",
            "database": "disconnected",
            "scheduler": scheduler_state,
        },
    )


@router.get("/health/live")
async def liveness_probe() -> dict[str, Any]:
    """Liveness probe; does not touch external dependencies."""
    return {"status": "alive"}
