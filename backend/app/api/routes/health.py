"""Health Probes — liveness for restarts, readiness for load-balancer membership.

Invariants:
    - GET /api/v1/health/ is 200 whenever the process serves requests
    - GET /api/v1/health/ready is 503 only when the database is unreachable
    - Counter store is reported as healthy / unavailable / disabled and never
      fails readiness (the limiter and cache fail open without it)
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from app.infrastructure import database

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "support-chat-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness probe — database connectivity plus counter store status."""
    db_ok = (
        await database.db_manager.health_check()
        if database.db_manager else False
    )
    counter_store = await _counter_store_status(request)
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
                "checks": {"database": "unavailable", "counter_store": counter_store},
            },
        )
    return {
        "status": "ready",
        "checks": {"database": "healthy", "counter_store": counter_store},
    }


async def _counter_store_status(request: Request) -> str:
    store = getattr(request.app.state, "counter_store", None)
    if store is None or not store.configured:
        return "disabled"
    return "healthy" if await store.health_check() else "unavailable"
