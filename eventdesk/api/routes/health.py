"""Health & Readiness Probes.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if the desk is not loaded or the data dir is missing
"""

import logging
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "eventdesk-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness probe: store loaded and data directory present."""
    desk = getattr(request.app.state, "desk", None)
    settings = getattr(request.app.state, "settings", None)
    storage_ok = settings is not None and settings.data_dir.is_dir()
    if desk is None or not storage_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "store_unavailable" if desk is None else "data_dir_missing",
            },
        )
    return {"status": "ready", "checks": {"store": "loaded", "storage": "healthy"}}
