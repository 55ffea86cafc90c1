"""Health Checks — liveness and database readiness for the container platform.

Invariants:
    - GET /api/v1/health/ answers 200 whenever the process serves requests
    - GET /api/v1/health/ready answers 503 until a SELECT 1 round-trips

Design Decisions:
    - db_manager read through the module on every call: lifespan assigns it
      after this router is imported
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

import lanpapp.infrastructure.database as db_module

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE = {"service": "lanpapp-api", "version": "1.0.0"}


@router.get("/")
async def liveness():
    return {"status": "healthy", **SERVICE}


@router.get("/ready")
async def readiness():
    manager = db_module.db_manager
    if manager is not None and await manager.health_check():
        return {"status": "ready", "checks": {"database": "healthy"}, **SERVICE}
    logger.warning("Readiness check failed: database unavailable")
    return JSONResponse(
        status_code=503,
        content={"status": "not_ready", "reason": "database_unavailable"},
    )
