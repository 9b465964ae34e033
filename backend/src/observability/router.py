"""Observability API endpoints.

Provides metrics, health checks, and readiness probes for monitoring.
"""

import logging

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from database import get_db
from domain.matching import IntelligenceOraclePort
from matching.dependencies import get_oracle
from .health import (
    check_database_health,
    check_oracle_health,
    get_overall_health,
    HealthStatus,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    """Expose Prometheus metrics in exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Returns health status of the database and the configured oracle",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    oracle: IntelligenceOraclePort = Depends(get_oracle)
):
    """Check health of all system components.

    Returns 200 if the database is reachable (even when the oracle is
    degraded), 503 otherwise.
    """
    components = {
        "database": await check_database_health(db),
        "oracle": check_oracle_health(oracle.name),
    }
    overall_status = get_overall_health(components)

    response_data = {
        "status": overall_status.value,
        "components": {
            name: {
                "status": comp.status.value,
                "message": comp.message,
                "latency_ms": comp.latency_ms,
            }
            for name, comp in components.items()
        }
    }

    status_code = 200 if overall_status != HealthStatus.UNHEALTHY else 503
    return JSONResponse(content=response_data, status_code=status_code)


@router.get(
    "/ready",
    summary="Readiness check endpoint",
    description="Returns readiness status (for Kubernetes readiness probes)",
)
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Ready once the database answers."""
    db_health = await check_database_health(db)

    if db_health.status == HealthStatus.HEALTHY:
        return {
            "status": "ready",
            "message": "Application is ready to serve traffic"
        }
    return JSONResponse(
        content={
            "status": "not_ready",
            "message": db_health.message
        },
        status_code=503
    )
