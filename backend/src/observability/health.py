"""Health check utilities for the matching service.

The database is the only hard dependency; the oracle degrades to the local
fallback heuristic and so is reported but never makes the service unhealthy.
"""

import time
import logging
from enum import Enum
from typing import Dict, Optional
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health check status enum."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


async def check_database_health(db: AsyncSession) -> ComponentHealth:
    """Check database connectivity with a trivial query.

    Args:
        db: Database session

    Returns:
        ComponentHealth: Database health status
    """
    try:
        start = time.perf_counter()
        await db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return ComponentHealth(
            status=HealthStatus.HEALTHY,
            message="Database connection OK",
            latency_ms=round(latency_ms, 2)
        )
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message=f"Database error: {str(e)}"
        )


def check_oracle_health(oracle_name: str) -> ComponentHealth:
    """Report which oracle is wired in.

    The offline oracle is reported as degraded so dashboards can tell
    model-backed scoring from word-overlap scoring.
    """
    if oracle_name == "word_overlap":
        return ComponentHealth(
            status=HealthStatus.DEGRADED,
            message="No OpenAI key configured, using word-overlap oracle"
        )
    return ComponentHealth(status=HealthStatus.HEALTHY, message=f"Oracle: {oracle_name}")


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Determine overall system health from component statuses.

    Args:
        components: Dictionary of component name to health status

    Returns:
        HealthStatus: UNHEALTHY if any component is unhealthy,
            DEGRADED if any is degraded, else HEALTHY
    """
    statuses = [comp.status for comp in components.values()]
    if HealthStatus.UNHEALTHY in statuses:
        return HealthStatus.UNHEALTHY
    if HealthStatus.DEGRADED in statuses:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY
