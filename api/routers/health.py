# WORKFLOW: Health check endpoints for monitoring and operational status.
# Used by: Load balancers, monitoring systems, operational dashboards
# Endpoints:
# 1. /healthz - Basic health check (always returns healthy)
# 2. /readyz - Readiness check against the database
# 3. /livez - Liveness check for Kubernetes probes
#
# Readiness flow: Readiness check -> Database connectivity -> Ready (200) / Not ready (503)

from fastapi import APIRouter, Request, Response, status
import logging
from datetime import datetime, timezone

from api.schemas.response import HealthStatus, ReadinessStatus
from db.session import check_db_connection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/healthz", response_model=HealthStatus)
async def health_check(request: Request):
    """
    Basic health check endpoint.

    Returns:
        Health status of the API
    """
    settings = request.app.state.settings
    return HealthStatus(
        status="healthy",
        timestamp=_now(),
        version=settings.version,
        environment=settings.environment,
    )


@router.get("/readyz", response_model=ReadinessStatus)
def readiness_check(request: Request, response: Response):
    """
    Readiness check endpoint.

    The service is ready once the database answers a trivial query.
    """
    checks = {"database": check_db_connection(request.app.state.database)}
    is_ready = all(checks.values())
    if not is_ready:
        logger.warning(f"Readiness check failed: {checks}")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessStatus(
        status="ready" if is_ready else "not_ready",
        timestamp=_now(),
        checks=checks,
        version=request.app.state.settings.version,
    )


@router.get("/livez")
async def liveness_check():
    """
    Liveness check endpoint.

    Used by Kubernetes liveness probes.
    """
    return {
        "status": "alive",
        "timestamp": _now(),
    }
