"""
Liveness and readiness probes.
"""
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, status

from pricetalk.database.connections import DEPENDENCY_PINGS

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

STARTED_AT = time.monotonic()


@router.get("/health", status_code=status.HTTP_200_OK, summary="Liveness probe")
async def health_check():
    """Always 200 while the process serves requests; uptime is in seconds."""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": time.monotonic() - STARTED_AT,
    }


@router.get("/health/ready", status_code=status.HTTP_200_OK, summary="Readiness probe")
async def readiness_check():
    """
    Ping every backing store.

    The response stays 200 either way; "degraded" tells the orchestrator
    which dependency is unreachable.
    """
    checks = {"api": "healthy"}

    for name, ping in DEPENDENCY_PINGS.items():
        try:
            await ping()
            checks[name] = "healthy"
        except Exception as e:
            logger.warning("Readiness check for %s failed: %s", name, e)
            checks[name] = f"unhealthy: {e}"

    all_healthy = all(v == "healthy" for v in checks.values())

    return {
        "status": "healthy" if all_healthy else "degraded",
        "checks": checks,
    }
