"""
Health Check Endpoints.

Provides liveness, readiness, and detailed health checks.

Endpoints:
- /health: Liveness check (process running)
- /health/ready: Readiness check (event store reachable)
- /health/detailed: Component-by-component status (for debugging)
"""

from typing import Any

from fastapi import APIRouter, HTTPException

from event_mesh.core.dependencies import Mesh
from event_mesh.core.exceptions import ApplicationError
from event_mesh.core.logging import get_logger
from event_mesh.core.utils import utc_now
from event_mesh.stores.base import EventStore

router = APIRouter()
logger = get_logger(__name__)


async def check_event_store(store: EventStore) -> dict[str, Any]:
    """
    Check that an event store answers a count query.

    Returns:
        Dict with backend name, status, latency, and optional error message
    """
    start = utc_now()
    try:
        count = await store.count()
    except ApplicationError as e:
        logger.warning(
            "Event store health check failed",
            extra={"store": store.name, "error": e.message},
        )
        return {"backend": store.name, "status": "unhealthy", "error": e.message}

    latency_ms = int((utc_now() - start).total_seconds() * 1000)
    return {
        "backend": store.name,
        "status": "healthy",
        "latency_ms": latency_ms,
        "events": count,
    }


@router.get("/health")
async def health_check() -> dict[str, str]:
    """
    Liveness check.

    Returns 200 if the process is running.
    No dependency checks - this endpoint should always respond quickly.
    """
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check(mesh: Mesh) -> dict[str, Any]:
    """
    Readiness check.

    Returns 503 if the primary event store is unhealthy. A durable backend
    with an in-memory fallback still accepts publishes when unhealthy, but
    reads would fail, so the service is not ready.
    """
    result = await check_event_store(mesh.stores.events)

    if result["status"] == "unhealthy":
        logger.warning("Readiness check failed", extra={"checks": result})
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "checks": {"event_store": result},
                "timestamp": utc_now().isoformat(),
            },
        )

    return {
        "status": "healthy",
        "checks": {"event_store": result},
        "timestamp": utc_now().isoformat(),
    }


@router.get("/health/detailed")
async def detailed_health_check(mesh: Mesh) -> dict[str, Any]:
    """
    Detailed health check.

    Reports the primary store and, when configured, the in-memory fallback
    store that holds events written while the primary was unreachable.
    """
    checks = {"event_store": await check_event_store(mesh.stores.events)}

    fallback = mesh.stores.fallback_events
    if fallback is not None:
        checks["fallback_event_store"] = await check_event_store(fallback)

    try:
        from event_mesh.core.config import get_app_config

        app_settings = get_app_config().application
        app_info = {
            "name": app_settings.name,
            "env": app_settings.environment,
            "debug": app_settings.debug,
            "version": app_settings.version,
        }
    except (RuntimeError, FileNotFoundError, ValueError):
        app_info = {"status": "not_configured"}

    overall_status = (
        "unhealthy" if checks["event_store"]["status"] == "unhealthy" else "healthy"
    )
    degraded = fallback is not None and checks["fallback_event_store"].get("events", 0) > 0

    return {
        "status": overall_status,
        "degraded": degraded,
        "application": app_info,
        "checks": checks,
        "timestamp": utc_now().isoformat(),
    }
