"""
Health check endpoints.

- /healthz: Liveness probe (always 200 if service alive)
- /readyz: Readiness probe (200 only if configured and the dataset is cached)
"""

from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Request, Response, status

from ..config import get_settings
from ..core.cache import CacheState

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/healthz",
    status_code=200,
    summary="Liveness probe",
)
async def liveness_check() -> Dict[str, Any]:
    """
    Liveness probe - always returns 200 if service is alive.
    """
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "meteorstack",
        "version": "0.1.0",
    }


@router.get(
    "/readyz",
    summary="Readiness probe",
    description="""
    Readiness probe endpoint.

    Returns 200 only if credentials and tunables are valid and the dataset
    has been loaded into the cache. Never triggers a dataset load.
    """,
)
async def readiness_check(request: Request, response: Response) -> Dict[str, Any]:
    settings = get_settings()
    checks: Dict[str, Any] = {
        "missing_credentials": settings.missing_credentials(),
        "invalid_tunables": settings.invalid_tunables(),
    }

    cache = getattr(request.app.state, "dataset_cache", None)
    checks["dataset"] = cache.state.value if cache is not None else "uninitialized"

    ready = (
        not checks["missing_credentials"]
        and not checks["invalid_tunables"]
        and checks["dataset"] == CacheState.READY.value
    )

    if not ready:
        logger.debug("Readiness check failed", checks=checks)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        checks["records"] = cache.size

    return {
        "status": "ready" if ready else "not_ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
