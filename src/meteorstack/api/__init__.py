"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- /stats, /random, /get, /search - Meteorite dataset queries (rate limited)
- /metrics - Prometheus metrics
- /healthz, /readyz - Health checks
"""
from .healthz import router as healthz_router
from .meteorites import router as meteorites_router
from .metrics import router as metrics_router

__all__ = ["healthz_router", "meteorites_router", "metrics_router"]
