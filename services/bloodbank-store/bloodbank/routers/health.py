from fastapi import APIRouter, Depends, HTTPException, Request, Response
from datetime import datetime
import time
import structlog

from ..models.records import HealthCheckResponse, MetricsResponse
from ..services.facade import BloodBankStore
from ..core.config import settings
from ..utils.monitoring import get_prometheus_metrics, update_inventory_metrics

logger = structlog.get_logger()
router = APIRouter(prefix="/health", tags=["health"])

# Store service start time for uptime calculation
SERVICE_START_TIME = time.time()


def get_store(request: Request) -> BloodBankStore:
    """Store dependency; the application lifespan puts it on ``app.state``."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Store not initialised")
    return store


@router.get("/", response_model=HealthCheckResponse)
async def health_check(store: BloodBankStore = Depends(get_store)):
    """
    Health check endpoint.

    Reports which backend serves requests. Running on the fallback store is
    a degraded but working state.
    """
    connected = store.is_connected()

    return HealthCheckResponse(
        status="healthy" if connected else "degraded",
        version=settings.APP_VERSION,
        backend=store.backend.name,
        primary_status="connected" if connected else "unreachable",
        fallback_file=None if connected else store.fallback.path,
        uptime_seconds=time.time() - SERVICE_START_TIME
    )


@router.get("/live")
async def liveness_probe():
    """
    Kubernetes liveness probe endpoint.
    Simple check to verify the service is running.
    """
    return {"status": "alive", "timestamp": datetime.now().isoformat()}


@router.get("/ready")
async def readiness_probe(store: BloodBankStore = Depends(get_store)):
    """
    Kubernetes readiness probe endpoint.
    Either backend can serve requests, so an initialised store is ready.
    """
    return {
        "status": "ready",
        "backend": store.backend.name,
        "timestamp": datetime.now().isoformat()
    }


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(store: BloodBankStore = Depends(get_store)):
    """
    Get service metrics for monitoring.

    Returns:
    - Pending blood requests
    - Active volunteers
    - Inventory units per blood type
    """
    distribution = await store.inventory.distribution()
    update_inventory_metrics(distribution)

    return MetricsResponse(
        active_requests=len(await store.requests.get_active()),
        active_volunteers=len(await store.volunteers.get_active()),
        blood_type_distribution=distribution
    )


@router.get("/prometheus")
async def prometheus_metrics():
    """Prometheus scrape endpoint."""
    return Response(content=get_prometheus_metrics(), media_type="text/plain; version=0.0.4")


@router.get("/version")
async def get_version():
    """Get service version information."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "api_version": settings.API_V1_STR,
        "build_time": datetime.now().isoformat()
    }
