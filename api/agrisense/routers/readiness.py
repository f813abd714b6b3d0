from __future__ import annotations
import time
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from agrisense.deps.pipeline import get_pipeline
from agrisense.obs.logging_setup import get_logger
from agrisense.services.pipeline import AdvisoryPipeline

logger = get_logger(__name__)

router = APIRouter(tags=["health"])

@router.get("/ready")
async def readiness_check(pipeline: AdvisoryPipeline = Depends(get_pipeline)) -> JSONResponse:
    """
    Kubernetes-style readiness probe.

    Missing provider credentials only degrade the answer quality (the fallback
    tiers still answer), so they are reported but do not fail the probe. An
    unreachable job store does.
    """
    start_time = time.time()
    checks = {}

    try:
        store_health = await pipeline.lifecycle.store.health_check()
    except Exception as e:
        store_health = {"status": "unhealthy", "error": str(e)}
    checks["job_store"] = store_health

    availability = pipeline.provider_availability()
    checks["providers"] = {
        "status": "healthy" if all(availability.values()) else "degraded",
        **availability
    }
    checks["generation"] = {"status": "healthy", "active_tasks": pipeline.active_tasks}

    ready = store_health.get("status") == "healthy"
    if not ready:
        logger.warning("Readiness check failed", checks=checks)

    return JSONResponse({
        "status": "ready" if ready else "not_ready",
        "timestamp": time.time(),
        "checks": checks,
        "response_time_ms": round((time.time() - start_time) * 1000, 2)
    }, status_code=200 if ready else 503)

@router.get("/live")
async def liveness_check() -> JSONResponse:
    """Kubernetes-style liveness probe."""
    return JSONResponse({
        "status": "alive",
        "timestamp": time.time(),
        "service": "agrisense-advisory",
        "version": "1.0.0"
    })
