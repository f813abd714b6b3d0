from __future__ import annotations
from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse, Response
from agrisense.deps.pipeline import peek_pipeline
from agrisense.obs.metrics import metrics_registry
from agrisense.obs.prometheus_metrics import prometheus_metrics
from agrisense.obs.logging_setup import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["metrics"])

@router.get("/metrics")
async def get_metrics() -> JSONResponse:
    """Get application metrics in JSON format."""
    try:
        metrics_data = metrics_registry.get_metrics()
        pipeline = peek_pipeline()
        metrics_data["pipeline"] = {
            "active_tasks": pipeline.active_tasks if pipeline else 0
        }
        return JSONResponse(metrics_data)
    except Exception as e:
        logger.error("Failed to collect metrics", error=str(e))
        return JSONResponse(
            {"error": "Failed to collect metrics", "detail": str(e)},
            status_code=500
        )

@router.get("/metrics/prometheus")
async def prometheus_metrics_endpoint():
    """Prometheus metrics endpoint."""
    try:
        pipeline = peek_pipeline()
        if pipeline is not None:
            prometheus_metrics.update_active_jobs(pipeline.active_tasks)

        return Response(
            content=prometheus_metrics.get_prometheus_metrics(),
            media_type=prometheus_metrics.get_content_type()
        )
    except Exception as e:
        logger.error("Prometheus metrics error", error=str(e))
        raise HTTPException(status_code=500, detail="Metrics collection failed")
