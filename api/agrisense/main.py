from __future__ import annotations
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

# Import observability setup
from .obs.otel import setup_tracing
from .obs.logging_setup import setup_logging, get_logger
from .obs.middleware import MetricsMiddleware

# Import configuration and wiring
from .config import LOG_STRUCTURED, CORS_ORIGINS
from .deps.pipeline import get_pipeline, peek_pipeline

# Import middleware
from .middleware.request_id import RequestIDMiddleware

# Import routers
from .routers import health, metrics, query, readiness, rooms

logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan with startup and shutdown logic."""

    # Startup
    setup_logging(structured=LOG_STRUCTURED)
    setup_tracing()

    pipeline = get_pipeline()
    logger.info("AgriSense advisory service ready", providers=pipeline.provider_availability())

    yield

    # Shutdown
    logger.info("AgriSense advisory service shutting down")
    pipeline = peek_pipeline()
    if pipeline is not None:
        await pipeline.shutdown()
        store = pipeline.lifecycle.store
        if hasattr(store, "close"):
            await store.close()

    try:
        from opentelemetry import trace
        tracer_provider = trace.get_tracer_provider()
        if hasattr(tracer_provider, 'shutdown'):
            tracer_provider.shutdown()
    except Exception as e:
        logger.error("Error during telemetry shutdown", error=str(e))

# Create FastAPI app with lifespan
app = FastAPI(
    title="AgriSense Advisory",
    version="1.0.0",
    description="Agricultural advisory service: text questions and plant photos answered through fallback inference chains",
    lifespan=lifespan
)

# Request ID middleware
app.add_middleware(RequestIDMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware (before FastAPI instrumentation)
app.add_middleware(MetricsMiddleware)

# Auto-instrument FastAPI with OpenTelemetry
FastAPIInstrumentor.instrument_app(
    app,
    excluded_urls="/health,/ready,/live,/metrics/prometheus,/rooms/.*/stream"
)

# Include routers
app.include_router(health.router)
app.include_router(readiness.router)
app.include_router(query.router)
app.include_router(rooms.router)
app.include_router(metrics.router)

@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": "AgriSense Advisory",
        "version": "1.0.0",
        "features": [
            "Text questions answered by an LLM with a keyword fallback",
            "Plant disease identification with three fallback tiers",
            "Knowledge-base context for answers",
            "Localized reports (Hindi and Malayalam fallbacks)",
            "Asynchronous jobs with polling and live room delivery",
            "OpenTelemetry tracing, Prometheus metrics, Langfuse LLM tracking"
        ],
        "endpoints": {
            "query": "POST /query - Submit a text question",
            "query_image": "POST /query/image - Submit a plant photo",
            "query_status": "GET /query/{job_id} - Poll a job",
            "room_stream": "GET /rooms/{room_id}/stream - Live room events (SSE)",
            "health": "/health - Basic health check",
            "ready": "/ready - Readiness probe",
            "live": "/live - Liveness probe",
            "metrics": "/metrics - JSON metrics",
            "prometheus": "/metrics/prometheus - Prometheus metrics"
        }
    }
