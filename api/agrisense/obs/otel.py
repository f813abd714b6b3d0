from __future__ import annotations
import os
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased, ALWAYS_ON
from opentelemetry.propagate import set_global_textmap
from opentelemetry.propagators.b3 import B3MultiFormat
from agrisense.config import OTEL_EXPORTER_OTLP_ENDPOINT, OTEL_SERVICE_NAME
from agrisense.obs.logging_setup import get_logger

logger = get_logger(__name__)

def setup_tracing() -> None:
    """Initialize OpenTelemetry tracing.

    Spans are exported over OTLP/HTTP when an endpoint is configured; otherwise
    the provider still records spans so log lines carry trace ids.
    """

    set_global_textmap(B3MultiFormat())

    resource = Resource.create({
        "service.name": OTEL_SERVICE_NAME,
        "service.version": "1.0.0",
        "deployment.environment": os.getenv("ENVIRONMENT", "development")
    })

    sample_rate = float(os.getenv("OTEL_SAMPLE_RATE", "1.0"))
    sampler = ALWAYS_ON if sample_rate >= 1.0 else TraceIdRatioBased(sample_rate)

    tracer_provider = TracerProvider(resource=resource, sampler=sampler)

    if OTEL_EXPORTER_OTLP_ENDPOINT:
        try:
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
            otlp_exporter = OTLPSpanExporter(
                endpoint=f"{OTEL_EXPORTER_OTLP_ENDPOINT}/v1/traces",
                timeout=10
            )
            tracer_provider.add_span_processor(BatchSpanProcessor(
                otlp_exporter,
                max_queue_size=512,
                max_export_batch_size=256,
            ))
            logger.info("OTLP exporter configured", endpoint=OTEL_EXPORTER_OTLP_ENDPOINT)
        except Exception as e:
            logger.warning("OTLP exporter failed, spans will not be exported", error=str(e))
    else:
        logger.warning("No OTLP endpoint configured, spans will not be exported")

    trace.set_tracer_provider(tracer_provider)
    logger.info("OpenTelemetry configured", service=OTEL_SERVICE_NAME)

def get_tracer(name: str = "agrisense-advisory") -> trace.Tracer:
    """Get OpenTelemetry tracer instance."""
    return trace.get_tracer(name)
