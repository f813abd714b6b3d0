"""
Observability module - Tracing, metrics, and logging.

Provides:
- OpenTelemetry distributed tracing
- Langfuse logging of provider generations
- Prometheus and in-process JSON metrics
- Structured logging with trace correlation
"""

from .otel import setup_tracing, get_tracer
from .langfuse import get_langfuse_client, log_llm_call
from .metrics import metrics_registry, inc_counter, record_duration, set_gauge
from .logging_setup import setup_logging, get_logger
from .decorators import traced, timed

__all__ = [
    "setup_tracing",
    "get_tracer",
    "get_langfuse_client",
    "log_llm_call",
    "metrics_registry",
    "inc_counter",
    "record_duration",
    "set_gauge",
    "setup_logging",
    "get_logger",
    "traced",
    "timed"
]
