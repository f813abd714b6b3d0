from __future__ import annotations
import time
import functools
import inspect
from typing import Callable, Dict, Optional
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from agrisense.obs.metrics import record_duration, inc_counter
from agrisense.obs.logging_setup import get_logger

logger = get_logger(__name__)

def traced(operation_name: Optional[str] = None, include_result: bool = False):
    """Decorator to add OpenTelemetry tracing to functions."""

    def decorator(func: Callable) -> Callable:
        tracer = trace.get_tracer(__name__)
        span_name = operation_name or f"{func.__module__}.{func.__name__}"
        labels = {"function": func.__name__}

        def _on_error(span, e: Exception) -> None:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            inc_counter("function_errors_total", {**labels, "error_type": type(e).__name__})
            logger.error(f"Function {func.__name__} failed", error=str(e), function=func.__name__)

        def _on_success(span, result) -> None:
            span.set_status(Status(StatusCode.OK))
            if include_result:
                span.set_attribute("function.result", str(result)[:500])

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute("function.name", func.__name__)
                start_time = time.time()
                try:
                    result = await func(*args, **kwargs)
                    _on_success(span, result)
                    return result
                except Exception as e:
                    _on_error(span, e)
                    raise
                finally:
                    record_duration("function_duration_ms", (time.time() - start_time) * 1000, labels)

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute("function.name", func.__name__)
                start_time = time.time()
                try:
                    result = func(*args, **kwargs)
                    _on_success(span, result)
                    return result
                except Exception as e:
                    _on_error(span, e)
                    raise
                finally:
                    record_duration("function_duration_ms", (time.time() - start_time) * 1000, labels)

        return async_wrapper if inspect.iscoroutinefunction(func) else sync_wrapper

    return decorator

def timed(metric_name: Optional[str] = None, labels: Optional[Dict[str, str]] = None):
    """Decorator to time function execution and record metrics."""

    def decorator(func: Callable) -> Callable:
        name = metric_name or f"{func.__name__}_duration_ms"

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            finally:
                record_duration(name, (time.time() - start_time) * 1000, labels)

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                record_duration(name, (time.time() - start_time) * 1000, labels)

        return async_wrapper if inspect.iscoroutinefunction(func) else sync_wrapper

    return decorator
