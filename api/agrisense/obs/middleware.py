from __future__ import annotations
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from agrisense.obs.metrics import inc_counter, record_duration
from agrisense.obs.prometheus_metrics import prometheus_metrics

class MetricsMiddleware(BaseHTTPMiddleware):
    """Collects per-route HTTP metrics for both the JSON and Prometheus views."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        method = request.method
        # Route template keeps label cardinality bounded (no job ids in labels).
        route = request.scope.get("route")
        path = getattr(route, "path", None) or request.url.path

        try:
            response: Response = await call_next(request)
        except Exception:
            inc_counter("http_requests_errors_total", {"method": method, "path": path, "status": "500"})
            raise

        duration = time.time() - start_time
        route = request.scope.get("route")
        path = getattr(route, "path", None) or path
        labels = {"method": method, "path": path, "status": str(response.status_code)}

        inc_counter("http_requests_total", labels)
        record_duration("http_request_duration_ms", duration * 1000, labels)
        if response.status_code >= 400:
            inc_counter("http_requests_errors_total", labels)
        prometheus_metrics.record_request(method, path, response.status_code, duration)

        return response
