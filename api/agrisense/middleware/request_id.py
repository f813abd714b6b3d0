from __future__ import annotations
import uuid
from typing import Callable, Iterable
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from agrisense.obs.logging_setup import get_logger

logger = get_logger(__name__)

class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request id to every request and echo it in the response headers."""

    def __init__(
        self,
        app,
        header_name: str = "X-Request-ID",
        quiet_paths: Iterable[str] = ("/health", "/ready", "/metrics/prometheus"),
    ):
        super().__init__(app)
        self.header_name = header_name
        self.quiet_paths = set(quiet_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.header_name.lower()) or f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id
        log_request = request.url.path not in self.quiet_paths

        if log_request:
            logger.info(
                "Request started",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                client_ip=request.client.host if request.client else None
            )

        response = await call_next(request)
        response.headers[self.header_name] = request_id

        if log_request:
            logger.info("Request completed", request_id=request_id, status_code=response.status_code)
        return response
