"""
API routers module.

Provides:
- Question and photo submission, job polling
- Live room streams over SSE
- Health, readiness and metrics endpoints
"""

from . import health, query, readiness, rooms, metrics

__all__ = [
    "health",
    "query",
    "readiness",
    "rooms",
    "metrics"
]
