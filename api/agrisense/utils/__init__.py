"""
Utility functions and helpers.

Provides:
- Server-sent events formatting
- Room-based real-time delivery
- Retry logic with backoff
- Circuit breaker pattern
"""

from .sse import create_sse_message, create_sse_heartbeat
from .rooms import RoomHub, DeliveryChannel, Subscription, RoomEvent, TYPING_EVENT, RESULT_EVENT
from .retry_backoff import retry_with_backoff, RetryConfig, MODEL_LOADING_RETRY
from .circuit_breaker import CircuitBreaker, CircuitOpenError, CircuitState

__all__ = [
    "create_sse_message",
    "create_sse_heartbeat",
    "RoomHub",
    "DeliveryChannel",
    "Subscription",
    "RoomEvent",
    "TYPING_EVENT",
    "RESULT_EVENT",
    "retry_with_backoff",
    "RetryConfig",
    "MODEL_LOADING_RETRY",
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState"
]
