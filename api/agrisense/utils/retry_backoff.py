from __future__ import annotations
import asyncio
import random
from typing import Any, Callable, TypeVar, Optional
from functools import wraps
import httpx
from agrisense.obs.logging_setup import get_logger
from agrisense.config import MAX_RETRIES

logger = get_logger(__name__)
T = TypeVar('T')

class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        retry_on_exceptions: tuple = (httpx.TransportError,),
        retry_if: Optional[Callable[[Exception], bool]] = None,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.retry_on_exceptions = retry_on_exceptions
        self.retry_if = retry_if

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt number."""
        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)

        if self.jitter:
            # Up to 20% jitter
            delay += delay * 0.2 * random.random()

        return delay

    def should_retry(self, exc: Exception) -> bool:
        if not isinstance(exc, self.retry_on_exceptions):
            return False
        return self.retry_if(exc) if self.retry_if else True

def retry_with_backoff(
    config: Optional[RetryConfig] = None,
    operation_name: Optional[str] = None
):
    """
    Decorator for async retry with exponential backoff.

    Args:
        config: RetryConfig instance, uses default if None
        operation_name: Name for logging, uses function name if None
    """
    if config is None:
        config = RetryConfig()

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        op_name = operation_name or func.__name__

        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(config.max_retries + 1):
                if attempt > 0:
                    delay = config.calculate_delay(attempt - 1)
                    logger.info(f"Retrying {op_name}", attempt=attempt, delay_seconds=round(delay, 2))
                    await asyncio.sleep(delay)

                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not config.should_retry(e) or attempt >= config.max_retries:
                        if attempt > 0:
                            logger.error(f"All {attempt + 1} attempts failed for {op_name}", error=str(e))
                        raise
                    logger.warning(f"Attempt {attempt + 1} failed for {op_name}", error=str(e), will_retry=True)

        return wrapper

    return decorator

def _is_model_loading(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 503
    return True

# Hosted inference endpoints answer 503 while a cold model loads.
MODEL_LOADING_RETRY = RetryConfig(
    base_delay=1.0,
    max_delay=5.0,
    retry_on_exceptions=(httpx.TransportError, httpx.HTTPStatusError),
    retry_if=_is_model_loading,
)
