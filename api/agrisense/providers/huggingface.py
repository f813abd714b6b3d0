from __future__ import annotations
from typing import Any, Dict, List, Optional
import httpx
from agrisense.config import (
    HF_TOKEN,
    HF_MODEL_ID,
    HF_INFERENCE_URL,
    PROVIDER_TIMEOUT_SECONDS,
    CIRCUIT_FAILURE_THRESHOLD,
    CIRCUIT_RECOVERY_SECONDS,
)
from agrisense.obs.decorators import traced
from agrisense.obs.logging_setup import get_logger
from agrisense.providers.base import (
    ImageClassifier,
    ProviderError,
    ProviderUnavailableError,
    call_with_timeout,
)
from agrisense.utils.circuit_breaker import CircuitBreaker, CircuitOpenError
from agrisense.utils.retry_backoff import retry_with_backoff, MODEL_LOADING_RETRY

logger = get_logger(__name__)

def describe_http_failure(status_code: int) -> str:
    """Human-readable reason for a hosted-inference HTTP failure."""
    if status_code in (401, 403):
        return "authentication failed with Hugging Face API"
    if status_code == 503:
        return "model is currently loading"
    if status_code == 429:
        return "rate limit exceeded"
    return f"HTTP {status_code}"

class HuggingFaceClassifier(ImageClassifier):
    """Hosted plant-disease image classification over the inference API."""

    def __init__(
        self,
        token: Optional[str] = HF_TOKEN,
        model_id: str = HF_MODEL_ID,
        base_url: str = HF_INFERENCE_URL,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.token = token
        self.model_id = model_id
        self.url = f"{base_url.rstrip('/')}/{model_id}"
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            transport=transport,
            limits=httpx.Limits(max_connections=10),
        )
        self.breaker = breaker or CircuitBreaker(
            "huggingface",
            failure_threshold=CIRCUIT_FAILURE_THRESHOLD,
            recovery_timeout=CIRCUIT_RECOVERY_SECONDS,
        )
        logger.info("Hugging Face classifier initialized", model=model_id)

    @property
    def name(self) -> str:
        return "huggingface"

    @retry_with_backoff(config=MODEL_LOADING_RETRY, operation_name="hf_classify_image")
    async def _post(self, image_bytes: bytes) -> httpx.Response:
        response = await self._client.post(
            self.url,
            content=image_bytes,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/octet-stream",
            },
        )
        response.raise_for_status()
        return response

    async def _classify(self, image_bytes: bytes) -> List[Dict[str, Any]]:
        try:
            response = await self._post(image_bytes)
        except httpx.HTTPStatusError as e:
            raise ProviderError(self.name, describe_http_failure(e.response.status_code)) from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"transport error: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError(self.name, "response is not JSON") from e

        if isinstance(payload, dict) and payload.get("error"):
            raise ProviderError(self.name, str(payload["error"]))
        if not isinstance(payload, list):
            raise ProviderError(self.name, f"unexpected payload type {type(payload).__name__}")

        predictions = []
        for item in payload:
            if not isinstance(item, dict) or "label" not in item:
                continue
            try:
                predictions.append({"label": str(item["label"]), "score": float(item.get("score", 0.0))})
            except (TypeError, ValueError):
                continue
        return predictions

    @traced("hf_classify_image")
    async def classify_image(self, image_bytes: bytes) -> List[Dict[str, Any]]:
        # Covers the retries as well as the single attempt.
        budget = self.timeout * 2
        try:
            return await self.breaker.call(
                lambda: call_with_timeout(self._classify(image_bytes), budget, self.name)
            )
        except CircuitOpenError as e:
            raise ProviderUnavailableError(self.name, str(e)) from e

    async def aclose(self) -> None:
        await self._client.aclose()
