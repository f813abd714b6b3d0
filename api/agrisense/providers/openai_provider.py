from __future__ import annotations
import base64
from typing import Any, Dict, List, Optional
from agrisense.config import (
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
    LLM_MODEL,
    VISION_MODEL,
    LLM_TEMPERATURE,
    LLM_MAX_TOKENS,
    PROVIDER_TIMEOUT_SECONDS,
    CIRCUIT_FAILURE_THRESHOLD,
    CIRCUIT_RECOVERY_SECONDS,
)
from agrisense.obs.decorators import traced
from agrisense.obs.langfuse import log_llm_call
from agrisense.obs.logging_setup import get_logger
from agrisense.providers.base import (
    TextProvider,
    VisionProvider,
    Translator,
    ProviderError,
    ProviderUnavailableError,
    call_with_timeout,
)
from agrisense.utils.circuit_breaker import CircuitBreaker, CircuitOpenError

logger = get_logger(__name__)

LANGUAGE_NAMES = {
    "en": "English",
    "hi": "Hindi",
    "ml": "Malayalam",
    "ta": "Tamil",
    "te": "Telugu",
    "kn": "Kannada",
    "mr": "Marathi",
    "bn": "Bengali",
    "gu": "Gujarati",
    "pa": "Punjabi",
}

class OpenAIProvider(TextProvider, VisionProvider, Translator):
    """Chat-completions client serving text, vision and translation calls."""

    def __init__(
        self,
        client: Any = None,
        model: str = LLM_MODEL,
        vision_model: str = VISION_MODEL,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
        breaker: Optional[CircuitBreaker] = None,
    ):
        if client is None:
            from openai import AsyncOpenAI
            # Retries are left to the fallback chain, not the SDK.
            client = AsyncOpenAI(
                api_key=OPENAI_API_KEY,
                base_url=OPENAI_BASE_URL,
                timeout=timeout,
                max_retries=0,
            )
        self.client = client
        self.model = model
        self.vision_model = vision_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.breaker = breaker or CircuitBreaker(
            "openai",
            failure_threshold=CIRCUIT_FAILURE_THRESHOLD,
            recovery_timeout=CIRCUIT_RECOVERY_SECONDS,
        )
        logger.info("OpenAI provider initialized", model=self.model, vision_model=self.vision_model)

    @property
    def name(self) -> str:
        return "openai"

    async def _complete(self, model: str, messages: List[Dict[str, Any]], label: str) -> str:
        async def _request():
            response = await call_with_timeout(
                self.client.chat.completions.create(
                    model=model,
                    messages=messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ),
                self.timeout,
                self.name,
            )
            try:
                content = response.choices[0].message.content
            except (AttributeError, IndexError, TypeError) as e:
                raise ProviderError(self.name, f"malformed completion: {e}") from e
            if not content or not content.strip():
                raise ProviderError(self.name, "empty completion")
            return content.strip(), getattr(response, "usage", None)

        try:
            answer, usage = await self.breaker.call(_request)
        except CircuitOpenError as e:
            raise ProviderUnavailableError(self.name, str(e)) from e

        log_llm_call(
            label,
            model=model,
            input_text=str(messages[-1]["content"])[:2000],
            output_text=answer,
            usage={
                "prompt_tokens": getattr(usage, "prompt_tokens", None),
                "completion_tokens": getattr(usage, "completion_tokens", None),
                "total_tokens": getattr(usage, "total_tokens", None),
            } if usage is not None else None,
        )
        logger.info("LLM completion received", model=model, purpose=label, answer_length=len(answer))
        return answer

    @traced("openai_generate_text")
    async def generate_text(self, prompt: str, system: Optional[str] = None) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return await self._complete(self.model, messages, "text_advisory")

    @traced("openai_generate_vision")
    async def generate_vision(self, prompt: str, image_bytes: bytes, content_type: str = "image/jpeg") -> str:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        messages = [{
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": f"data:{content_type};base64,{encoded}"}},
            ],
        }]
        return await self._complete(self.vision_model, messages, "vision_diagnosis")

    @traced("openai_translate")
    async def translate(self, text: str, target_language: str) -> str:
        language = LANGUAGE_NAMES.get(target_language, target_language)
        system = (
            f"Translate the user's message into {language}. Keep the markdown, numbers, "
            "emoji and line breaks exactly as they are. Reply with the translation only."
        )
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": text},
        ]
        return await self._complete(self.model, messages, "translation")
