from __future__ import annotations
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Dict, List, Optional

class ProviderError(Exception):
    """An inference provider call failed (transport, timeout, quota or bad shape)."""

    def __init__(self, provider: str, reason: str):
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason

class ProviderUnavailableError(ProviderError):
    """The provider is not configured or its circuit is open."""

class ProviderTimeoutError(ProviderError):
    """The provider did not answer within its timeout."""

class Provider(ABC):
    """Common surface of every capability provider."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return provider name."""

    @property
    def available(self) -> bool:
        return True

class TextProvider(Provider):
    @abstractmethod
    async def generate_text(self, prompt: str, system: Optional[str] = None) -> str:
        """Return generated text or raise ProviderError."""

class VisionProvider(Provider):
    @abstractmethod
    async def generate_vision(self, prompt: str, image_bytes: bytes, content_type: str = "image/jpeg") -> str:
        """Return the model's free-form answer about the image or raise ProviderError."""

class ImageClassifier(Provider):
    @abstractmethod
    async def classify_image(self, image_bytes: bytes) -> List[Dict[str, Any]]:
        """Return a list of {label, score} pairs or raise ProviderError."""

class Translator(Provider):
    @abstractmethod
    async def translate(self, text: str, target_language: str) -> str:
        """Return text translated into target_language or raise ProviderError."""

class UnavailableProvider(TextProvider, VisionProvider, ImageClassifier, Translator):
    """Stands in for a provider whose credentials are missing.

    Every call raises ProviderUnavailableError so the fallback chains advance
    exactly as they would for a transport failure.
    """

    def __init__(self, provider_name: str, reason: str = "credentials not configured"):
        self._name = provider_name
        self.reason = reason

    @property
    def name(self) -> str:
        return self._name

    @property
    def available(self) -> bool:
        return False

    def _unavailable(self):
        raise ProviderUnavailableError(self._name, self.reason)

    async def generate_text(self, prompt: str, system: Optional[str] = None) -> str:
        self._unavailable()

    async def generate_vision(self, prompt: str, image_bytes: bytes, content_type: str = "image/jpeg") -> str:
        self._unavailable()

    async def classify_image(self, image_bytes: bytes) -> List[Dict[str, Any]]:
        self._unavailable()

    async def translate(self, text: str, target_language: str) -> str:
        self._unavailable()

async def call_with_timeout(awaitable: Awaitable[Any], timeout: float, provider: str) -> Any:
    """Await a provider call, mapping timeouts and unexpected errors to ProviderError."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise ProviderTimeoutError(provider, f"no answer within {timeout}s") from e
    except ProviderError:
        raise
    except Exception as e:
        raise ProviderError(provider, f"{type(e).__name__}: {e}") from e
