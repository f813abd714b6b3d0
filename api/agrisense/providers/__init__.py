"""
Inference provider clients.

Provides:
- Capability interfaces (text, vision, image classification, translation)
- OpenAI chat-completions client
- Hugging Face hosted image classifier
- Unavailable stand-in used when credentials are missing
"""

from .base import (
    ProviderError,
    ProviderUnavailableError,
    ProviderTimeoutError,
    TextProvider,
    VisionProvider,
    ImageClassifier,
    Translator,
    UnavailableProvider,
    call_with_timeout,
)

__all__ = [
    "ProviderError",
    "ProviderUnavailableError",
    "ProviderTimeoutError",
    "TextProvider",
    "VisionProvider",
    "ImageClassifier",
    "Translator",
    "UnavailableProvider",
    "call_with_timeout"
]
