from __future__ import annotations
from dataclasses import dataclass
from typing import Dict
from agrisense.config import OPENAI_API_KEY, HF_TOKEN
from agrisense.obs.logging_setup import get_logger
from agrisense.providers.base import (
    TextProvider,
    VisionProvider,
    ImageClassifier,
    Translator,
    UnavailableProvider,
)

logger = get_logger(__name__)

@dataclass
class ProviderSet:
    """The process-wide capability providers, built once at startup."""
    text: TextProvider
    vision: VisionProvider
    classifier: ImageClassifier
    translator: Translator

    def availability(self) -> Dict[str, bool]:
        return {
            "text": self.text.available,
            "vision": self.vision.available,
            "classifier": self.classifier.available,
            "translator": self.translator.available,
        }

def unavailable_providers() -> ProviderSet:
    return ProviderSet(
        text=UnavailableProvider("text-llm"),
        vision=UnavailableProvider("vision-llm"),
        classifier=UnavailableProvider("image-classifier"),
        translator=UnavailableProvider("translator"),
    )

def build_providers() -> ProviderSet:
    """Build providers from configuration; missing credentials degrade, never fail."""
    providers = unavailable_providers()

    if OPENAI_API_KEY:
        try:
            from agrisense.providers.openai_provider import OpenAIProvider
            openai_provider = OpenAIProvider()
            providers.text = openai_provider
            providers.vision = openai_provider
            providers.translator = openai_provider
        except Exception as e:
            logger.error("OpenAI provider initialization failed, using fallback tiers", error=str(e))
    else:
        logger.warning("OPENAI_API_KEY not set - text, vision and translation tiers will be skipped")

    if HF_TOKEN:
        try:
            from agrisense.providers.huggingface import HuggingFaceClassifier
            providers.classifier = HuggingFaceClassifier()
        except Exception as e:
            logger.error("Hugging Face classifier initialization failed, using fallback tiers", error=str(e))
    else:
        logger.warning("HF_TOKEN not set - hosted image classifier tier will be skipped")

    logger.info("Providers built", **providers.availability())
    return providers
