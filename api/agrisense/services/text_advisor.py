from __future__ import annotations
import re
from typing import List, Optional, Tuple
from agrisense.obs.decorators import traced
from agrisense.obs.logging_setup import get_logger
from agrisense.obs.prometheus_metrics import prometheus_metrics
from agrisense.models.results import Capability, ProviderResult
from agrisense.providers.base import TextProvider, ProviderError

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are an expert agricultural assistant helping smallholder farmers. "
    "Give concise, practical advice in plain language: concrete steps, "
    "quantities and timing where relevant. If the question is outside "
    "agriculture, say so briefly."
)

PRIMARY_SOURCE = "primary-llm"
FALLBACK_SOURCE = "keyword-fallback"

# Checked in order; the first category with a matching keyword wins.
KEYWORD_CATEGORIES: List[Tuple[str, Tuple[str, ...], str]] = [
    (
        "weather",
        ("weather", "rain", "rainfall", "monsoon", "temperature", "forecast", "drought", "climate", "frost", "humidity"),
        "For weather-related farming decisions: check the local forecast daily, "
        "avoid spraying or applying fertilizer when heavy rain is expected within 24 hours, "
        "keep drainage channels clear before the monsoon, and mulch or irrigate in the "
        "early morning during dry spells to reduce water stress on crops.",
    ),
    (
        "crop",
        ("crop", "crops", "planting", "sowing", "sow", "seed", "seeds", "harvest", "fertilizer",
         "fertiliser", "manure", "soil", "irrigation", "yield", "variety"),
        "For crop and planting questions: choose varieties recommended for your region and season, "
        "test your soil before applying fertilizer, use certified seed, follow the recommended "
        "spacing, and apply water and nutrients in split doses matched to the crop's growth stage.",
    ),
    (
        "pest",
        ("pest", "pests", "disease", "diseases", "insect", "insects", "bug", "bugs", "worm", "caterpillar",
         "aphid", "aphids", "fungus", "fungal", "blight", "rot", "mildew", "infestation", "wilt"),
        "For pest and disease problems: inspect the field regularly, remove and destroy badly affected "
        "plants or leaves, try neem-based sprays and other biological controls first, and use chemical "
        "pesticides only at the recommended dose. Bring a sample to your local agricultural office "
        "if the problem spreads.",
    ),
]

GENERIC_ANSWER = (
    "Thank you for your question. I could not prepare a detailed answer right now. "
    "Please contact your local agricultural extension officer or the nearest Krishi Bhavan, "
    "who can give advice suited to your crop, soil and local conditions."
)

def keyword_answer(text: Optional[str]) -> Tuple[str, str]:
    """Deterministic canned answer; returns (category, answer)."""
    words = set(re.findall(r"\w+", (text or "").lower()))
    for category, keywords, answer in KEYWORD_CATEGORIES:
        if words.intersection(keywords):
            return category, answer
    return "generic", GENERIC_ANSWER

def build_prompt(question: str, context: str) -> str:
    parts = []
    if context:
        parts.append(f"Context:\n{context}")
    parts.append(f"Question: {question}")
    parts.append("Answer:")
    return "\n\n".join(parts)

class TextAdvisor:
    """Two-tier text chain: primary LLM, then the keyword responder."""

    def __init__(self, provider: TextProvider):
        self.provider = provider

    @traced("text_advice")
    async def advise(self, question: str, context: str = "") -> ProviderResult:
        """Always returns a result with non-empty text; never raises."""
        try:
            answer = await self.provider.generate_text(build_prompt(question, context), system=SYSTEM_PROMPT)
            if answer and answer.strip():
                prometheus_metrics.record_tier("text", PRIMARY_SOURCE, "success")
                return ProviderResult(capability=Capability.TEXT, source=PRIMARY_SOURCE, text=answer.strip())
            prometheus_metrics.record_tier("text", PRIMARY_SOURCE, "empty")
            logger.warning("Primary LLM returned empty text, using keyword fallback", provider=self.provider.name)
        except ProviderError as e:
            prometheus_metrics.record_tier("text", PRIMARY_SOURCE, "failed")
            logger.warning("Primary LLM failed, using keyword fallback", provider=e.provider, reason=e.reason)
        except Exception as e:
            prometheus_metrics.record_tier("text", PRIMARY_SOURCE, "error")
            logger.error("Unexpected error in primary LLM tier", error=str(e), exc_info=True)

        category, answer = keyword_answer(question)
        prometheus_metrics.record_tier("text", FALLBACK_SOURCE, "success")
        logger.info("Keyword fallback answered", category=category)
        return ProviderResult(
            capability=Capability.TEXT,
            source=FALLBACK_SOURCE,
            text=answer,
            synthetic=True,
        )
