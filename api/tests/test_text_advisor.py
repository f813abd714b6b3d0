from __future__ import annotations
import pytest
from agrisense.providers.base import ProviderTimeoutError, UnavailableProvider
from agrisense.services.text_advisor import (
    TextAdvisor,
    keyword_answer,
    GENERIC_ANSWER,
    PRIMARY_SOURCE,
    FALLBACK_SOURCE,
)
from tests.fakes import FakeTextProvider

@pytest.mark.asyncio
async def test_primary_answer_used():
    provider = FakeTextProvider(answer="  Sow after the monsoon sets in.  ")
    result = await TextAdvisor(provider).advise("When should I sow paddy?", "Paddy: transplant at 21 days")
    assert result.source == PRIMARY_SOURCE
    assert result.text == "Sow after the monsoon sets in."
    assert result.synthetic is False

    prompt, system = provider.prompts[0]
    assert "Paddy: transplant at 21 days" in prompt
    assert "When should I sow paddy?" in prompt
    assert "agricultural assistant" in system

@pytest.mark.asyncio
async def test_unconfigured_provider_falls_back_to_generic_referral():
    result = await TextAdvisor(UnavailableProvider("text-llm")).advise("What is the best time to plant tomatoes?")
    assert result.success is True
    assert result.source == FALLBACK_SOURCE
    assert result.synthetic is True
    assert result.text == GENERIC_ANSWER
    assert "extension officer" in result.text

@pytest.mark.asyncio
@pytest.mark.parametrize("provider", [
    FakeTextProvider(error=ProviderTimeoutError("fake-text", "no answer within 12s")),
    FakeTextProvider(error=RuntimeError("socket closed")),
    FakeTextProvider(answer="   "),
    FakeTextProvider(answer=None),
])
async def test_any_primary_failure_still_answers(provider):
    result = await TextAdvisor(provider).advise("Will it rain tomorrow?")
    assert result.source == FALLBACK_SOURCE
    assert result.text

@pytest.mark.asyncio
@pytest.mark.parametrize("question", ["", "🌾🌧️", "ಮಳೆ ಯಾವಾಗ?", "x" * 5000])
async def test_totality_on_odd_input(question):
    result = await TextAdvisor(UnavailableProvider("text-llm")).advise(question)
    assert result.success is True
    assert result.text

@pytest.mark.parametrize("question,category", [
    ("Heavy rain expected this week", "weather"),
    ("Rain and aphids on my crop", "weather"),
    ("Which fertilizer for my soil?", "crop"),
    ("Aphids all over the chilli plants", "pest"),
    ("Tell me about carrots", "generic"),
])
def test_keyword_categories_in_priority_order(question, category):
    assert keyword_answer(question)[0] == category
