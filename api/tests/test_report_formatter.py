from __future__ import annotations
import pytest
from agrisense.models.results import Capability, Finding, ProviderResult, Severity
from agrisense.providers.base import ProviderError, UnavailableProvider
from agrisense.services.report_formatter import ReportFormatter, format_disease_report, severity_marker
from tests.fakes import FakeTranslator

def vision_result(synthetic: bool = False) -> ProviderResult:
    return ProviderResult(
        capability=Capability.VISION,
        source="primary-vision",
        primary=Finding("Late Blight", 85, Severity.HIGH, "Water-soaked lesions"),
        alternatives=[
            Finding("Leaf Spot", 65, Severity.MEDIUM),
            Finding("Nutrient Deficiency", 55, Severity.LOW, confidence_tier="Low Confidence"),
        ],
        synthetic=synthetic,
    )

def text_result() -> ProviderResult:
    return ProviderResult(capability=Capability.TEXT, source="primary-llm", text="  Water in the morning.  ")

def test_disease_report_sections():
    report = format_disease_report(vision_result())
    assert "Primary Diagnosis:" in report
    assert "Disease: Late Blight" in report
    assert "Confidence: 85%" in report
    assert "Severity: 🔴 High" in report
    assert "Alternative Possibilities:" in report
    assert "- Leaf Spot (65%)" in report
    assert "- Nutrient Deficiency (55%), Low Confidence" in report
    assert "Next Steps:" in report
    assert report.index("Primary Diagnosis") < report.index("Alternative Possibilities") < report.index("Next Steps")

def test_synthetic_report_is_marked():
    assert "indicative result" in format_disease_report(vision_result(synthetic=True))
    assert "indicative result" not in format_disease_report(vision_result())

def test_severity_markers():
    assert severity_marker(Severity.MEDIUM) == "🟡"
    assert severity_marker(Severity.LOW) == "🟢"
    assert severity_marker(Severity.NONE) == "⚪"

def test_text_answer_is_stripped():
    formatter = ReportFormatter(UnavailableProvider("translator"))
    assert formatter.format(text_result()) == "Water in the morning."

@pytest.mark.asyncio
@pytest.mark.parametrize("language", [None, "", "en", "EN"])
async def test_english_is_a_no_op(language):
    translator = FakeTranslator()
    formatter = ReportFormatter(translator, default_language="en")
    assert await formatter.localize("report", language) == "report"
    assert translator.requests == []

@pytest.mark.asyncio
async def test_translation_used_when_available():
    translator = FakeTranslator()
    formatter = ReportFormatter(translator)
    assert await formatter.localize("report", "ta") == "[translated] report"
    assert translator.requests == ["ta"]

@pytest.mark.asyncio
async def test_failed_hindi_translation_uses_hindi_report():
    formatter = ReportFormatter(FakeTranslator(error=ProviderError("fake-translator", "quota exceeded")))
    localized = await formatter.localize(format_disease_report(vision_result()), "hi", vision_result())
    assert "Late Blight" in localized
    assert "संभावित रोग" in localized

@pytest.mark.asyncio
async def test_failed_malayalam_translation_uses_malayalam_report():
    formatter = ReportFormatter(UnavailableProvider("translator"))
    localized = await formatter.localize("Water in the morning.", "ml", text_result())
    assert "കൃഷിഭവ" in localized
    assert "Water in the morning." not in localized

@pytest.mark.asyncio
async def test_failed_translation_for_other_language_is_marked():
    formatter = ReportFormatter(UnavailableProvider("translator"))
    localized = await formatter.localize("Water in the morning.", "ta")
    assert localized.startswith("[Translation unavailable")
    assert localized.endswith("Water in the morning.")

@pytest.mark.asyncio
async def test_empty_translation_falls_back():
    formatter = ReportFormatter(FakeTranslator(prefix="", error=None))
    assert await formatter.localize("", "hi") != ""
