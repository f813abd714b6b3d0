from __future__ import annotations
from typing import Optional
from agrisense.config import DEFAULT_LANGUAGE
from agrisense.obs.logging_setup import get_logger
from agrisense.obs.metrics import inc_counter
from agrisense.models.results import Finding, ProviderResult, Severity
from agrisense.providers.base import Translator, ProviderError

logger = get_logger(__name__)

SEVERITY_MARKERS = {
    Severity.HIGH: "🔴",
    Severity.MEDIUM: "🟡",
    Severity.LOW: "🟢",
}
DEFAULT_MARKER = "⚪"

NEXT_STEPS = [
    "Review the treatment recommendations below",
    "Act quickly if severity is High",
    "Monitor the affected plants daily",
    "Consult a local agricultural expert if symptoms spread",
]

ENGLISH_CODES = ("", "en", "en-us", "en-gb", "english")

TRANSLATION_UNAVAILABLE_NOTICE = (
    "[Translation unavailable: showing the report in English. "
    "Requested language: {language}]"
)

def severity_marker(severity: Severity) -> str:
    return SEVERITY_MARKERS.get(severity, DEFAULT_MARKER)

def _finding_line(finding: Finding) -> str:
    line = f"- {finding.label} ({finding.confidence}%)"
    if finding.confidence_tier:
        line += f", {finding.confidence_tier}"
    return line

def format_disease_report(result: ProviderResult) -> str:
    """Render a vision result as a plain-text diagnosis report."""
    primary = result.primary
    lines = ["🌿 Plant Disease Analysis", ""]

    lines.append("Primary Diagnosis:")
    lines.append(f"Disease: {primary.label}")
    lines.append(f"Confidence: {primary.confidence}%")
    lines.append(f"Severity: {severity_marker(primary.severity)} {primary.severity.value}")
    if primary.description:
        lines.append(f"Description: {primary.description}")

    if result.alternatives:
        lines.append("")
        lines.append("Alternative Possibilities:")
        lines.extend(_finding_line(f) for f in result.alternatives)

    lines.append("")
    lines.append("Next Steps:")
    lines.extend(f"☐ {step}" for step in NEXT_STEPS)

    if result.synthetic:
        lines.append("")
        lines.append(
            "Note: automated image analysis was unavailable, so this is an indicative "
            "result only. Please confirm with an expert."
        )
    return "\n".join(lines)

def format_text_answer(result: ProviderResult) -> str:
    return (result.text or "").strip()

def _hindi_report(result: Optional[ProviderResult]) -> str:
    if result is not None and result.primary is not None:
        primary = result.primary
        return (
            "🌿 पौधों के रोग का विश्लेषण\n\n"
            f"संभावित रोग: {primary.label}\n"
            f"विश्वास स्तर: {primary.confidence}%\n"
            f"गंभीरता: {severity_marker(primary.severity)} {primary.severity.value}\n\n"
            "कृपया प्रभावित पौधों की रोज़ जाँच करें और अधिक जानकारी के लिए "
            "अपने स्थानीय कृषि विशेषज्ञ से संपर्क करें।"
        )
    return (
        "आपके प्रश्न के लिए धन्यवाद। अभी विस्तृत उत्तर का अनुवाद उपलब्ध नहीं है। "
        "कृपया अपनी फसल और स्थानीय परिस्थितियों के अनुसार सलाह के लिए "
        "अपने स्थानीय कृषि विस्तार अधिकारी से संपर्क करें।"
    )

def _malayalam_report(result: Optional[ProviderResult]) -> str:
    if result is not None and result.primary is not None:
        primary = result.primary
        return (
            "🌿 സസ്യരോഗ വിശകലനം\n\n"
            f"സാധ്യതയുള്ള രോഗം: {primary.label}\n"
            f"വിശ്വാസ്യത: {primary.confidence}%\n"
            f"തീവ്രത: {severity_marker(primary.severity)} {primary.severity.value}\n\n"
            "ബാധിച്ച ചെടികൾ ദിവസവും പരിശോധിക്കുക. കൂടുതൽ വിവരങ്ങൾക്ക് "
            "അടുത്തുള്ള കൃഷിഭവനുമായി ബന്ധപ്പെടുക."
        )
    return (
        "നിങ്ങളുടെ ചോദ്യത്തിന് നന്ദി. വിശദമായ ഉത്തരത്തിന്റെ വിവർത്തനം ഇപ്പോൾ ലഭ്യമല്ല. "
        "നിങ്ങളുടെ വിളയ്ക്കും പ്രാദേശിക സാഹചര്യങ്ങൾക്കും അനുയോജ്യമായ ഉപദേശത്തിന് "
        "അടുത്തുള്ള കൃഷിഭവനുമായി ബന്ധപ്പെടുക."
    )

LOCALIZED_FALLBACKS = {
    "hi": _hindi_report,
    "ml": _malayalam_report,
}

def normalize_language(language: Optional[str]) -> str:
    return (language or "").strip().lower()

class ReportFormatter:
    """Formats results and localizes the finished report."""

    def __init__(self, translator: Translator, default_language: str = DEFAULT_LANGUAGE):
        self.translator = translator
        self.default_language = normalize_language(default_language)

    def format(self, result: ProviderResult) -> str:
        if result.primary is not None:
            return format_disease_report(result)
        return format_text_answer(result)

    async def localize(self, report: str, language: Optional[str], result: Optional[ProviderResult] = None) -> str:
        """Return the report in the requested language; never empty.

        English (or no language) is a no-op. When translation fails, a
        hand-written short report is used for supported languages, otherwise
        the English report is returned with an explicit notice.
        """
        target = normalize_language(language) or self.default_language
        if target in ENGLISH_CODES:
            return report

        try:
            translated = await self.translator.translate(report, target)
            if translated and translated.strip():
                inc_counter("translations_total", {"language": target, "outcome": "success"})
                return translated.strip()
            logger.warning("Translator returned empty text", language=target)
        except ProviderError as e:
            logger.warning("Translation failed, using localized fallback", language=target, reason=e.reason)
        except Exception as e:
            logger.error("Unexpected translation error", language=target, error=str(e), exc_info=True)

        inc_counter("translations_total", {"language": target, "outcome": "fallback"})
        base_language = target.split("-")[0]
        fallback = LOCALIZED_FALLBACKS.get(base_language)
        if fallback is not None:
            return fallback(result)
        return TRANSLATION_UNAVAILABLE_NOTICE.format(language=target) + "\n\n" + report
