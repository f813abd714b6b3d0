from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any

class Capability(str, Enum):
    TEXT = "text"
    VISION = "vision"

class Severity(str, Enum):
    NONE = "None"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

def clamp_confidence(value: Any, default: int = 70, allow_fraction: bool = True) -> int:
    """Coerce a provider confidence (0-1 fraction or 0-100 percent) to an int in [0, 100].

    Pass allow_fraction=False when the value is known to be a percentage already.
    """
    try:
        number = float(str(value).strip().rstrip("%"))
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    if allow_fraction and 0 < number <= 1 and "." in str(value):
        number *= 100
    return max(0, min(100, int(round(number))))

@dataclass
class Finding:
    """One candidate diagnosis."""
    label: str
    confidence: int
    severity: Severity = Severity.MEDIUM
    description: str = ""
    confidence_tier: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "disease": self.label,
            "confidence": self.confidence,
            "severity": self.severity.value,
            "description": self.description,
        }
        if self.confidence_tier:
            data["confidence_tier"] = self.confidence_tier
        return data

@dataclass
class ProviderResult:
    """Normalized output of whichever fallback tier answered."""
    capability: Capability
    source: str
    success: bool = True
    primary: Optional[Finding] = None
    alternatives: List[Finding] = field(default_factory=list)
    text: Optional[str] = None
    synthetic: bool = False
    raw_text: Optional[str] = None

    @property
    def predictions(self) -> List[Finding]:
        return ([self.primary] if self.primary else []) + list(self.alternatives)

    def to_dict(self) -> Dict[str, Any]:
        if self.capability == Capability.TEXT:
            return {
                "success": self.success,
                "source": self.source,
                "synthetic": self.synthetic,
                "text": self.text,
            }
        return {
            "success": self.success,
            "predictions": [p.to_dict() for p in self.predictions],
            "primary_disease": self.primary.to_dict() if self.primary else None,
            "source": self.source,
            "synthetic": self.synthetic,
        }
