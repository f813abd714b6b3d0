"""
Data models and schemas.

Provides:
- Pydantic models for API requests/responses
- Normalized provider results (findings, severity tiers)
"""

from .schemas import QueryRequest, QueryCreatedResponse, QueryStatusResponse
from .results import Capability, Severity, Finding, ProviderResult, clamp_confidence

__all__ = [
    "QueryRequest",
    "QueryCreatedResponse",
    "QueryStatusResponse",
    "Capability",
    "Severity",
    "Finding",
    "ProviderResult",
    "clamp_confidence"
]
