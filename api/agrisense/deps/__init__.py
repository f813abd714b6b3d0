"""
Dependencies module - Shared dependencies and wiring.

Provides:
- Capability providers built from configuration
- Process-wide advisory pipeline and room hub
- FastAPI dependency callables
"""

from .providers import ProviderSet, build_providers, unavailable_providers
from .pipeline import build_pipeline, build_job_store, build_knowledge_store, get_pipeline, get_room_hub

__all__ = [
    "ProviderSet",
    "build_providers",
    "unavailable_providers",
    "build_pipeline",
    "build_job_store",
    "build_knowledge_store",
    "get_pipeline",
    "get_room_hub"
]
