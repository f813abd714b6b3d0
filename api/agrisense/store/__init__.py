"""
Storage layer.

Provides:
- Knowledge snippet store with tag lookup
"""

from .knowledge_store import KnowledgeSnippet, KnowledgeStore, InMemoryKnowledgeStore

__all__ = [
    "KnowledgeSnippet",
    "KnowledgeStore",
    "InMemoryKnowledgeStore"
]
