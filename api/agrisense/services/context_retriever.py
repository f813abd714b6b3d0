from __future__ import annotations
from typing import List, Tuple
from cachetools import TTLCache
from agrisense.config import KNOWLEDGE_LOOKUP_LIMIT, KNOWLEDGE_CACHE_TTL
from agrisense.obs.decorators import traced, timed
from agrisense.obs.logging_setup import get_logger
from agrisense.obs.metrics import inc_counter
from agrisense.store.knowledge_store import KnowledgeStore, KnowledgeSnippet, normalize_tag

logger = get_logger(__name__)

MAX_TERMS = 5

def extract_terms(text: str, max_terms: int = MAX_TERMS) -> List[str]:
    """First `max_terms` non-empty whitespace-separated terms, lower-cased."""
    terms = []
    for token in (text or "").split():
        term = normalize_tag(token)
        if term:
            terms.append(term)
        if len(terms) >= max_terms:
            break
    return terms

class ContextRetriever:
    """Builds a small knowledge context blob for a question."""

    def __init__(
        self,
        store: KnowledgeStore,
        limit: int = KNOWLEDGE_LOOKUP_LIMIT,
        cache_size: int = 512,
        cache_ttl: int = KNOWLEDGE_CACHE_TTL,
    ):
        self.store = store
        self.limit = limit
        self._cache: TTLCache = TTLCache(maxsize=cache_size, ttl=cache_ttl)

    @timed("knowledge_lookup_duration_ms")
    async def _lookup(self, terms: Tuple[str, ...]) -> List[KnowledgeSnippet]:
        if terms in self._cache:
            inc_counter("knowledge_cache_hits")
            return self._cache[terms]

        snippets = list(await self.store.find_snippets(set(terms), self.limit))[: self.limit]
        self._cache[terms] = snippets
        return snippets

    @traced("build_context")
    async def build_context(self, text: str) -> str:
        """Return "title: body" pairs separated by blank lines; "" when nothing matches.

        Knowledge is optional for generation, so lookup failures are logged and
        degrade to an empty context.
        """
        terms = tuple(extract_terms(text))
        if not terms:
            return ""

        try:
            snippets = await self._lookup(terms)
        except Exception as e:
            logger.error("Knowledge lookup failed, continuing without context", error=str(e), terms=list(terms))
            inc_counter("knowledge_lookup_failures")
            return ""

        logger.debug("Knowledge context built", terms=list(terms), snippets=len(snippets))
        return "\n\n".join(f"{s.title}: {s.body}" for s in snippets)
