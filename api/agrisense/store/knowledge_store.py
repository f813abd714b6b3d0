from __future__ import annotations
import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Iterable, List, Optional, FrozenSet
from agrisense.obs.logging_setup import get_logger

logger = get_logger(__name__)

@dataclass(frozen=True)
class KnowledgeSnippet:
    title: str
    body: str
    tags: FrozenSet[str] = field(default_factory=frozenset)

class KnowledgeStore(ABC):
    """Read-only access to curated agricultural knowledge."""

    @abstractmethod
    async def find_snippets(self, tags: Iterable[str], limit: int) -> List[KnowledgeSnippet]:
        """Return at most `limit` snippets whose tags intersect `tags`."""

def normalize_tag(tag: str) -> str:
    return re.sub(r"^\W+|\W+$", "", tag.strip().lower())

class InMemoryKnowledgeStore(KnowledgeStore):
    """In-memory snippet list with tag matching."""

    def __init__(self, snippets: Optional[Iterable[KnowledgeSnippet]] = None):
        self.snippets: List[KnowledgeSnippet] = []
        for snippet in snippets or []:
            self.add(snippet.title, snippet.body, snippet.tags)

    def add(self, title: str, body: str, tags: Iterable[str]) -> KnowledgeSnippet:
        snippet = KnowledgeSnippet(
            title=title,
            body=body,
            tags=frozenset(t for t in (normalize_tag(tag) for tag in tags) if t),
        )
        self.snippets.append(snippet)
        return snippet

    async def find_snippets(self, tags: Iterable[str], limit: int) -> List[KnowledgeSnippet]:
        wanted = {t for t in (normalize_tag(tag) for tag in tags) if t}
        if not wanted or limit <= 0:
            return []

        results = []
        for snippet in self.snippets:
            if snippet.tags & wanted:
                results.append(snippet)
                if len(results) >= limit:
                    break
        return results

    def load_json(self, path: Optional[str] = None) -> int:
        """Load snippets from a JSON list of {title, content|body, tags}.

        Without a path, the packaged seed file is used.
        """
        if path:
            raw = Path(path).read_text(encoding="utf-8")
        else:
            raw = resources.files("agrisense.data").joinpath("knowledge_seed.json").read_text(encoding="utf-8")

        entries = json.loads(raw)
        loaded = 0
        for entry in entries:
            body = entry.get("content") or entry.get("body")
            if not entry.get("title") or not body:
                logger.warning("Skipping malformed knowledge entry", entry_title=entry.get("title"))
                continue
            self.add(entry["title"], body, entry.get("tags", []))
            loaded += 1

        logger.info("Knowledge snippets loaded", count=loaded, path=path or "packaged seed")
        return loaded
