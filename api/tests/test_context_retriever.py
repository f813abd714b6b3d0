from __future__ import annotations
import pytest
from agrisense.obs.metrics import metrics_registry
from agrisense.services.context_retriever import ContextRetriever, extract_terms
from agrisense.store.knowledge_store import InMemoryKnowledgeStore, KnowledgeStore

class CountingStore(InMemoryKnowledgeStore):
    def __init__(self):
        super().__init__()
        self.lookups = []

    async def find_snippets(self, tags, limit):
        self.lookups.append(set(tags))
        return await super().find_snippets(tags, limit)

class ExplodingStore(KnowledgeStore):
    async def find_snippets(self, tags, limit):
        raise ConnectionError("knowledge database unreachable")

def make_store() -> CountingStore:
    store = CountingStore()
    for i in range(6):
        store.add(f"Tomato note {i}", f"Tomato advice number {i}", ["tomato", "tomatoes"])
    store.add("Paddy", "Keep 5 cm of standing water.", ["paddy", "rice"])
    return store

def test_extract_terms_keeps_first_five():
    terms = extract_terms("How  do I grow TOMATOES, rice and wheat?")
    assert terms == ["how", "do", "i", "grow", "tomatoes"]

def test_extract_terms_empty():
    assert extract_terms("") == []
    assert extract_terms("   ?? !! ") == []

@pytest.mark.asyncio
async def test_context_is_bounded_by_limit():
    retriever = ContextRetriever(make_store(), limit=3)
    context = await retriever.build_context("when to plant tomatoes")
    assert context.count("Tomato note") == 3
    assert context.split("\n\n")[0] == "Tomato note 0: Tomato advice number 0"

@pytest.mark.asyncio
async def test_terms_beyond_fifth_are_ignored():
    retriever = ContextRetriever(make_store(), limit=3)
    assert await retriever.build_context("one two three four five paddy") == ""

@pytest.mark.asyncio
async def test_no_match_returns_empty_string():
    retriever = ContextRetriever(make_store())
    assert await retriever.build_context("coffee berry borer") == ""
    assert await retriever.build_context("") == ""

@pytest.mark.asyncio
async def test_store_failure_degrades_to_empty_context():
    retriever = ContextRetriever(ExplodingStore())
    assert await retriever.build_context("tomato blight") == ""

@pytest.mark.asyncio
async def test_repeated_lookup_is_cached():
    store = make_store()
    retriever = ContextRetriever(store)
    first = await retriever.build_context("paddy water")
    second = await retriever.build_context("paddy water")
    assert first == second == "Paddy: Keep 5 cm of standing water."
    assert len(store.lookups) == 1
    assert metrics_registry.get_counter("knowledge_cache_hits") == 1

def test_packaged_seed_loads():
    store = InMemoryKnowledgeStore()
    assert store.load_json() > 0
    assert all(s.tags for s in store.snippets)
