from __future__ import annotations
import asyncio
from typing import Any, Dict, List, Optional, Tuple
from agrisense.providers.base import (
    TextProvider,
    VisionProvider,
    ImageClassifier,
    Translator,
    ProviderError,
    UnavailableProvider,
)
from agrisense.services.context_retriever import ContextRetriever
from agrisense.services.disease_detector import DiseaseDetector
from agrisense.services.job_manager import JobLifecycleManager, JobStore, JobStoreError, MemoryJobStore
from agrisense.services.pipeline import AdvisoryPipeline
from agrisense.services.report_formatter import ReportFormatter
from agrisense.services.text_advisor import TextAdvisor
from agrisense.store.knowledge_store import InMemoryKnowledgeStore
from agrisense.utils.rooms import DeliveryChannel, Subscription

class FakeTextProvider(TextProvider):
    def __init__(self, answer: Optional[str] = "Plant tomatoes after the last frost.", error: Optional[Exception] = None, delay: float = 0):
        self.answer = answer
        self.error = error
        self.delay = delay
        self.prompts: List[Tuple[str, Optional[str]]] = []

    @property
    def name(self) -> str:
        return "fake-text"

    async def generate_text(self, prompt: str, system: Optional[str] = None) -> str:
        self.prompts.append((prompt, system))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.answer

class FakeVisionProvider(VisionProvider):
    def __init__(self, response: str = "", error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return "fake-vision"

    async def generate_vision(self, prompt: str, image_bytes: bytes, content_type: str = "image/jpeg") -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.response

class FakeClassifier(ImageClassifier):
    def __init__(self, predictions: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None):
        self.predictions = predictions or []
        self.error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return "fake-classifier"

    async def classify_image(self, image_bytes: bytes) -> List[Dict[str, Any]]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.predictions

class FakeTranslator(Translator):
    def __init__(self, prefix: str = "[translated] ", error: Optional[Exception] = None):
        self.prefix = prefix
        self.error = error
        self.requests: List[str] = []

    @property
    def name(self) -> str:
        return "fake-translator"

    async def translate(self, text: str, target_language: str) -> str:
        self.requests.append(target_language)
        if self.error is not None:
            raise self.error
        return f"{self.prefix}{text}"

class RecordingChannel(DeliveryChannel):
    """Delivery channel that records every publish."""

    def __init__(self):
        self.published: List[Tuple[str, str, Dict[str, Any]]] = []

    def join(self, connection_id: str, room_id: str) -> Subscription:
        return Subscription(connection_id=connection_id, room_id=room_id, queue=asyncio.Queue())

    def leave(self, connection_id: str) -> None:
        pass

    def publish(self, room_id: str, event: str, payload: Dict[str, Any]) -> int:
        self.published.append((room_id, event, payload))
        return 1

    def events(self, event: str) -> List[Dict[str, Any]]:
        return [payload for _, name, payload in self.published if name == event]

class BrokenJobStore(MemoryJobStore):
    """Accepts new jobs but fails every terminal write."""

    async def finalize(self, job_id, status, result, metadata):
        raise JobStoreError("disk full")

def transport_error(provider: str = "fake") -> ProviderError:
    return ProviderError(provider, "transport error: connection refused")

def make_pipeline(
    text: Optional[TextProvider] = None,
    vision: Optional[VisionProvider] = None,
    classifier: Optional[ImageClassifier] = None,
    translator: Optional[Translator] = None,
    store: Optional[JobStore] = None,
    channel: Optional[DeliveryChannel] = None,
    knowledge: Optional[InMemoryKnowledgeStore] = None,
    generation_timeout: float = 5.0,
    treatment_advice: bool = False,
) -> AdvisoryPipeline:
    return AdvisoryPipeline(
        lifecycle=JobLifecycleManager(store or MemoryJobStore()),
        retriever=ContextRetriever(knowledge or InMemoryKnowledgeStore()),
        text_advisor=TextAdvisor(text or UnavailableProvider("text-llm")),
        disease_detector=DiseaseDetector(
            vision or UnavailableProvider("vision-llm"),
            classifier or UnavailableProvider("image-classifier"),
        ),
        formatter=ReportFormatter(translator or UnavailableProvider("translator"), default_language="en"),
        channel=channel or RecordingChannel(),
        generation_timeout=generation_timeout,
        treatment_advice=treatment_advice,
    )
