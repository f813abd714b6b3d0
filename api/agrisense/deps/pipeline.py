from __future__ import annotations
from typing import Optional
from agrisense.config import JOB_STORE, KNOWLEDGE_SEED_PATH
from agrisense.deps.providers import ProviderSet, build_providers
from agrisense.obs.logging_setup import get_logger
from agrisense.services.context_retriever import ContextRetriever
from agrisense.services.disease_detector import DiseaseDetector
from agrisense.services.job_manager import JobLifecycleManager, JobStore, MemoryJobStore
from agrisense.services.pipeline import AdvisoryPipeline
from agrisense.services.report_formatter import ReportFormatter
from agrisense.services.text_advisor import TextAdvisor
from agrisense.store.knowledge_store import InMemoryKnowledgeStore
from agrisense.utils.rooms import RoomHub

logger = get_logger(__name__)

_room_hub: Optional[RoomHub] = None
_pipeline: Optional[AdvisoryPipeline] = None

def build_job_store(backend: str = JOB_STORE) -> JobStore:
    if backend == "redis":
        from agrisense.services.redis_job_manager import RedisJobStore
        return RedisJobStore()
    if backend != "memory":
        logger.warning("Unknown JOB_STORE, using memory", backend=backend)
    return MemoryJobStore()

def build_knowledge_store(seed_path: Optional[str] = KNOWLEDGE_SEED_PATH) -> InMemoryKnowledgeStore:
    store = InMemoryKnowledgeStore()
    try:
        store.load_json(seed_path)
    except (OSError, ValueError) as e:
        logger.error("Knowledge seed could not be loaded, starting empty", path=seed_path, error=str(e))
    return store

def build_pipeline(
    providers: Optional[ProviderSet] = None,
    job_store: Optional[JobStore] = None,
    channel: Optional[RoomHub] = None,
) -> AdvisoryPipeline:
    """Wire the pipeline from configuration; every argument can be injected."""
    providers = providers or build_providers()
    text_advisor = TextAdvisor(providers.text)
    return AdvisoryPipeline(
        lifecycle=JobLifecycleManager(job_store or build_job_store()),
        retriever=ContextRetriever(build_knowledge_store()),
        text_advisor=text_advisor,
        disease_detector=DiseaseDetector(providers.vision, providers.classifier),
        formatter=ReportFormatter(providers.translator),
        channel=channel or get_room_hub(),
    )

def get_room_hub() -> RoomHub:
    global _room_hub
    if _room_hub is None:
        _room_hub = RoomHub()
    return _room_hub

def get_pipeline() -> AdvisoryPipeline:
    """FastAPI dependency returning the process-wide pipeline."""
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline()
    return _pipeline

def peek_pipeline() -> Optional[AdvisoryPipeline]:
    return _pipeline
