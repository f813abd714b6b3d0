"""
Business logic services.

Provides:
- Advisory pipeline (job submission and supervised generation)
- Text fallback chain and vision disease detection chain
- Knowledge context retrieval
- Report formatting and localization
- Job lifecycle management (memory or Redis-backed)
"""

from .pipeline import AdvisoryPipeline
from .text_advisor import TextAdvisor
from .disease_detector import DiseaseDetector
from .context_retriever import ContextRetriever
from .report_formatter import ReportFormatter
from .job_manager import (
    Job,
    JobStatus,
    JobStore,
    MemoryJobStore,
    JobLifecycleManager,
    JobNotFoundError,
    JobStoreError,
)

__all__ = [
    "AdvisoryPipeline",
    "TextAdvisor",
    "DiseaseDetector",
    "ContextRetriever",
    "ReportFormatter",
    "Job",
    "JobStatus",
    "JobStore",
    "MemoryJobStore",
    "JobLifecycleManager",
    "JobNotFoundError",
    "JobStoreError"
]
