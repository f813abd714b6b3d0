from __future__ import annotations
import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Dict, Any, Optional
from enum import Enum
from agrisense.obs.logging_setup import get_logger
from agrisense.obs.decorators import traced
from agrisense.obs.metrics import inc_counter

logger = get_logger(__name__)

class JobStatus(str, Enum):
    PENDING = "pending"
    ANSWERED = "answered"
    ERROR = "error"

TERMINAL_STATUSES = (JobStatus.ANSWERED, JobStatus.ERROR)

class JobNotFoundError(KeyError):
    """No job exists with the given id."""

class JobStoreError(Exception):
    """The job store could not be read or written."""

@dataclass
class Job:
    job_id: str
    user_id: Optional[str] = None
    text: Optional[str] = None
    room_id: Optional[str] = None
    language: Optional[str] = None
    status: JobStatus = JobStatus.PENDING
    result: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

def new_job_id() -> str:
    return f"job_{uuid.uuid4().hex[:12]}"

class JobStore(ABC):
    """Persistence for jobs. Implementations raise JobStoreError on storage failure."""

    @abstractmethod
    async def insert(self, job: Job) -> None:
        """Store a new job."""

    @abstractmethod
    async def load(self, job_id: str) -> Optional[Job]:
        """Return the job or None."""

    @abstractmethod
    async def finalize(self, job_id: str, status: JobStatus, result: Optional[str], metadata: Dict[str, Any]) -> Optional[Job]:
        """Move a pending job to a terminal status atomically.

        Returns the updated job, or None when the job was already terminal.
        Raises JobNotFoundError for unknown ids.
        """

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy"}

class MemoryJobStore(JobStore):
    """In-memory job store for a single process."""

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = asyncio.Lock()

    async def insert(self, job: Job) -> None:
        async with self._lock:
            self._jobs[job.job_id] = job

    async def load(self, job_id: str) -> Optional[Job]:
        job = self._jobs.get(job_id)
        return replace(job, metadata=dict(job.metadata)) if job else None

    async def finalize(self, job_id: str, status: JobStatus, result: Optional[str], metadata: Dict[str, Any]) -> Optional[Job]:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if job.is_terminal:
                return None

            job.status = status
            job.result = result
            job.metadata.update(metadata)
            job.updated_at = time.time()
            return replace(job, metadata=dict(job.metadata))

    async def health_check(self) -> Dict[str, Any]:
        pending = sum(1 for job in self._jobs.values() if job.status == JobStatus.PENDING)
        return {"status": "healthy", "backend": "memory", "jobs": len(self._jobs), "pending": pending}

class JobLifecycleManager:
    """Owns job state transitions: pending -> answered | error, exactly once."""

    def __init__(self, store: JobStore):
        self.store = store

    @traced("job_create")
    async def create(
        self,
        text: Optional[str] = None,
        user_id: Optional[str] = None,
        room_id: Optional[str] = None,
        language: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Job:
        job = Job(
            job_id=new_job_id(),
            user_id=user_id,
            text=text,
            room_id=room_id,
            language=language,
            metadata=dict(metadata or {}),
        )
        await self.store.insert(job)
        inc_counter("jobs_created_total")
        logger.info("Job created", job_id=job.job_id, room_id=room_id, user_id=user_id)
        return job

    async def get(self, job_id: str) -> Optional[Job]:
        return await self.store.load(job_id)

    async def _finalize(self, job_id: str, status: JobStatus, result: Optional[str], metadata: Dict[str, Any]) -> Job:
        updated = await self.store.finalize(job_id, status, result, metadata)
        if updated is not None:
            inc_counter("jobs_finalized_total", {"status": status.value})
            logger.info("Job finalized", job_id=job_id, status=status.value)
            return updated

        current = await self.store.load(job_id)
        if current is None:
            raise JobNotFoundError(job_id)
        logger.warning(
            "Ignoring second terminal write for job",
            job_id=job_id,
            requested=status.value,
            current=current.status.value
        )
        inc_counter("jobs_duplicate_terminal_total")
        return current

    @traced("job_complete")
    async def complete(self, job_id: str, result: str, metadata: Optional[Dict[str, Any]] = None) -> Job:
        return await self._finalize(job_id, JobStatus.ANSWERED, result, dict(metadata or {}))

    @traced("job_fail")
    async def fail(self, job_id: str, reason: str, metadata: Optional[Dict[str, Any]] = None) -> Job:
        data = dict(metadata or {})
        data["error"] = reason
        return await self._finalize(job_id, JobStatus.ERROR, None, data)
