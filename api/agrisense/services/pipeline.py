from __future__ import annotations
import asyncio
import time
from typing import Any, Dict, Optional, Set, Tuple
from agrisense.config import GENERATION_TIMEOUT_SECONDS, VISION_TREATMENT_ADVICE
from agrisense.obs.logging_setup import get_logger
from agrisense.obs.metrics import inc_counter
from agrisense.obs.prometheus_metrics import prometheus_metrics
from agrisense.models.results import Capability, ProviderResult, Severity
from agrisense.services.context_retriever import ContextRetriever
from agrisense.services.disease_detector import DiseaseDetector
from agrisense.services.job_manager import Job, JobLifecycleManager, JobStatus, JobStoreError, JobNotFoundError
from agrisense.services.report_formatter import ReportFormatter
from agrisense.services.text_advisor import TextAdvisor
from agrisense.utils.rooms import DeliveryChannel, TYPING_EVENT, RESULT_EVENT

logger = get_logger(__name__)

APOLOGY_MESSAGE = (
    "Sorry, I could not prepare an answer to your question right now. "
    "Please try again in a little while."
)

def treatment_question(disease: str) -> str:
    return (
        f"My plant shows signs of the disease {disease}. What is the recommended treatment? "
        "Give practical organic and chemical options and how to stop it spreading."
    )

class AdvisoryPipeline:
    """Accepts advisory requests and runs generation as supervised background tasks.

    `submit` returns as soon as the pending job is stored. The detached task
    makes exactly one terminal write and publishes exactly one result event to
    the job's room, whether generation succeeds, raises or times out.
    """

    def __init__(
        self,
        lifecycle: JobLifecycleManager,
        retriever: ContextRetriever,
        text_advisor: TextAdvisor,
        disease_detector: DiseaseDetector,
        formatter: ReportFormatter,
        channel: DeliveryChannel,
        generation_timeout: float = GENERATION_TIMEOUT_SECONDS,
        treatment_advice: bool = VISION_TREATMENT_ADVICE,
    ):
        self.lifecycle = lifecycle
        self.retriever = retriever
        self.text_advisor = text_advisor
        self.disease_detector = disease_detector
        self.formatter = formatter
        self.channel = channel
        self.generation_timeout = generation_timeout
        self.treatment_advice = treatment_advice
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active_tasks(self) -> int:
        return len(self._tasks)

    def provider_availability(self) -> Dict[str, bool]:
        return {
            "text": self.text_advisor.provider.available,
            "vision": self.disease_detector.vision.available,
            "classifier": self.disease_detector.classifier.available,
            "translator": self.formatter.translator.available,
        }

    async def submit(
        self,
        text: Optional[str] = None,
        image_bytes: Optional[bytes] = None,
        room_id: Optional[str] = None,
        user_id: Optional[str] = None,
        language: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> str:
        """Create a pending job, start generation in the background and return the job id."""
        if image_bytes is None and not (text and text.strip()):
            raise ValueError("a question text or an image is required")

        capability = Capability.VISION if image_bytes is not None else Capability.TEXT
        metadata: Dict[str, Any] = {"capability": capability.value}
        if image_bytes is not None:
            metadata["image"] = {
                "size_bytes": len(image_bytes),
                "content_type": content_type or "image/jpeg",
            }

        job = await self.lifecycle.create(
            text=text,
            user_id=user_id,
            room_id=room_id,
            language=language,
            metadata=metadata,
        )

        task = asyncio.create_task(
            self._supervise(job, capability, image_bytes, content_type or "image/jpeg"),
            name=f"generate-{job.job_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        prometheus_metrics.update_active_jobs(len(self._tasks))
        return job.job_id

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        prometheus_metrics.update_active_jobs(len(self._tasks))

    async def get_job(self, job_id: str) -> Optional[Job]:
        return await self.lifecycle.get(job_id)

    def _publish(self, room_id: Optional[str], event: str, payload: Dict[str, Any]) -> int:
        if not room_id:
            return 0
        try:
            return self.channel.publish(room_id, event, payload)
        except Exception as e:
            # Delivery is best-effort; the stored job remains the source of truth.
            logger.error("Room delivery failed", room_id=room_id, event=event, error=str(e))
            inc_counter("delivery_failures_total", {"event": event})
            return 0

    async def _text_report(self, job: Job) -> Tuple[str, ProviderResult]:
        context = await self.retriever.build_context(job.text or "")
        result = await self.text_advisor.advise(job.text or "", context)
        return self.formatter.format(result), result

    async def _vision_report(self, job: Job, image_bytes: bytes, content_type: str) -> Tuple[str, ProviderResult]:
        result = await self.disease_detector.identify_disease(image_bytes, content_type)
        report = self.formatter.format(result)

        if self.treatment_advice and not result.synthetic and result.primary.severity != Severity.NONE:
            disease = result.primary.label
            context = await self.retriever.build_context(disease)
            advice = await self.text_advisor.advise(treatment_question(disease), context)
            report += f"\n\nTreatment Recommendations:\n{advice.text}"
        return report, result

    async def run_generation(
        self,
        job: Job,
        capability: Capability,
        image_bytes: Optional[bytes] = None,
        content_type: str = "image/jpeg",
    ) -> Tuple[str, Dict[str, Any]]:
        """Produce the final (localized) report and the metadata to store with it."""
        self._publish(job.room_id, TYPING_EVENT, {"job_id": job.job_id, "timestamp": time.time()})

        if capability == Capability.VISION:
            report, result = await self._vision_report(job, image_bytes or b"", content_type)
        else:
            report, result = await self._text_report(job)

        report = await self.formatter.localize(report, job.language, result)

        metadata: Dict[str, Any] = {"source": result.source, "synthetic": result.synthetic}
        if capability == Capability.VISION:
            metadata["diagnosis"] = result.to_dict()
        return report, metadata

    async def _supervise(
        self,
        job: Job,
        capability: Capability,
        image_bytes: Optional[bytes],
        content_type: str,
    ) -> None:
        try:
            await self._generate_and_finish(job, capability, image_bytes, content_type)
        except Exception as e:
            logger.error("Could not finish job", job_id=job.job_id, error=str(e), exc_info=True)
            inc_counter("job_finish_failures_total", {"capability": capability.value})

    async def _generate_and_finish(
        self,
        job: Job,
        capability: Capability,
        image_bytes: Optional[bytes],
        content_type: str,
    ) -> None:
        start_time = time.time()
        try:
            report, metadata = await asyncio.wait_for(
                self.run_generation(job, capability, image_bytes, content_type),
                timeout=self.generation_timeout,
            )
        except asyncio.TimeoutError:
            logger.error("Generation timed out", job_id=job.job_id, timeout=self.generation_timeout)
            await self._finish_failed(job, capability, f"generation exceeded {self.generation_timeout}s", start_time)
            return
        except Exception as e:
            logger.error("Generation failed", job_id=job.job_id, error=str(e), exc_info=True)
            await self._finish_failed(job, capability, f"{type(e).__name__}: {e}", start_time)
            return

        await self._finish_answered(job, capability, report, metadata, start_time)

    async def _finish_answered(
        self,
        job: Job,
        capability: Capability,
        report: str,
        metadata: Dict[str, Any],
        start_time: float,
    ) -> None:
        try:
            stored = await self.lifecycle.complete(job.job_id, report, metadata)
            if stored.status != JobStatus.ANSWERED:
                return
        except (JobStoreError, JobNotFoundError) as e:
            logger.error("Could not persist answer, delivering anyway", job_id=job.job_id, error=str(e))

        prometheus_metrics.record_job(capability.value, JobStatus.ANSWERED.value, time.time() - start_time)
        self._publish(job.room_id, RESULT_EVENT, {
            "job_id": job.job_id,
            "status": JobStatus.ANSWERED.value,
            "response": report,
            "source": metadata.get("source"),
            "synthetic": metadata.get("synthetic", False),
            "timestamp": time.time(),
        })

    async def _finish_failed(self, job: Job, capability: Capability, reason: str, start_time: float) -> None:
        try:
            stored = await self.lifecycle.fail(job.job_id, reason)
            if stored.status != JobStatus.ERROR:
                return
        except (JobStoreError, JobNotFoundError) as e:
            logger.error("Could not persist job failure", job_id=job.job_id, error=str(e))

        prometheus_metrics.record_job(capability.value, JobStatus.ERROR.value, time.time() - start_time)
        self._publish(job.room_id, RESULT_EVENT, {
            "job_id": job.job_id,
            "status": JobStatus.ERROR.value,
            "response": APOLOGY_MESSAGE,
            "timestamp": time.time(),
        })

    async def wait_idle(self) -> None:
        """Wait for every running generation task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float = 10.0) -> None:
        if not self._tasks:
            return
        logger.info("Waiting for running generation tasks", count=len(self._tasks))
        done, pending = await asyncio.wait(list(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning("Cancelled unfinished generation tasks", count=len(pending))
