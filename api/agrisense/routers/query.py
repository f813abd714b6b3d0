from __future__ import annotations
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from agrisense.config import MAX_IMAGE_BYTES
from agrisense.deps.pipeline import get_pipeline
from agrisense.models.schemas import QueryRequest, QueryCreatedResponse, QueryStatusResponse
from agrisense.obs.logging_setup import get_logger
from agrisense.services.job_manager import JobStoreError
from agrisense.services.pipeline import AdvisoryPipeline

logger = get_logger(__name__)

router = APIRouter(prefix="/query", tags=["query"])

@router.post("", response_model=QueryCreatedResponse, status_code=201)
async def submit_question(
    request: QueryRequest,
    pipeline: AdvisoryPipeline = Depends(get_pipeline),
) -> QueryCreatedResponse:
    """Accept a text question; the answer arrives later by polling or in the room."""
    try:
        job_id = await pipeline.submit(
            text=request.text,
            room_id=request.room_id,
            user_id=request.user_id,
            language=request.language,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except JobStoreError as e:
        logger.error("Could not create job", error=str(e))
        raise HTTPException(status_code=503, detail="Job store unavailable")

    return QueryCreatedResponse(id=job_id)

@router.post("/image", response_model=QueryCreatedResponse, status_code=201)
async def submit_image(
    file: UploadFile = File(..., description="Photo of the affected plant or leaf"),
    text: Optional[str] = Form(default=None),
    user_id: Optional[str] = Form(default=None),
    room_id: Optional[str] = Form(default=None),
    language: Optional[str] = Form(default=None),
    pipeline: AdvisoryPipeline = Depends(get_pipeline),
) -> QueryCreatedResponse:
    """Accept a plant photo for disease identification."""
    if file.content_type and not file.content_type.startswith("image/"):
        raise HTTPException(status_code=415, detail=f"Expected an image upload, got {file.content_type}")

    image_bytes = await file.read(MAX_IMAGE_BYTES + 1)
    if len(image_bytes) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=413, detail=f"Image larger than {MAX_IMAGE_BYTES} bytes")

    try:
        job_id = await pipeline.submit(
            text=text,
            image_bytes=image_bytes,
            room_id=room_id,
            user_id=user_id,
            language=language,
            content_type=file.content_type or "image/jpeg",
        )
    except JobStoreError as e:
        logger.error("Could not create job", error=str(e))
        raise HTTPException(status_code=503, detail="Job store unavailable")

    logger.info("Image query accepted", job_id=job_id, size_bytes=len(image_bytes), upload_name=file.filename)
    return QueryCreatedResponse(id=job_id)

@router.get("/{job_id}", response_model=QueryStatusResponse)
async def get_query(
    job_id: str,
    pipeline: AdvisoryPipeline = Depends(get_pipeline),
) -> QueryStatusResponse:
    """Poll a job's status and, once terminal, its answer."""
    try:
        job = await pipeline.get_job(job_id)
    except JobStoreError as e:
        logger.error("Could not read job", job_id=job_id, error=str(e))
        raise HTTPException(status_code=503, detail="Job store unavailable")

    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    return QueryStatusResponse(
        id=job.job_id,
        status=job.status.value,
        response=job.result,
        created_at=job.created_at,
        updated_at=job.updated_at,
        metadata=job.metadata,
    )
