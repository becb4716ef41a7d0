"""HTTP routes for generation jobs."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..orchestration.clock import CancellationToken
from .generation_errors import InvalidRequestError, SubmissionError
from .generation_models import FailureReason, GenerationKind
from .generation_schemas import (
    ArtifactDescriptorSchema,
    GenerationErrorSchema,
    GenerationRequestSchema,
    JobStatusSchema,
)
from .generation_service import GenerationService
from .validation import RequestValidator

router = APIRouter(prefix="/api", tags=["generation"])
logger = logging.getLogger(__name__)

DISCONNECT_CHECK_SECONDS = 1.0


def get_generation_service(request: Request) -> GenerationService:
    """Fetch generation service from application state."""
    try:
        return request.app.state.generation_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("GenerationService is not configured") from exc


def get_request_validator(request: Request) -> RequestValidator:
    return getattr(request.app.state, "request_validator", None) or RequestValidator()


@router.post("/videos/generate", response_model=ArtifactDescriptorSchema)
async def generate_video(
    payload: GenerationRequestSchema,
    request: Request,
    service: GenerationService = Depends(get_generation_service),
    validator: RequestValidator = Depends(get_request_validator),
) -> ArtifactDescriptorSchema:
    """Submit a video job, wait for it and return the inlined artifact."""
    return await _run(GenerationKind.VIDEO, payload, request, service, validator)


@router.post("/images/generate", response_model=ArtifactDescriptorSchema)
async def generate_image(
    payload: GenerationRequestSchema,
    request: Request,
    service: GenerationService = Depends(get_generation_service),
    validator: RequestValidator = Depends(get_request_validator),
) -> ArtifactDescriptorSchema:
    return await _run(GenerationKind.IMAGE, payload, request, service, validator)


@router.get("/videos/{job_id}/status", response_model=JobStatusSchema)
async def job_status(
    job_id: str, service: GenerationService = Depends(get_generation_service)
) -> JobStatusSchema:
    """Coarse progress for UI display; independent of the poller."""
    progress = service.progress.get(job_id)
    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=_error_detail("job_not_found"),
        )
    return JobStatusSchema.from_progress(progress)


@router.get("/health")
async def health(service: GenerationService = Depends(get_generation_service)) -> dict[str, object]:
    return {"status": "ok", "pollBudgetSeconds": service.poller.policy.budget_seconds}


async def _run(
    kind: GenerationKind,
    payload: GenerationRequestSchema,
    request: Request,
    service: GenerationService,
    validator: RequestValidator,
) -> ArtifactDescriptorSchema:
    try:
        generation_request = validator.build(
            kind=kind,
            prompt=payload.prompt,
            settings=payload.settings.as_mapping(),
            deadline_seconds=payload.deadline_seconds,
            job_id=payload.job_id,
        )
    except InvalidRequestError as exc:
        logger.warning("generation.invalid_request", extra={"kind": kind.value, "error": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_detail(FailureReason.INVALID_REQUEST.value, str(exc)),
        ) from exc

    cancel = CancellationToken()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel))
    try:
        descriptor = await service.generate(generation_request, cancel=cancel)
    except SubmissionError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=_error_detail(
                FailureReason.SUBMISSION_FAILED.value,
                str(exc),
                upstream_status=exc.upstream_status,
            ),
        ) from exc
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher

    return ArtifactDescriptorSchema.from_descriptor(descriptor)


async def _watch_disconnect(request: Request, cancel: CancellationToken) -> None:
    while not cancel.cancelled:
        if await request.is_disconnected():
            logger.warning("generation.client_disconnected")
            cancel.cancel("client_disconnected")
            return
        await asyncio.sleep(DISCONNECT_CHECK_SECONDS)


def _error_detail(
    failure_reason: str, details: str | None = None, *, upstream_status: int | None = None
) -> dict[str, object]:
    return GenerationErrorSchema(
        status="error",
        failure_reason=failure_reason,
        details=details,
        upstream_status=upstream_status,
    ).model_dump(exclude_none=True)
