"""Domain service running one generation job end to end."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..orchestration.clock import CancellationToken
from ..orchestration.materializer import ArtifactMaterializer
from ..orchestration.poller import OperationPoller
from ..orchestration.submitter import JobSubmitter
from .generation_errors import MaterializationError, PollTerminalError, SubmissionError
from .generation_models import (
    ArtifactDescriptor,
    ArtifactStatus,
    FailureReason,
    GenerationRequest,
    PollAttempt,
)
from .progress import JobProgressBoard

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GenerationService:
    """Coordinates submit → poll → extract → materialize for a single request.

    Only :class:`SubmissionError` escapes ``generate``; once the provider has
    accepted the job every outcome is reported as an :class:`ArtifactDescriptor`.
    """

    submitter: JobSubmitter
    poller: OperationPoller
    materializer: ArtifactMaterializer
    progress: JobProgressBoard = field(default_factory=JobProgressBoard)
    max_request_seconds: float | None = None
    log: logging.Logger = field(default_factory=lambda: logger)

    def request_budget(self, request: GenerationRequest) -> float:
        """Seconds the whole request may take, before subtracting submit time."""
        limits = [self.poller.policy.budget_seconds]
        if self.max_request_seconds is not None:
            limits.append(self.max_request_seconds)
        if request.deadline_seconds is not None:
            limits.append(request.deadline_seconds)
        return min(limits)

    async def generate(
        self, request: GenerationRequest, *, cancel: CancellationToken | None = None
    ) -> ArtifactDescriptor:
        clock = self.poller.clock
        started = clock.monotonic()
        budget = self.request_budget(request)
        self.progress.start(
            request.job_id,
            request.kind,
            budget_seconds=budget,
            max_attempts=self.poller.policy.max_attempts,
        )
        self.log.info(
            "generation.job.start",
            extra={
                "job_id": request.job_id,
                "kind": request.kind.value,
                "budget_seconds": budget,
            },
        )

        try:
            job = await self.submitter.submit(request)
        except SubmissionError as exc:
            self.progress.finish(request.job_id, ArtifactStatus.FAILED)
            self.log.error(
                "generation.job.submission_failed",
                extra={
                    "job_id": request.job_id,
                    "upstream_status": exc.upstream_status,
                    "error": str(exc),
                },
            )
            raise

        operation_id = job.handle.operation_id
        self.progress.submitted(request.job_id, operation_id)

        def record(attempt: PollAttempt) -> None:
            self.progress.record_attempt(request.job_id, attempt)

        try:
            artifact = await self.poller.run(
                job,
                job_id=request.job_id,
                deadline_seconds=budget - (clock.monotonic() - started),
                cancel=cancel,
                on_attempt=record,
            )
            descriptor = self.materializer.completed(
                request, artifact, operation_id=operation_id
            )
        except PollTerminalError as exc:
            descriptor = self.materializer.failed(
                request, exc.reason, operation_id=operation_id, detail=str(exc)
            )
        except MaterializationError as exc:
            descriptor = self.materializer.failed(
                request,
                FailureReason.MATERIALIZATION_ERROR,
                operation_id=operation_id,
                detail=str(exc),
            )
        except Exception as exc:  # pragma: no cover - defensive
            self.log.exception(
                "generation.job.unexpected_error",
                extra={"job_id": request.job_id, "operation_id": operation_id},
            )
            descriptor = self.materializer.failed(
                request,
                FailureReason.INTERNAL_ERROR,
                operation_id=operation_id,
                detail=type(exc).__name__,
            )

        self.progress.finish(request.job_id, descriptor.status)
        self.log.info(
            "generation.job.finished",
            extra={
                "job_id": request.job_id,
                "operation_id": operation_id,
                "status": descriptor.status.value,
                "reason": descriptor.reason.value if descriptor.reason else None,
                "duration_seconds": round(clock.monotonic() - started, 3),
            },
        )
        return descriptor
