"""Bounded polling of a long-running operation handle."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..config import PollingPolicy
from ..generation.generation_errors import (
    ExtractionMiss,
    JobCancelledError,
    PollFatalError,
    PollTransientError,
    ProviderTransportError,
    TimeoutExceeded,
)
from ..generation.generation_models import (
    ExtractedArtifact,
    PollAttempt,
    PollOutcome,
    SubmittedJob,
)
from ..media.content_types import DEFAULT_CONTENT_TYPES
from ..providers.providers_base import PredictionProvider, ProviderResponse
from .clock import AsyncioClock, CancellationToken, Clock
from .extractors import ResultExtractor

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 2000

AttemptCallback = Callable[[PollAttempt], None]


@dataclass(slots=True)
class OperationPoller:
    """Drive ``Waiting → Polling → {Succeeded, Failed, TimedOut}`` for one handle.

    ``run`` returns the artifact on success and raises a
    :class:`~genjobs.generation.generation_errors.PollTerminalError` subclass
    otherwise. The clock is the only source of delay, so tests can simulate
    minutes of polling instantly.
    """

    provider: PredictionProvider
    extractor: ResultExtractor
    policy: PollingPolicy = field(default_factory=PollingPolicy)
    clock: Clock = field(default_factory=AsyncioClock)
    log: logging.Logger = field(default_factory=lambda: logger)

    async def run(
        self,
        job: SubmittedJob,
        *,
        job_id: str,
        deadline_seconds: float | None = None,
        cancel: CancellationToken | None = None,
        on_attempt: AttemptCallback | None = None,
    ) -> ExtractedArtifact:
        handle = job.handle
        budget = self.policy.budget_seconds
        if deadline_seconds is not None:
            budget = min(budget, deadline_seconds)
        started = self.clock.monotonic()
        deadline = started + budget
        log_extra = {"job_id": job_id, "operation_id": handle.operation_id}

        self.log.info(
            "generation.poll.waiting",
            extra={
                **log_extra,
                "initial_delay_seconds": self.policy.initial_delay_seconds,
                "budget_seconds": budget,
            },
        )
        await self._sleep(self.policy.initial_delay_seconds, deadline, cancel, 0, log_extra)

        default_content_type = DEFAULT_CONTENT_TYPES[handle.kind]
        for index in range(1, self.policy.max_attempts + 1):
            if cancel is not None and cancel.cancelled:
                raise JobCancelledError(f"Job cancelled: {cancel.reason}", attempts=index - 1)
            remaining = deadline - self.clock.monotonic()
            if remaining <= 0:
                raise self._timed_out(index - 1, log_extra, "deadline reached")

            attempt = PollAttempt(
                index=index,
                at=self.clock.utcnow(),
                outcome=PollOutcome.PENDING,
            )
            try:
                artifact = await self._attempt(
                    job, attempt, remaining, default_content_type, log_extra
                )
            except (PollTransientError, ExtractionMiss) as exc:
                self.log.info(
                    "generation.poll.pending attempt=%s/%s reason=%s",
                    index,
                    self.policy.max_attempts,
                    exc,
                    extra={**log_extra, "attempt": index, "status_code": attempt.status_code},
                )
            except PollFatalError as exc:
                attempt.outcome = PollOutcome.FATAL_ERROR
                exc.attempts = index
                self.log.error(
                    "generation.poll.fatal",
                    extra={**log_extra, "attempt": index, "error": str(exc)},
                )
                raise
            else:
                attempt.outcome = PollOutcome.SUCCEEDED
                self.log.info(
                    "generation.poll.succeeded",
                    extra={
                        **log_extra,
                        "attempt": index,
                        "strategy": artifact.source_strategy.value,
                        "size_bytes": artifact.size_bytes,
                        "elapsed_seconds": round(self.clock.monotonic() - started, 3),
                    },
                )
                return artifact
            finally:
                if on_attempt is not None:
                    on_attempt(attempt)

            if index < self.policy.max_attempts:
                await self._sleep(self.policy.interval_seconds, deadline, cancel, index, log_extra)

        raise self._timed_out(self.policy.max_attempts, log_extra, "attempts exhausted")

    async def _attempt(
        self,
        job: SubmittedJob,
        attempt: PollAttempt,
        remaining: float,
        default_content_type: str,
        log_extra: dict[str, Any],
    ) -> ExtractedArtifact:
        handle = job.handle
        try:
            response = await self.provider.fetch_operation(
                handle.kind,
                handle.operation_id,
                token=job.bearer_token,
                timeout=remaining,
            )
        except ProviderTransportError as exc:
            raise PollTransientError(str(exc)) from exc

        attempt.status_code = response.status_code
        attempt.raw_response = response.body

        if not response.ok:
            if response.status_code in self.policy.not_ready_statuses:
                raise PollTransientError(f"not ready (status={response.status_code})")
            raise PollFatalError(
                f"fetch-status failed (status={response.status_code}): {response.text[:300]}",
                upstream_status=response.status_code,
            )

        operation_error = _operation_error(response.body)
        if operation_error:
            raise PollFatalError(f"operation failed: {operation_error}")

        artifact = await self.extractor.attempt(
            response.body,
            token=job.bearer_token,
            default_content_type=default_content_type,
        )
        if artifact is None:
            self.log.debug(
                "generation.poll.body %s",
                response_preview(response),
                extra={**log_extra, "attempt": attempt.index},
            )
            raise ExtractionMiss("no artifact in response yet")
        return artifact

    async def _sleep(
        self,
        seconds: float,
        deadline: float,
        cancel: CancellationToken | None,
        attempts: int,
        log_extra: dict[str, Any],
    ) -> None:
        if self.clock.monotonic() + seconds > deadline:
            raise self._timed_out(attempts, log_extra, "next wait would cross deadline")
        try:
            await self.clock.sleep(seconds, cancel=cancel)
        except JobCancelledError as exc:
            exc.attempts = attempts
            self.log.warning(
                "generation.poll.cancelled",
                extra={**log_extra, "attempts": attempts, "reason": cancel.reason if cancel else None},
            )
            raise

    def _timed_out(self, attempts: int, log_extra: dict[str, Any], why: str) -> TimeoutExceeded:
        self.log.warning(
            "generation.poll.timed_out",
            extra={**log_extra, "attempts": attempts, "why": why},
        )
        return TimeoutExceeded(f"Generation timed out after {attempts} attempts ({why})", attempts=attempts)


def _operation_error(body: Any) -> str | None:
    if not isinstance(body, dict) or body.get("done") is not True:
        return None
    error = body.get("error")
    if not isinstance(error, dict):
        return None
    code = error.get("code", "unknown")
    message = (error.get("message") or "").strip() or "operation failed"
    return f"{code} {message}"


def response_preview(response: ProviderResponse) -> str:
    """Serialize the body with large strings masked, truncated for logs."""
    preview = json.dumps(_mask_large_strings(response.body), ensure_ascii=False, default=str)
    if len(preview) > PREVIEW_LIMIT:
        preview = preview[:PREVIEW_LIMIT] + "...(truncated)"
    return preview


def _mask_large_strings(obj: Any) -> Any:
    """Replace base64 blobs with their length to avoid logging payloads."""
    if isinstance(obj, dict):
        return {key: _mask_large_strings(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_mask_large_strings(item) for item in obj]
    if isinstance(obj, str) and len(obj) > 256:
        return f"<{len(obj)} chars>"
    return obj
