"""Coarse, in-process job progress for the status endpoint.

The board is written only from the event loop and is never consulted by the
poller, so status requests cannot influence polling cadence.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum

from .generation_models import ArtifactStatus, GenerationKind, PollAttempt


class JobPhase(StrEnum):
    SUBMITTING = "submitting"
    WAITING = "waiting"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class JobProgress:
    job_id: str
    kind: GenerationKind
    budget_seconds: float
    max_attempts: int
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    phase: JobPhase = JobPhase.SUBMITTING
    attempt: int = 0
    operation_id: str | None = None
    finished_at: datetime | None = None

    @property
    def terminal(self) -> bool:
        return self.phase in (JobPhase.COMPLETED, JobPhase.FAILED)

    def elapsed_seconds(self, now: datetime | None = None) -> float:
        end = self.finished_at or now or datetime.now(timezone.utc)
        return max((end - self.started_at).total_seconds(), 0.0)

    def percent(self, now: datetime | None = None) -> int:
        if self.terminal:
            return 100
        if self.budget_seconds <= 0:
            return 0
        return min(int(self.elapsed_seconds(now) / self.budget_seconds * 100), 99)

    def remaining_seconds(self, now: datetime | None = None) -> int:
        if self.terminal:
            return 0
        return max(int(self.budget_seconds - self.elapsed_seconds(now)), 0)


@dataclass(slots=True)
class JobProgressBoard:
    """Bounded table of recent jobs, oldest evicted first."""

    capacity: int = 256
    _entries: OrderedDict[str, JobProgress] = field(default_factory=OrderedDict)

    def start(
        self, job_id: str, kind: GenerationKind, *, budget_seconds: float, max_attempts: int
    ) -> JobProgress:
        progress = JobProgress(
            job_id=job_id,
            kind=kind,
            budget_seconds=budget_seconds,
            max_attempts=max_attempts,
        )
        self._entries[job_id] = progress
        self._entries.move_to_end(job_id)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)
        return progress

    def submitted(self, job_id: str, operation_id: str) -> None:
        progress = self._entries.get(job_id)
        if progress is not None:
            progress.operation_id = operation_id
            progress.phase = JobPhase.WAITING

    def record_attempt(self, job_id: str, attempt: PollAttempt) -> None:
        progress = self._entries.get(job_id)
        if progress is not None:
            progress.phase = JobPhase.POLLING
            progress.attempt = attempt.index

    def finish(self, job_id: str, status: ArtifactStatus) -> None:
        progress = self._entries.get(job_id)
        if progress is not None:
            progress.phase = (
                JobPhase.COMPLETED if status is ArtifactStatus.COMPLETED else JobPhase.FAILED
            )
            progress.finished_at = datetime.now(timezone.utc)

    def get(self, job_id: str) -> JobProgress | None:
        return self._entries.get(job_id)
