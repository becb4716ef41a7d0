"""Data structures for the generation pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class GenerationKind(StrEnum):
    """Kinds of media the orchestrator can request."""

    VIDEO = "video"
    IMAGE = "image"


class ArtifactStatus(StrEnum):
    """Terminal statuses reported to collaborators."""

    COMPLETED = "completed"
    FAILED = "failed"


class FailureReason(StrEnum):
    """Failure reasons enumerated in the generation error contract."""

    INVALID_REQUEST = "invalid_request"
    SUBMISSION_FAILED = "submission_failed"
    PROVIDER_ERROR = "provider_error"
    TIMEOUT_EXCEEDED = "timeout_exceeded"
    CANCELLED = "cancelled"
    MATERIALIZATION_ERROR = "materialization_error"
    INTERNAL_ERROR = "internal_error"


class ExtractionStrategy(StrEnum):
    """Heuristics used to locate an artifact inside a poll response."""

    DIRECT_FIELD = "direct_field"
    PREDICTION_FIELD = "prediction_field"
    MIME_DECLARED_SCAN = "mime_declared_scan"
    WHOLE_RESPONSE = "whole_response"
    GLOBAL_BASE64_SCAN = "global_base64_scan"
    RECURSIVE_WALK = "recursive_walk"


class PollOutcome(StrEnum):
    """Outcome of a single fetch-status call."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FATAL_ERROR = "fatal_error"


@dataclass(frozen=True, slots=True)
class GenerationSettings:
    """Provider-facing knobs of a generation request."""

    duration_seconds: int
    aspect_ratio: str
    resolution: str
    sample_count: int = 1


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """A validated request; immutable once submitted."""

    prompt: str
    kind: GenerationKind
    settings: GenerationSettings
    job_id: str
    requested_at: datetime
    deadline_seconds: float | None = None


@dataclass(frozen=True, slots=True)
class OperationHandle:
    """Opaque long-running-operation id issued by the provider."""

    operation_id: str
    kind: GenerationKind
    submitted_at: datetime


@dataclass(frozen=True, slots=True)
class SubmittedJob:
    """Accepted job together with the credential issued for it."""

    handle: OperationHandle
    bearer_token: str = field(repr=False)


@dataclass(slots=True)
class PollAttempt:
    """Record of one fetch-status call, kept for the loop's lifetime only."""

    index: int
    at: datetime
    outcome: PollOutcome
    status_code: int | None = None
    raw_response: Any = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class ExtractedArtifact:
    """Artifact bytes found by exactly one extraction strategy."""

    payload: bytes = field(repr=False)
    source_strategy: ExtractionStrategy
    content_type: str

    @property
    def size_bytes(self) -> int:
        return len(self.payload)


@dataclass(frozen=True, slots=True)
class ArtifactDescriptor:
    """The only entity returned across the orchestrator boundary."""

    status: ArtifactStatus
    job_id: str
    content_type: str
    artifact_uri: str = field(repr=False)
    thumbnail_uri: str | None = field(default=None, repr=False)
    duration_seconds: int = 0
    operation_id: str | None = None
    reason: FailureReason | None = None
    message: str = ""
    source_strategy: ExtractionStrategy | None = None
