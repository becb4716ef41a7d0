"""Domain-specific exceptions for the generation pipeline."""

from __future__ import annotations

from .generation_models import FailureReason


class GenerationError(Exception):
    """Base class for generation-related errors."""


class InvalidRequestError(GenerationError):
    """Raised when a generation request violates provider limits."""


class CredentialError(GenerationError):
    """Raised when a bearer credential cannot be issued."""


class ProviderTransportError(GenerationError):
    """Raised when an outbound call fails before a usable HTTP response arrives."""


class DownloadError(GenerationError):
    """Raised when an artifact referenced by URL cannot be fetched."""


class SubmissionError(GenerationError):
    """Raised when the provider does not accept the job.

    Surfaced to the caller synchronously and never retried internally.
    """

    def __init__(self, message: str, *, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class PollTransientError(GenerationError):
    """Raised for a poll attempt that reported "not ready" or hit a transport error."""


class ExtractionMiss(GenerationError):
    """Raised when a 2xx poll response does not carry an artifact yet."""


class PollTerminalError(GenerationError):
    """Base class for outcomes that end the polling loop without an artifact."""

    reason: FailureReason = FailureReason.PROVIDER_ERROR

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class PollFatalError(PollTerminalError):
    """Raised when the provider answers with a non-recoverable status."""

    reason = FailureReason.PROVIDER_ERROR

    def __init__(
        self, message: str, *, attempts: int = 0, upstream_status: int | None = None
    ) -> None:
        super().__init__(message, attempts=attempts)
        self.upstream_status = upstream_status


class TimeoutExceeded(PollTerminalError):
    """Raised when attempts or the wall-clock budget run out."""

    reason = FailureReason.TIMEOUT_EXCEEDED


class JobCancelledError(PollTerminalError):
    """Raised when the job's cancellation token fires during polling."""

    reason = FailureReason.CANCELLED


class MaterializationError(GenerationError):
    """Raised when the artifact cannot be staged through temporary storage."""
