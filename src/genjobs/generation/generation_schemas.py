"""Pydantic schemas for generation requests and responses."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .generation_models import ArtifactDescriptor
from .progress import JobProgress


class GenerationSettingsSchema(BaseModel):
    """Provider knobs as sent by the UI; limits are checked by ``RequestValidator``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    duration: int | None = Field(default=None, description="Clip length in seconds.")
    aspect_ratio: str | None = Field(default=None, alias="aspectRatio")
    resolution: str | None = None
    sample_count: int | None = Field(default=None, alias="sampleCount")

    def as_mapping(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class GenerationRequestSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    prompt: str | None = None
    settings: GenerationSettingsSchema = Field(default_factory=GenerationSettingsSchema)
    deadline_seconds: float | None = Field(
        default=None,
        alias="deadlineSeconds",
        description="Caller deadline; shortens the default polling budget.",
    )
    job_id: str | None = Field(
        default=None,
        alias="jobId",
        description="Client-chosen id to query progress while the request is open.",
    )


class ArtifactDescriptorSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    artifact_uri: str = Field(alias="artifactUri")
    thumbnail_uri: str | None = Field(default=None, alias="thumbnailUri")
    content_type: str = Field(alias="contentType")
    duration_seconds: int = Field(alias="durationSeconds")
    status: Literal["completed", "failed"]
    operation_id: str | None = Field(default=None, alias="operationId")
    job_id: str = Field(alias="jobId")
    reason: str | None = None
    message: str = ""

    @classmethod
    def from_descriptor(cls, descriptor: ArtifactDescriptor) -> "ArtifactDescriptorSchema":
        return cls(
            artifact_uri=descriptor.artifact_uri,
            thumbnail_uri=descriptor.thumbnail_uri,
            content_type=descriptor.content_type,
            duration_seconds=descriptor.duration_seconds,
            status=descriptor.status.value,
            operation_id=descriptor.operation_id,
            job_id=descriptor.job_id,
            reason=descriptor.reason.value if descriptor.reason else None,
            message=descriptor.message,
        )


class JobStatusSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    kind: str
    phase: str
    attempt: int
    max_attempts: int = Field(alias="maxAttempts")
    progress: int
    estimated_time_remaining: int = Field(alias="estimatedTimeRemaining")
    operation_id: str | None = Field(default=None, alias="operationId")

    @classmethod
    def from_progress(cls, progress: JobProgress) -> "JobStatusSchema":
        return cls(
            job_id=progress.job_id,
            kind=progress.kind.value,
            phase=progress.phase.value,
            attempt=progress.attempt,
            max_attempts=progress.max_attempts,
            progress=progress.percent(),
            estimated_time_remaining=progress.remaining_seconds(),
            operation_id=progress.operation_id,
        )


class GenerationErrorSchema(BaseModel):
    status: str
    failure_reason: str
    details: str | None = None
    upstream_status: int | None = None
