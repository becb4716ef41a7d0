"""Conversion of poll outcomes into artifact descriptors."""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path

from ..generation.generation_errors import MaterializationError
from ..generation.generation_models import (
    ArtifactDescriptor,
    ArtifactStatus,
    ExtractedArtifact,
    FailureReason,
    GenerationKind,
    GenerationRequest,
)
from ..media.temp_artifact_store import TempArtifactStore
from ..media.thumbnails import data_uri, fallback_page, placeholder_thumbnail

logger = logging.getLogger(__name__)

_THUMBNAIL_LABELS = {
    GenerationKind.VIDEO: "Generated Video",
    GenerationKind.IMAGE: "Generated Image",
}


@dataclass(slots=True)
class ArtifactMaterializer:
    """Build completed or failed :class:`ArtifactDescriptor` objects."""

    temp_store: TempArtifactStore
    log: logging.Logger = field(default_factory=lambda: logger)

    def completed(
        self,
        request: GenerationRequest,
        artifact: ExtractedArtifact,
        *,
        operation_id: str,
    ) -> ArtifactDescriptor:
        """Stage the artifact through temp storage and inline it as a data URI.

        Raises :class:`MaterializationError` when staging fails; the temp
        directory is removed on every path.
        """
        filename = f"artifact{_extension(artifact.content_type)}"
        with self.temp_store.staged(request.job_id, filename, artifact.payload) as path:
            artifact_uri = data_uri(artifact.content_type, _read(path))

        if request.kind is GenerationKind.IMAGE:
            thumbnail_uri = artifact_uri
        else:
            thumbnail_uri = placeholder_thumbnail(_THUMBNAIL_LABELS[request.kind])

        self.log.info(
            "generation.materialize.completed",
            extra={
                "job_id": request.job_id,
                "operation_id": operation_id,
                "content_type": artifact.content_type,
                "size_bytes": artifact.size_bytes,
                "strategy": artifact.source_strategy.value,
            },
        )
        return ArtifactDescriptor(
            status=ArtifactStatus.COMPLETED,
            job_id=request.job_id,
            content_type=artifact.content_type,
            artifact_uri=artifact_uri,
            thumbnail_uri=thumbnail_uri,
            duration_seconds=request.settings.duration_seconds,
            operation_id=operation_id,
            message=f"{request.kind.value.capitalize()} generated successfully",
            source_strategy=artifact.source_strategy,
        )

    def failed(
        self,
        request: GenerationRequest,
        reason: FailureReason,
        *,
        operation_id: str | None = None,
        detail: str = "",
    ) -> ArtifactDescriptor:
        """Return a well-formed failure descriptor; never raises."""
        title = f"{request.kind.value.capitalize()} generation failed"
        self.temp_store.cleanup(request.job_id)
        self.log.warning(
            "generation.materialize.failed",
            extra={
                "job_id": request.job_id,
                "operation_id": operation_id,
                "reason": reason.value,
                "detail": detail,
            },
        )
        fallback = fallback_page(title)
        return ArtifactDescriptor(
            status=ArtifactStatus.FAILED,
            job_id=request.job_id,
            content_type="text/html",
            artifact_uri=fallback,
            thumbnail_uri=fallback,
            duration_seconds=request.settings.duration_seconds,
            operation_id=operation_id,
            reason=reason,
            message=f"{title}: {detail}" if detail else title,
        )


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise MaterializationError(f"Unable to read staged artifact: {exc}") from exc


def _extension(content_type: str) -> str:
    return mimetypes.guess_extension(content_type) or ".bin"
