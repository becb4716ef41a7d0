"""Generation request validation against provider limits."""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from .generation_errors import InvalidRequestError
from .generation_models import GenerationKind, GenerationRequest, GenerationSettings

logger = logging.getLogger(__name__)

_JOB_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


@dataclass(frozen=True, slots=True)
class KindLimits:
    """Provider limits for one generation kind."""

    aspect_ratios: tuple[str, ...]
    resolutions: tuple[str, ...]
    min_duration: int
    max_duration: int
    default_duration: int
    max_samples: int = 4


PROVIDER_LIMITS: dict[GenerationKind, KindLimits] = {
    GenerationKind.VIDEO: KindLimits(
        aspect_ratios=("16:9", "9:16"),
        resolutions=("720p", "1080p"),
        min_duration=4,
        max_duration=8,
        default_duration=8,
    ),
    GenerationKind.IMAGE: KindLimits(
        aspect_ratios=("1:1", "3:4", "4:3", "16:9", "9:16"),
        resolutions=("1k", "2k"),
        min_duration=0,
        max_duration=0,
        default_duration=0,
    ),
}


@dataclass(slots=True)
class RequestValidator:
    """Build immutable :class:`GenerationRequest` objects from raw input."""

    max_prompt_chars: int = 4000

    def build(
        self,
        *,
        kind: GenerationKind,
        prompt: str | None,
        settings: Mapping[str, Any] | None = None,
        deadline_seconds: float | None = None,
        job_id: str | None = None,
    ) -> GenerationRequest:
        text = (prompt or "").strip()
        if not text:
            raise InvalidRequestError("Prompt is required")
        if len(text) > self.max_prompt_chars:
            raise InvalidRequestError(
                f"Prompt exceeds {self.max_prompt_chars} characters"
            )

        if deadline_seconds is not None and deadline_seconds <= 0:
            raise InvalidRequestError("deadlineSeconds must be positive")

        if job_id is not None and not _JOB_ID_PATTERN.match(job_id):
            raise InvalidRequestError("jobId must be 8-64 characters of [A-Za-z0-9_-]")

        request = GenerationRequest(
            prompt=text,
            kind=kind,
            settings=self._settings(kind, settings or {}),
            job_id=job_id or uuid.uuid4().hex,
            requested_at=datetime.now(timezone.utc),
            deadline_seconds=deadline_seconds,
        )
        logger.info(
            "generation.request.validated",
            extra={
                "job_id": request.job_id,
                "kind": kind.value,
                "prompt_len": len(text),
                "duration_seconds": request.settings.duration_seconds,
                "aspect_ratio": request.settings.aspect_ratio,
            },
        )
        return request

    @staticmethod
    def _settings(kind: GenerationKind, raw: Mapping[str, Any]) -> GenerationSettings:
        limits = PROVIDER_LIMITS[kind]

        aspect_ratio = str(raw.get("aspectRatio") or limits.aspect_ratios[0])
        if aspect_ratio not in limits.aspect_ratios:
            raise InvalidRequestError(
                f"aspectRatio must be one of {', '.join(limits.aspect_ratios)}"
            )

        resolution = str(raw.get("resolution") or limits.resolutions[0])
        if resolution not in limits.resolutions:
            raise InvalidRequestError(
                f"resolution must be one of {', '.join(limits.resolutions)}"
            )

        sample_count = _as_int(raw.get("sampleCount"), default=1, name="sampleCount")
        if not 1 <= sample_count <= limits.max_samples:
            raise InvalidRequestError(
                f"sampleCount must be between 1 and {limits.max_samples}"
            )

        if kind is GenerationKind.IMAGE:
            duration = 0
        else:
            duration = _as_int(
                raw.get("duration"), default=limits.default_duration, name="duration"
            )
            if not limits.min_duration <= duration <= limits.max_duration:
                raise InvalidRequestError(
                    f"duration must be between {limits.min_duration} and {limits.max_duration} seconds"
                )

        return GenerationSettings(
            duration_seconds=duration,
            aspect_ratio=aspect_ratio,
            resolution=resolution,
            sample_count=sample_count,
        )


def _as_int(value: Any, *, default: int, name: str) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise InvalidRequestError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRequestError(f"{name} must be an integer") from exc
