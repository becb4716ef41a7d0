"""Application configuration builder."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .generation.generation_models import GenerationKind


@dataclass(slots=True)
class PollingPolicy:
    """Cadence of the fetch-status loop.

    The defaults are provider-tuning values (Veo jobs rarely finish before two
    minutes), not documented contracts; all of them are overridable.
    """

    initial_delay_seconds: float = 120.0
    interval_seconds: float = 10.0
    max_attempts: int = 30
    not_ready_statuses: frozenset[int] = frozenset({400, 404, 409, 425, 429})

    def __post_init__(self) -> None:
        if self.initial_delay_seconds < 0:
            raise ValueError("initial_delay_seconds must not be negative")
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must not be negative")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.budget_seconds <= 0:
            raise ValueError("initial delay and interval cannot both be zero")

    @property
    def budget_seconds(self) -> float:
        """Upper bound on wall-clock time spent in the loop."""
        return self.initial_delay_seconds + self.max_attempts * self.interval_seconds


@dataclass(slots=True)
class ProviderConfig:
    project_id: str
    location: str = "us-central1"
    api_base: str | None = None
    models: dict[GenerationKind, str] = field(
        default_factory=lambda: {
            GenerationKind.VIDEO: "veo-3.0-generate-001",
            GenerationKind.IMAGE: "imagen-3.0-generate-002",
        }
    )
    access_token: str | None = None
    http_timeout_seconds: float = 60.0

    @property
    def base_url(self) -> str:
        return self.api_base or f"https://{self.location}-aiplatform.googleapis.com/v1"


@dataclass(slots=True)
class AppConfig:
    provider: ProviderConfig
    polling: PollingPolicy
    temp_root: Path
    min_artifact_bytes: int = 1000
    max_request_seconds: float | None = None


def _parse_statuses(raw: str | None, default: frozenset[int]) -> frozenset[int]:
    if not raw:
        return default
    return frozenset(int(part) for part in raw.split(",") if part.strip())


def _optional_float(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    return float(raw)


def load_config() -> AppConfig:
    """Load configuration from environment."""
    defaults = PollingPolicy()
    polling = PollingPolicy(
        initial_delay_seconds=float(
            os.getenv("GENJOBS_POLL_INITIAL_DELAY_SECONDS", defaults.initial_delay_seconds)
        ),
        interval_seconds=float(
            os.getenv("GENJOBS_POLL_INTERVAL_SECONDS", defaults.interval_seconds)
        ),
        max_attempts=int(os.getenv("GENJOBS_POLL_MAX_ATTEMPTS", defaults.max_attempts)),
        not_ready_statuses=_parse_statuses(
            os.getenv("GENJOBS_POLL_NOT_READY_STATUSES"), defaults.not_ready_statuses
        ),
    )

    provider = ProviderConfig(
        project_id=os.getenv("GOOGLE_CLOUD_PROJECT_ID", ""),
        location=os.getenv("GOOGLE_CLOUD_LOCATION", "us-central1"),
        api_base=os.getenv("GENJOBS_API_BASE") or None,
        access_token=os.getenv("GENJOBS_ACCESS_TOKEN") or None,
        http_timeout_seconds=float(os.getenv("GENJOBS_HTTP_TIMEOUT_SECONDS", 60)),
    )
    provider.models[GenerationKind.VIDEO] = os.getenv(
        "GENJOBS_VIDEO_MODEL", provider.models[GenerationKind.VIDEO]
    )
    provider.models[GenerationKind.IMAGE] = os.getenv(
        "GENJOBS_IMAGE_MODEL", provider.models[GenerationKind.IMAGE]
    )

    return AppConfig(
        provider=provider,
        polling=polling,
        temp_root=Path(os.getenv("GENJOBS_TEMP_ROOT", "var/tmp")),
        min_artifact_bytes=int(os.getenv("GENJOBS_MIN_ARTIFACT_BYTES", 1000)),
        max_request_seconds=_optional_float(os.getenv("GENJOBS_MAX_REQUEST_SECONDS")),
    )
