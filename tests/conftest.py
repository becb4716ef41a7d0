from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

os.environ.setdefault("GOOGLE_CLOUD_PROJECT_ID", "test-project")
os.environ.setdefault("GENJOBS_ACCESS_TOKEN", "test-token")
os.environ.setdefault("GENJOBS_TEMP_ROOT", str(Path(__file__).resolve().parent / ".tmp"))

from src.genjobs.config import PollingPolicy  # noqa: E402
from src.genjobs.generation.generation_models import (  # noqa: E402
    GenerationKind,
    GenerationRequest,
    GenerationSettings,
    OperationHandle,
    SubmittedJob,
)


@pytest.fixture
def video_request() -> GenerationRequest:
    return GenerationRequest(
        prompt="a cat surfing at sunset",
        kind=GenerationKind.VIDEO,
        settings=GenerationSettings(
            duration_seconds=8, aspect_ratio="16:9", resolution="720p"
        ),
        job_id="job-video-0001",
        requested_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def image_request() -> GenerationRequest:
    return GenerationRequest(
        prompt="a lighthouse in fog",
        kind=GenerationKind.IMAGE,
        settings=GenerationSettings(
            duration_seconds=0, aspect_ratio="1:1", resolution="1k"
        ),
        job_id="job-image-0001",
        requested_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def submitted_job() -> SubmittedJob:
    return SubmittedJob(
        handle=OperationHandle(
            operation_id="op-123",
            kind=GenerationKind.VIDEO,
            submitted_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        ),
        bearer_token="token-abc",
    )


@pytest.fixture
def default_policy() -> PollingPolicy:
    return PollingPolicy()
