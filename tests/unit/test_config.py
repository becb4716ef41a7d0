from __future__ import annotations

from pathlib import Path

import pytest

from src.genjobs.config import PollingPolicy, load_config
from src.genjobs.generation.generation_models import GenerationKind

pytestmark = pytest.mark.unit


def test_default_polling_budget() -> None:
    policy = PollingPolicy()

    assert policy.budget_seconds == 120 + 30 * 10
    assert 401 not in policy.not_ready_statuses


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0},
        {"interval_seconds": -1},
        {"initial_delay_seconds": -1},
        {"initial_delay_seconds": 0, "interval_seconds": 0},
    ],
)
def test_invalid_policy_is_rejected(kwargs) -> None:
    with pytest.raises(ValueError):
        PollingPolicy(**kwargs)


def test_load_config_reads_environment(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT_ID", "proj-x")
    monkeypatch.setenv("GOOGLE_CLOUD_LOCATION", "europe-west4")
    monkeypatch.setenv("GENJOBS_POLL_INITIAL_DELAY_SECONDS", "30")
    monkeypatch.setenv("GENJOBS_POLL_INTERVAL_SECONDS", "5")
    monkeypatch.setenv("GENJOBS_POLL_MAX_ATTEMPTS", "12")
    monkeypatch.setenv("GENJOBS_POLL_NOT_READY_STATUSES", "404, 429")
    monkeypatch.setenv("GENJOBS_VIDEO_MODEL", "veo-2.0-generate-001")
    monkeypatch.setenv("GENJOBS_TEMP_ROOT", str(tmp_path))
    monkeypatch.setenv("GENJOBS_MIN_ARTIFACT_BYTES", "2048")
    monkeypatch.setenv("GENJOBS_MAX_REQUEST_SECONDS", "90")

    config = load_config()

    assert config.provider.project_id == "proj-x"
    assert config.provider.base_url == "https://europe-west4-aiplatform.googleapis.com/v1"
    assert config.provider.models[GenerationKind.VIDEO] == "veo-2.0-generate-001"
    assert config.polling.budget_seconds == 30 + 12 * 5
    assert config.polling.not_ready_statuses == frozenset({404, 429})
    assert config.temp_root == tmp_path
    assert config.min_artifact_bytes == 2048
    assert config.max_request_seconds == 90


def test_load_config_defaults(monkeypatch) -> None:
    for name in (
        "GENJOBS_POLL_INITIAL_DELAY_SECONDS",
        "GENJOBS_POLL_INTERVAL_SECONDS",
        "GENJOBS_POLL_MAX_ATTEMPTS",
        "GENJOBS_POLL_NOT_READY_STATUSES",
        "GENJOBS_MAX_REQUEST_SECONDS",
        "GENJOBS_IMAGE_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)

    config = load_config()

    assert config.polling == PollingPolicy()
    assert config.max_request_seconds is None
    assert config.provider.models[GenerationKind.IMAGE] == "imagen-3.0-generate-002"
