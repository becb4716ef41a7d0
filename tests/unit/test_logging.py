from __future__ import annotations

import json
import logging

import pytest

from src.genjobs.logging import configure_logging

pytestmark = pytest.mark.unit


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def test_extra_fields_are_rendered_as_json(capsys, restore_root_logger) -> None:
    configure_logging()

    logging.getLogger("genjobs.test").info(
        "generation.poll.pending", extra={"job_id": "job-1", "attempt": 2}
    )

    line = capsys.readouterr().err.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["event"] == "generation.poll.pending"
    assert record["job_id"] == "job-1"
    assert record["attempt"] == 2
    assert record["level"] == "info"
    assert record["logger"] == "genjobs.test"
