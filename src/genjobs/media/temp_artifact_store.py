"""Temporary artifact storage keyed by job id."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from ..generation.generation_errors import MaterializationError


@dataclass(slots=True)
class TempArtifactStore:
    """Manages lifecycle of per-job scratch files."""

    root: Path
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def temp_dir(self, job_id: str) -> Path:
        return self.root / job_id

    def ensure_structure(self, job_id: str) -> Path:
        directory = self.temp_dir(job_id)
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    @contextmanager
    def staged(self, job_id: str, filename: str, payload: bytes) -> Iterator[Path]:
        """Write ``payload`` under the job's directory and remove it on exit.

        Raises :class:`MaterializationError` if the file cannot be written.
        """
        try:
            directory = self.ensure_structure(job_id)
            target = directory / filename
            target.write_bytes(payload)
        except OSError as exc:
            self.cleanup(job_id)
            raise MaterializationError(f"Unable to stage artifact: {exc}") from exc

        self.log.info(
            "media.temp.staged",
            extra={"job_id": job_id, "path": str(target), "size_bytes": len(payload)},
        )
        try:
            yield target
        finally:
            self.cleanup(job_id)

    def cleanup(self, job_id: str) -> None:
        """Remove the job's temp directory."""
        directory = self.temp_dir(job_id)
        if directory.exists():
            shutil.rmtree(directory, ignore_errors=True)
            self.log.info("media.temp.cleaned", extra={"job_id": job_id})
