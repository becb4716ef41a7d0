"""Abstract prediction provider definition."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..generation.generation_models import GenerationKind


@dataclass(slots=True)
class ProviderResponse:
    """HTTP outcome of a provider call, body decoded when it is JSON."""

    status_code: int
    body: Any = field(repr=False)
    text: str = field(default="", repr=False)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class PredictionProvider(ABC):
    """Long-running-operation prediction API."""

    @abstractmethod
    async def submit(
        self, kind: GenerationKind, payload: Mapping[str, Any], *, token: str
    ) -> ProviderResponse:
        """Start a generation job; raise ``ProviderTransportError`` on network failure."""

    @abstractmethod
    async def fetch_operation(
        self,
        kind: GenerationKind,
        operation_id: str,
        *,
        token: str,
        timeout: float | None = None,
    ) -> ProviderResponse:
        """Fetch the current state of an operation."""

    @abstractmethod
    async def download(self, url: str, *, token: str) -> bytes:
        """Fetch an artifact returned by reference; raise ``DownloadError`` on failure."""
