"""Vertex AI prediction client for long-running generation models."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import quote

import httpx

from ..config import ProviderConfig
from ..generation.generation_errors import DownloadError, ProviderTransportError
from ..generation.generation_models import GenerationKind
from .providers_base import PredictionProvider, ProviderResponse

logger = logging.getLogger(__name__)

GCS_MEDIA_URL = "https://storage.googleapis.com/download/storage/v1/b/{bucket}/o/{object}?alt=media"


@dataclass(slots=True)
class VertexPredictionClient(PredictionProvider):
    """Call ``predictLongRunning`` / ``fetchPredictOperation`` on publisher models."""

    config: ProviderConfig
    log: logging.Logger = field(default_factory=lambda: logger)

    def model_url(self, kind: GenerationKind) -> str:
        model = self.config.models[kind]
        return (
            f"{self.config.base_url}/projects/{self.config.project_id}"
            f"/locations/{self.config.location}/publishers/google/models/{model}"
        )

    async def submit(
        self, kind: GenerationKind, payload: Mapping[str, Any], *, token: str
    ) -> ProviderResponse:
        url = f"{self.model_url(kind)}:predictLongRunning"
        self.log.info("vertex.submit.request", extra={"kind": kind.value, "url": url})
        return await self._post(url, token=token, json=dict(payload))

    async def fetch_operation(
        self,
        kind: GenerationKind,
        operation_id: str,
        *,
        token: str,
        timeout: float | None = None,
    ) -> ProviderResponse:
        url = f"{self.model_url(kind)}:fetchPredictOperation"
        return await self._post(
            url, token=token, json={"operationName": operation_id}, timeout=timeout
        )

    async def download(self, url: str, *, token: str) -> bytes:
        target = resolve_download_url(url)
        headers = {"Authorization": f"Bearer {token}"}
        try:
            async with httpx.AsyncClient(
                timeout=self.config.http_timeout_seconds, follow_redirects=True
            ) as client:
                response = await client.get(target, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DownloadError(f"Artifact download failed: {exc}") from exc

        if response.status_code != 200:
            raise DownloadError(
                f"Artifact download failed with status {response.status_code}"
            )
        self.log.info(
            "vertex.download.done",
            extra={"size_bytes": len(response.content), "url": _redact_query(target)},
        )
        return response.content

    async def _post(
        self,
        url: str,
        *,
        token: str,
        json: dict[str, Any],
        timeout: float | None = None,
    ) -> ProviderResponse:
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        effective_timeout = self.config.http_timeout_seconds
        if timeout is not None:
            effective_timeout = min(effective_timeout, max(timeout, 0.001))
        try:
            async with httpx.AsyncClient(timeout=effective_timeout) as client:
                response = await client.post(url, headers=headers, json=json)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ProviderTransportError(f"Vertex HTTP error: {exc}") from exc

        try:
            body: Any = response.json()
        except ValueError:
            body = response.text
        return ProviderResponse(
            status_code=response.status_code, body=body, text=response.text
        )


def resolve_download_url(url: str) -> str:
    """Map ``gs://bucket/object`` references onto the Cloud Storage media endpoint."""
    if not url.startswith("gs://"):
        return url
    bucket, _, obj = url[len("gs://"):].partition("/")
    if not bucket or not obj:
        raise DownloadError(f"Malformed Cloud Storage URI: {url}")
    return GCS_MEDIA_URL.format(bucket=bucket, object=quote(obj, safe=""))


def _redact_query(url: str) -> str:
    return url.split("?", 1)[0]
