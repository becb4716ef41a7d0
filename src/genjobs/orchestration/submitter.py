"""Job submission against the provider's long-running prediction endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..generation.generation_errors import (
    CredentialError,
    ProviderTransportError,
    SubmissionError,
)
from ..generation.generation_models import (
    GenerationKind,
    GenerationRequest,
    OperationHandle,
    SubmittedJob,
)
from ..providers.credentials import AccessTokenSource
from ..providers.providers_base import PredictionProvider

logger = logging.getLogger(__name__)

_OPERATION_ID_FIELDS = ("name", "operationName")


@dataclass(slots=True)
class JobSubmitter:
    """Send one generation request and return its operation handle."""

    provider: PredictionProvider
    token_source: AccessTokenSource
    log: logging.Logger = field(default_factory=lambda: logger)

    async def submit(self, request: GenerationRequest) -> SubmittedJob:
        try:
            token = await self.token_source.fetch_token()
        except CredentialError as exc:
            raise SubmissionError(f"Credential error: {exc}") from exc

        payload = build_payload(request)
        try:
            response = await self.provider.submit(request.kind, payload, token=token)
        except ProviderTransportError as exc:
            self.log.error(
                "generation.submit.transport_error",
                extra={"job_id": request.job_id, "error": str(exc)},
            )
            raise SubmissionError(str(exc)) from exc

        if not response.ok:
            preview = (response.text or "")[:500]
            self.log.error(
                "generation.submit.rejected status=%s body_preview=%s",
                response.status_code,
                preview,
                extra={"job_id": request.job_id, "status_code": response.status_code},
            )
            raise SubmissionError(
                f"Provider rejected submission (status={response.status_code})",
                upstream_status=response.status_code,
            )

        operation_id = _operation_id(response.body)
        if not operation_id:
            raise SubmissionError(
                "Provider response has no operation identifier",
                upstream_status=response.status_code,
            )

        handle = OperationHandle(
            operation_id=operation_id,
            kind=request.kind,
            submitted_at=datetime.now(timezone.utc),
        )
        self.log.info(
            "generation.submit.accepted",
            extra={"job_id": request.job_id, "operation_id": operation_id},
        )
        return SubmittedJob(handle=handle, bearer_token=token)


def build_payload(request: GenerationRequest) -> dict[str, Any]:
    """Return the ``predictLongRunning`` body for ``request``."""
    settings = request.settings
    parameters: dict[str, Any] = {
        "aspectRatio": settings.aspect_ratio,
        "sampleCount": settings.sample_count,
    }
    if request.kind is GenerationKind.VIDEO:
        parameters.update(
            {
                "durationSeconds": settings.duration_seconds,
                "resolution": settings.resolution,
                "personGeneration": "allow_all",
                "addWatermark": True,
                "includeRaiReason": True,
                "generateAudio": True,
            }
        )
    else:
        parameters.update(
            {
                "enhancePrompt": True,
                "addWatermark": False,
                "safetySetting": "block_few",
            }
        )
    return {"instances": [{"prompt": request.prompt}], "parameters": parameters}


def _operation_id(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    for key in _OPERATION_ID_FIELDS:
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
