"""Deterministic provider and clock doubles for orchestration tests."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Mapping

from src.genjobs.generation.generation_errors import JobCancelledError
from src.genjobs.generation.generation_models import GenerationKind
from src.genjobs.orchestration.clock import CancellationToken, Clock
from src.genjobs.providers.credentials import AccessTokenSource
from src.genjobs.providers.providers_base import PredictionProvider, ProviderResponse

VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42" + bytes(range(256)) * 20
VIDEO_BASE64 = base64.b64encode(VIDEO_BYTES).decode("ascii")

ScriptItem = ProviderResponse | Exception


class MockProviderScenario(str, Enum):
    """Available behaviours for the scripted provider."""

    SUCCESS = "success"
    TIMEOUT = "timeout"
    ERROR = "error"


def ok(body: Any) -> ProviderResponse:
    return ProviderResponse(status_code=200, body=body, text=str(body))


def status(code: int, text: str = "") -> ProviderResponse:
    return ProviderResponse(status_code=code, body={"error": {"code": code}}, text=text)


class ScriptedProvider(PredictionProvider):
    """Replays queued responses and records every call.

    Once the poll script is exhausted ``poll_default`` is returned forever,
    which models a job that never finishes.
    """

    def __init__(
        self,
        *,
        submit: ScriptItem | None = None,
        polls: list[ScriptItem] | None = None,
        poll_default: ScriptItem | None = None,
        downloads: Mapping[str, bytes | Exception] | None = None,
    ) -> None:
        self.submit_response = submit or ok({"name": "op-123"})
        self.polls = list(polls or [])
        self.poll_default = poll_default or ok({})
        self.downloads = dict(downloads or {})
        self.submit_calls: list[tuple[GenerationKind, dict[str, Any], str]] = []
        self.poll_calls: list[tuple[str, str, float | None]] = []
        self.download_calls: list[str] = []

    @classmethod
    def for_scenario(cls, scenario: MockProviderScenario) -> "ScriptedProvider":
        if scenario is MockProviderScenario.SUCCESS:
            return cls(polls=[ok({}), ok({}), ok({"predictions": [{"video": VIDEO_BASE64}]})])
        if scenario is MockProviderScenario.TIMEOUT:
            return cls(poll_default=ok({}))
        return cls(polls=[status(500, "internal")])

    async def submit(
        self, kind: GenerationKind, payload: Mapping[str, Any], *, token: str
    ) -> ProviderResponse:
        self.submit_calls.append((kind, dict(payload), token))
        if isinstance(self.submit_response, Exception):
            raise self.submit_response
        return self.submit_response

    async def fetch_operation(
        self,
        kind: GenerationKind,
        operation_id: str,
        *,
        token: str,
        timeout: float | None = None,
    ) -> ProviderResponse:
        self.poll_calls.append((operation_id, token, timeout))
        item = self.polls.pop(0) if self.polls else self.poll_default
        if isinstance(item, Exception):
            raise item
        return item

    async def download(self, url: str, *, token: str) -> bytes:
        self.download_calls.append(url)
        result = self.downloads.get(url)
        if result is None:
            raise AssertionError(f"unexpected download of {url}")
        if isinstance(result, Exception):
            raise result
        return result


@dataclass
class FakeClock(Clock):
    """Clock whose sleeps advance virtual time instantly."""

    now: float = 0.0
    sleeps: list[float] = field(default_factory=list)
    on_sleep: Callable[[float], None] | None = None
    epoch: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def monotonic(self) -> float:
        return self.now

    def utcnow(self) -> datetime:
        return self.epoch + timedelta(seconds=self.now)

    async def sleep(self, seconds: float, *, cancel: CancellationToken | None = None) -> None:
        self.sleeps.append(seconds)
        if cancel is not None:
            cancel.raise_if_cancelled()
        if self.on_sleep is not None:
            self.on_sleep(seconds)
        if cancel is not None and cancel.cancelled:
            raise JobCancelledError(f"Job cancelled: {cancel.reason}")
        self.now += seconds


@dataclass
class CountingTokenSource(AccessTokenSource):
    token: str = "token-abc"
    calls: int = 0

    async def fetch_token(self) -> str:
        self.calls += 1
        return self.token
