"""Artifact extraction from shape-unstable poll responses.

Providers have returned the generated media under different keys from one
release to the next, sometimes inline as base64 and sometimes as a URL.
Each strategy below is a pure function of the response that proposes at most
one candidate; :class:`ResultExtractor` walks the chain in order and accepts
the first candidate that decodes (or downloads) into a plausibly sized
artifact.
"""

from __future__ import annotations

import base64
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterator, Sequence

from ..generation.generation_errors import DownloadError, ProviderTransportError
from ..generation.generation_models import ExtractedArtifact, ExtractionStrategy
from ..media.content_types import sniff_content_type
from ..providers.providers_base import PredictionProvider

logger = logging.getLogger(__name__)

MIN_CANDIDATE_CHARS = 100
WALK_MIN_CHARS = 1000
KNOWN_MEDIA_TYPES = frozenset({"video/mp4", "video/webm", "image/png", "image/jpeg"})

_BASE64_RUN = re.compile(r"[A-Za-z0-9+/]{%d,}={0,2}" % MIN_CANDIDATE_CHARS)
_BASE64_BODY = re.compile(r"[A-Za-z0-9+/_-]+={0,2}")
_WHITESPACE = re.compile(r"\s+")
_URL_PREFIXES = ("http://", "https://", "gs://")


@dataclass(frozen=True, slots=True)
class Candidate:
    """A value that may hold the artifact, with where it was found."""

    value: str | bytes = field(repr=False)
    strategy: ExtractionStrategy
    location: str


class Strategy(ABC):
    """One heuristic for locating the artifact inside a response."""

    name: ExtractionStrategy

    @abstractmethod
    def locate(self, response: Any) -> Candidate | None:
        """Return a candidate or ``None``; must not mutate ``response``."""


class DirectFieldStrategy(Strategy):
    name = ExtractionStrategy.DIRECT_FIELD

    def __init__(self, field_name: str = "video") -> None:
        self.field_name = field_name

    def locate(self, response: Any) -> Candidate | None:
        if not isinstance(response, dict):
            return None
        value = response.get(self.field_name)
        if _has_payload(value):
            return Candidate(value, self.name, self.field_name)
        return None


class PredictionFieldStrategy(Strategy):
    name = ExtractionStrategy.PREDICTION_FIELD

    def __init__(
        self,
        fields: Sequence[str] = ("video", "videoData", "content.video", "bytes", "data"),
    ) -> None:
        self.fields = tuple(fields)

    def locate(self, response: Any) -> Candidate | None:
        prediction = first_prediction(response)
        if prediction is None:
            return None
        for path in self.fields:
            value = _dig(prediction, path)
            if _has_payload(value):
                return Candidate(value, self.name, f"predictions[0].{path}")
        return None


class MimeDeclaredScanStrategy(Strategy):
    """Prediction declares a media type but keeps the payload under an unknown key."""

    name = ExtractionStrategy.MIME_DECLARED_SCAN

    def __init__(
        self,
        known_fields: Sequence[str] = PredictionFieldStrategy().fields,
        media_types: frozenset[str] = KNOWN_MEDIA_TYPES,
        min_chars: int = MIN_CANDIDATE_CHARS,
    ) -> None:
        self.known_fields = tuple(known_fields)
        self.media_types = media_types
        self.min_chars = min_chars

    def locate(self, response: Any) -> Candidate | None:
        prediction = first_prediction(response)
        if prediction is None or prediction.get("mimeType") not in self.media_types:
            return None
        if any(_has_payload(_dig(prediction, path)) for path in self.known_fields):
            return None
        for key, value in prediction.items():
            if key == "mimeType":
                continue
            if isinstance(value, str) and len(value) > self.min_chars:
                return Candidate(value, self.name, f"predictions[0].{key}")
        return None


class WholeResponseStrategy(Strategy):
    name = ExtractionStrategy.WHOLE_RESPONSE

    def __init__(self, min_chars: int = MIN_CANDIDATE_CHARS) -> None:
        self.min_chars = min_chars

    def locate(self, response: Any) -> Candidate | None:
        if isinstance(response, (str, bytes)) and len(response) > self.min_chars:
            return Candidate(response, self.name, "$")
        return None


class GlobalBase64ScanStrategy(Strategy):
    name = ExtractionStrategy.GLOBAL_BASE64_SCAN

    def locate(self, response: Any) -> Candidate | None:
        if isinstance(response, bytes):
            return None
        if isinstance(response, str):
            text = response
        else:
            text = json.dumps(response, default=str)
        longest = max(_BASE64_RUN.findall(text), key=len, default=None)
        if longest is None:
            return None
        return Candidate(longest, self.name, "$serialized")


class RecursiveWalkStrategy(Strategy):
    name = ExtractionStrategy.RECURSIVE_WALK

    def __init__(self, min_chars: int = WALK_MIN_CHARS) -> None:
        self.min_chars = min_chars

    def locate(self, response: Any) -> Candidate | None:
        for path, value in _walk(response, "$"):
            if len(value) > self.min_chars and "{" not in value and "[" not in value:
                return Candidate(value, self.name, path)
        return None


DEFAULT_STRATEGIES: tuple[Strategy, ...] = (
    DirectFieldStrategy(),
    PredictionFieldStrategy(),
    MimeDeclaredScanStrategy(),
    WholeResponseStrategy(),
    GlobalBase64ScanStrategy(),
    RecursiveWalkStrategy(),
)


@dataclass(slots=True)
class ResultExtractor:
    """Run the strategy chain and validate candidates."""

    provider: PredictionProvider
    min_plausible_size: int = 1000
    strategies: Sequence[Strategy] = DEFAULT_STRATEGIES
    log: logging.Logger = field(default_factory=lambda: logger)

    async def attempt(
        self,
        response: Any,
        *,
        token: str,
        default_content_type: str = "application/octet-stream",
    ) -> ExtractedArtifact | None:
        """Return the artifact carried by ``response`` or ``None`` if there is none yet."""
        for strategy in self.strategies:
            candidate = strategy.locate(response)
            if candidate is None:
                continue
            payload = await self._resolve(candidate, token=token)
            if payload is None:
                continue
            if len(payload) <= self.min_plausible_size:
                self.log.info(
                    "generation.extract.too_small",
                    extra={
                        "strategy": candidate.strategy.value,
                        "location": candidate.location,
                        "size_bytes": len(payload),
                        "min_bytes": self.min_plausible_size,
                    },
                )
                continue
            self.log.info(
                "generation.extract.found",
                extra={
                    "strategy": candidate.strategy.value,
                    "location": candidate.location,
                    "size_bytes": len(payload),
                },
            )
            return ExtractedArtifact(
                payload=payload,
                source_strategy=candidate.strategy,
                content_type=sniff_content_type(payload, default_content_type),
            )
        return None

    async def _resolve(self, candidate: Candidate, *, token: str) -> bytes | None:
        value = candidate.value
        if isinstance(value, bytes):
            return value

        text = value.strip()
        try:
            if text.startswith(_URL_PREFIXES):
                self.log.info(
                    "generation.extract.download",
                    extra={"strategy": candidate.strategy.value, "location": candidate.location},
                )
                return await self.provider.download(text, token=token)
            return decode_base64(text)
        except (DownloadError, ProviderTransportError, ValueError) as exc:
            self.log.warning(
                "generation.extract.candidate_rejected",
                extra={
                    "strategy": candidate.strategy.value,
                    "location": candidate.location,
                    "error": str(exc),
                },
            )
            return None


def decode_base64(text: str) -> bytes | None:
    """Decode standard or URL-safe base64, tolerating data-URI prefixes and whitespace.

    Returns ``None`` when ``text`` does not look like base64 at all and raises
    ``binascii.Error`` when it does but is malformed.
    """
    if text.startswith("data:"):
        header, sep, text = text.partition(",")
        if not sep or ";base64" not in header:
            return None
    compact = _WHITESPACE.sub("", text)
    if len(compact) < MIN_CANDIDATE_CHARS or not _BASE64_BODY.fullmatch(compact):
        return None
    compact += "=" * (-len(compact) % 4)
    if "-" in compact or "_" in compact:
        return base64.urlsafe_b64decode(compact)
    return base64.b64decode(compact, validate=True)


def first_prediction(response: Any) -> dict[str, Any] | None:
    if not isinstance(response, dict):
        return None
    predictions = response.get("predictions")
    if isinstance(predictions, list) and predictions and isinstance(predictions[0], dict):
        return predictions[0]
    return None


def _has_payload(value: Any) -> bool:
    return isinstance(value, (str, bytes)) and len(value) > 0


def _dig(obj: dict[str, Any], path: str) -> Any:
    current: Any = obj
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _walk(obj: Any, path: str) -> Iterator[tuple[str, str]]:
    if isinstance(obj, dict):
        for key, value in obj.items():
            child = f"{path}.{key}"
            if isinstance(value, str):
                yield child, value
            else:
                yield from _walk(value, child)
    elif isinstance(obj, list):
        for index, value in enumerate(obj):
            child = f"{path}[{index}]"
            if isinstance(value, str):
                yield child, value
            else:
                yield from _walk(value, child)


__all__ = [
    "Candidate",
    "DEFAULT_STRATEGIES",
    "DirectFieldStrategy",
    "GlobalBase64ScanStrategy",
    "MimeDeclaredScanStrategy",
    "PredictionFieldStrategy",
    "RecursiveWalkStrategy",
    "ResultExtractor",
    "Strategy",
    "WholeResponseStrategy",
    "decode_base64",
    "first_prediction",
]
