"""Dependency wiring helpers."""

from fastapi import FastAPI

from .config import AppConfig
from .generation.generation_api import router as generation_router
from .generation.generation_service import GenerationService
from .generation.progress import JobProgressBoard
from .generation.validation import RequestValidator
from .media.temp_artifact_store import TempArtifactStore
from .orchestration.clock import AsyncioClock, Clock
from .orchestration.extractors import ResultExtractor
from .orchestration.materializer import ArtifactMaterializer
from .orchestration.poller import OperationPoller
from .orchestration.submitter import JobSubmitter
from .providers.credentials import AccessTokenSource, GoogleAdcTokenSource, StaticTokenSource
from .providers.providers_base import PredictionProvider
from .providers.providers_vertex import VertexPredictionClient


def build_token_source(config: AppConfig) -> AccessTokenSource:
    if config.provider.access_token:
        return StaticTokenSource(token=config.provider.access_token)
    return GoogleAdcTokenSource()


def build_generation_service(
    config: AppConfig,
    *,
    provider: PredictionProvider | None = None,
    token_source: AccessTokenSource | None = None,
    clock: Clock | None = None,
) -> GenerationService:
    """Assemble the orchestrator from explicitly constructed collaborators."""
    provider = provider or VertexPredictionClient(config.provider)
    token_source = token_source or build_token_source(config)
    extractor = ResultExtractor(
        provider=provider, min_plausible_size=config.min_artifact_bytes
    )
    return GenerationService(
        submitter=JobSubmitter(provider=provider, token_source=token_source),
        poller=OperationPoller(
            provider=provider,
            extractor=extractor,
            policy=config.polling,
            clock=clock or AsyncioClock(),
        ),
        materializer=ArtifactMaterializer(TempArtifactStore(config.temp_root)),
        progress=JobProgressBoard(),
        max_request_seconds=config.max_request_seconds,
    )


def include_routers(
    app: FastAPI, config: AppConfig, service: GenerationService | None = None
) -> None:
    """Mount module routers and attach services."""
    app.state.config = config
    app.state.generation_service = service or build_generation_service(config)
    app.state.request_validator = RequestValidator()

    app.include_router(generation_router)
