"""Short-lived bearer credentials for the prediction API."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import google.auth
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request

from ..generation.generation_errors import CredentialError

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class AccessTokenSource(ABC):
    """Issues a bearer token; implementations must not cache across calls."""

    @abstractmethod
    async def fetch_token(self) -> str:
        """Return a freshly issued access token or raise :class:`CredentialError`."""


@dataclass(slots=True)
class GoogleAdcTokenSource(AccessTokenSource):
    """Resolve Application Default Credentials and refresh them on every call."""

    scopes: tuple[str, ...] = (CLOUD_PLATFORM_SCOPE,)
    log: logging.Logger = field(default_factory=lambda: logger)

    async def fetch_token(self) -> str:
        return await asyncio.to_thread(self._issue)

    def _issue(self) -> str:
        try:
            credentials, _project = google.auth.default(scopes=list(self.scopes))
            credentials.refresh(Request())
        except GoogleAuthError as exc:
            self.log.error("credentials.adc.failed", extra={"error": str(exc)})
            raise CredentialError(f"Unable to obtain access token: {exc}") from exc

        token = getattr(credentials, "token", None)
        if not token:
            raise CredentialError("Application Default Credentials returned no token")
        self.log.info(
            "credentials.adc.issued",
            extra={"expiry": credentials.expiry.isoformat() if credentials.expiry else None},
        )
        return str(token)


@dataclass(slots=True)
class StaticTokenSource(AccessTokenSource):
    """Token supplied through configuration (local development, tests)."""

    token: str = field(repr=False)

    async def fetch_token(self) -> str:
        if not self.token:
            raise CredentialError("Static access token is empty")
        return self.token
