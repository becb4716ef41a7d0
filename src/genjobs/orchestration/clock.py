"""Timer abstraction shared by every suspension point of a job."""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..generation.generation_errors import JobCancelledError


@dataclass(slots=True)
class CancellationToken:
    """One-shot signal that interrupts :meth:`Clock.sleep`."""

    _event: asyncio.Event = field(default_factory=asyncio.Event)
    reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise JobCancelledError(f"Job cancelled: {self.reason}")


class Clock(ABC):
    """Source of monotonic time and cancellable sleeps."""

    @abstractmethod
    def monotonic(self) -> float:
        """Return seconds from an arbitrary, monotonically increasing origin."""

    @abstractmethod
    def utcnow(self) -> datetime:
        """Return the current wall-clock time, timezone-aware in UTC."""

    @abstractmethod
    async def sleep(self, seconds: float, *, cancel: CancellationToken | None = None) -> None:
        """Suspend for ``seconds``; raise :class:`JobCancelledError` if ``cancel`` fires."""


class AsyncioClock(Clock):
    """Production clock backed by the running event loop."""

    def monotonic(self) -> float:
        return time.monotonic()

    def utcnow(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float, *, cancel: CancellationToken | None = None) -> None:
        if cancel is None:
            await asyncio.sleep(max(seconds, 0))
            return
        cancel.raise_if_cancelled()
        try:
            await asyncio.wait_for(cancel.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            return
        cancel.raise_if_cancelled()
