"""
Generative backend capability.

The backend is an opaque collaborator: it reports its availability and
turns a prompt into text. This module wraps it with a TTL availability
cache and an explicit timeout, and ships a deterministic offline provider.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List, Optional, Union

from flint.core.errors import GenerationTimeoutError
from flint.utils import get_logger

logger = get_logger(__name__)


class Availability(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    AFTER_DOWNLOAD = "after-download"

    @classmethod
    def from_status(cls, status: str) -> "Availability":
        """Map a backend status string onto an Availability."""
        normalized = (status or "").strip().lower()
        if normalized in ("available", "readily"):
            return cls.AVAILABLE
        if normalized in ("after-download", "downloadable", "downloading"):
            return cls.AFTER_DOWNLOAD
        return cls.UNAVAILABLE


class CapabilityProvider(ABC):
    """Interface of a text-generation backend."""

    @abstractmethod
    async def availability(self) -> Availability:
        """Report whether the backend can generate right now."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Generate text for ``prompt``."""


class AvailabilityCache:
    """Caches a provider's availability for ``ttl`` seconds."""

    def __init__(
        self,
        provider: CapabilityProvider,
        ttl: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.ttl = ttl
        self.clock = clock
        self._status: Optional[Availability] = None
        self._checked_at = 0.0
        self._lock = asyncio.Lock()

    def _fresh(self) -> bool:
        return self._status is not None and self.clock() - self._checked_at < self.ttl

    async def get(self) -> Availability:
        """
        Return the cached status, probing the provider when it has expired.

        A failing probe counts as UNAVAILABLE and is cached like any result.
        """
        if self._fresh():
            return self._status

        async with self._lock:
            if self._fresh():
                return self._status
            try:
                status = await self.provider.availability()
            except Exception as e:
                logger.warn(f"Availability check failed: {e}")
                status = Availability.UNAVAILABLE
            self._status = status
            self._checked_at = self.clock()
            logger.debug(f"Backend availability: {status.value}")
            return status

    def invalidate(self) -> None:
        self._status = None


async def generate_with_timeout(provider: CapabilityProvider, prompt: str, timeout: float) -> str:
    """
    Call the backend with an explicit timeout.

    Raises:
        GenerationTimeoutError: if no answer arrives within ``timeout`` seconds

    Backend errors and cancellation propagate unchanged.
    """
    try:
        return await asyncio.wait_for(provider.generate(prompt), timeout)
    except asyncio.TimeoutError as e:
        logger.warn(f"Generation timed out after {timeout:.1f}s")
        raise GenerationTimeoutError(timeout) from e


class MockCapabilityProvider(CapabilityProvider):
    """
    Deterministic offline provider.

    Used by the surrounding application as a fallback generator and by
    tests. Every prompt is recorded in ``prompts``.
    """

    def __init__(
        self,
        response: Union[str, Callable[[str], str]] = "Generated text.",
        status: Availability = Availability.AVAILABLE,
        delay: float = 0.0,
        error: Optional[Exception] = None,
    ):
        self.response = response
        self.status = status
        self.delay = delay
        self.error = error
        self.prompts: List[str] = []
        self.availability_calls = 0

    async def availability(self) -> Availability:
        self.availability_calls += 1
        return self.status

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if callable(self.response):
            return self.response(prompt)
        return self.response
