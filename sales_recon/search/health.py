"""Per-provider availability memo with a fixed TTL window."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from sales_recon.models import HealthCheckResult
from sales_recon.search.providers.base import SearchProvider

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_TTL = 300.0  # 5 minutes


@dataclass
class HealthCacheEntry:
    healthy: bool
    expiry: float
    message: str = ""


class HealthCache:
    """Bounds how often a provider's availability is re-checked.

    Real search outcomes write through the cache (``mark_healthy`` /
    ``mark_unhealthy``), so a provider that just failed is skipped on the
    next request without another probe.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_HEALTH_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, HealthCacheEntry] = {}

    def peek(self, name: str) -> HealthCacheEntry | None:
        """Return the live entry for ``name`` or None (expired entries are dropped)."""
        entry = self._entries.get(name)
        if entry is None:
            return None
        if self._clock() >= entry.expiry:
            del self._entries[name]
            return None
        return entry

    async def is_healthy(self, provider: SearchProvider) -> HealthCheckResult:
        entry = self.peek(provider.name)
        if entry is not None:
            return HealthCheckResult(healthy=entry.healthy, message=entry.message)

        result = await provider.is_available()
        self._store(provider.name, result.healthy, result.message)
        logger.debug(
            "Health check for %s: %s %s",
            provider.name, "healthy" if result.healthy else "unhealthy", result.message,
        )
        return result

    def mark_healthy(self, name: str) -> None:
        self._store(name, True, "")

    def mark_unhealthy(self, name: str, message: str) -> None:
        self._store(name, False, message)

    def _store(self, name: str, healthy: bool, message: str) -> None:
        self._entries[name] = HealthCacheEntry(
            healthy=healthy,
            expiry=self._clock() + self.ttl,
            message=message,
        )
