"""Common interface for search/extraction backends."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from sales_recon.errors import (
    ExtractionNotSupportedError,
    ProviderError,
    QuotaExhaustionError,
    has_quota_marker,
)
from sales_recon.models import HealthCheckResult, SearchOptions, SearchResponse, SearchResult

logger = logging.getLogger(__name__)

# Tavily answers 432 when the plan's credits are used up
QUOTA_STATUS_CODES = {402, 432}


class SearchProvider(ABC):
    """One third-party search backend.

    Subclasses implement ``_fetch`` (and optionally ``extract``); this base
    class handles timing, logging and translating transport failures into
    ``ProviderError`` so that a hard failure is never mistaken for an empty
    result set.
    """

    name: str = ""
    credential_env: str = ""
    default_max_results: int = 10
    supports_extract: bool = False

    def __init__(
        self,
        api_key: str,
        priority: int,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.priority = priority
        self.timeout = timeout
        self._client = client

    def __repr__(self) -> str:
        return f"<{type(self).__name__} priority={self.priority}>"

    async def is_available(self) -> HealthCheckResult:
        """Lightweight check: trust credential presence.

        No request is made, so no paid quota is spent. A bad or exhausted
        key surfaces on the first real search instead.
        """
        if not self.api_key:
            return HealthCheckResult(healthy=False, message=f"{self.credential_env} not configured")
        return HealthCheckResult(healthy=True)

    async def search(self, query: str, options: SearchOptions | None = None) -> SearchResponse:
        options = options or SearchOptions()
        max_results = options.max_results or self.default_max_results
        logger.info(
            "Search attempt with %s: query=%r max_results=%d depth=%s",
            self.name, query[:100], max_results, options.search_depth,
        )
        start = time.monotonic()
        try:
            results = await self._fetch(query, max_results, options)
        except ProviderError as e:
            logger.warning("Search failed with %s: %s", self.name, e)
            raise
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Unexpected response shape from %s: %s", self.name, e)
            raise ProviderError(self.name, f"{self.name} returned malformed payload: {e}") from e
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Search successful with %s: %d results in %dms (query=%r)",
            self.name, len(results), duration_ms, query[:100],
        )
        return SearchResponse(results=results, provider=self.name)

    @abstractmethod
    async def _fetch(
        self, query: str, max_results: int, options: SearchOptions,
    ) -> list[SearchResult]:
        """Call the backend and map its native shape to SearchResult."""

    async def extract(self, url: str) -> str:
        raise ExtractionNotSupportedError(self.name)

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict:
        """Send one HTTP request and return the decoded JSON body.

        Raises QuotaExhaustionError for usage-limit responses and
        ProviderError for any other transport or API failure.
        """
        try:
            if self._client is not None:
                response = await self._client.request(method, url, timeout=self.timeout, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderError(self.name, f"{self.name} timeout") from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"{self.name} transport error: {e}") from e

        if response.status_code >= 400:
            body = response.text[:300]
            message = f"{self.name} API error ({response.status_code}): {body}"
            if response.status_code in QUOTA_STATUS_CODES or has_quota_marker(body):
                raise QuotaExhaustionError(self.name, message, status_code=response.status_code)
            raise ProviderError(self.name, message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                self.name, f"{self.name} returned invalid JSON", status_code=response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(self.name, f"{self.name} returned unexpected payload")
        return data
