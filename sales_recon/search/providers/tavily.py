"""Tavily search provider: primary backend with page-content extraction."""

from __future__ import annotations

import logging
import time

from sales_recon.errors import ProviderError
from sales_recon.models import SearchOptions, SearchResult
from sales_recon.search.providers.base import SearchProvider

logger = logging.getLogger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
TAVILY_EXTRACT_URL = "https://api.tavily.com/extract"


class TavilyProvider(SearchProvider):
    name = "Tavily"
    credential_env = "TAVILY_API_KEY"
    default_max_results = 5
    supports_extract = True

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _fetch(
        self, query: str, max_results: int, options: SearchOptions,
    ) -> list[SearchResult]:
        payload = {
            "query": query,
            "max_results": max_results,
            "search_depth": options.search_depth,
        }
        data = await self._request("POST", TAVILY_SEARCH_URL, headers=self._headers(), json=payload)

        return [
            SearchResult(
                title=item.get("title") or "",
                url=item.get("url") or "",
                content=item.get("content") or "",
                raw_content=item.get("raw_content"),
            )
            for item in data.get("results") or []
            if isinstance(item, dict)
        ]

    async def extract(self, url: str) -> str:
        """Return the raw page text Tavily extracted for ``url`` ("" if none)."""
        start = time.monotonic()
        data = await self._request(
            "POST", TAVILY_EXTRACT_URL, headers=self._headers(), json={"urls": [url]},
        )

        results = data.get("results") or []
        if not results:
            failed = data.get("failed_results") or []
            if failed:
                reason = failed[0].get("error", "unknown error")
                raise ProviderError(self.name, f"Tavily extraction failed for {url}: {reason}")
            return ""

        raw_content = results[0].get("raw_content") or ""
        logger.info(
            "Extraction with %s: %d chars in %dms",
            self.name, len(raw_content), int((time.monotonic() - start) * 1000),
        )
        return raw_content
