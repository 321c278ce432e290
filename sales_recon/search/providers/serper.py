"""Serper.dev provider: Google results, JSON POST with an API-key header."""

from __future__ import annotations

from sales_recon.models import SearchOptions, SearchResult
from sales_recon.search.providers.base import SearchProvider

SERPER_SEARCH_URL = "https://google.serper.dev/search"


class SerperProvider(SearchProvider):
    name = "Serper"
    credential_env = "SERPER_API_KEY"

    async def _fetch(
        self, query: str, max_results: int, options: SearchOptions,
    ) -> list[SearchResult]:
        headers = {
            "X-API-KEY": self.api_key,
            "Content-Type": "application/json",
        }
        data = await self._request(
            "POST", SERPER_SEARCH_URL, headers=headers, json={"q": query, "num": max_results},
        )

        return [
            SearchResult(
                title=item.get("title") or "",
                url=item.get("link") or "",
                content=item.get("snippet") or "",
            )
            for item in data.get("organic") or []
            if isinstance(item, dict)
        ]
