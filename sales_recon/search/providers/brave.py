"""Brave Search provider: independent index, subscription-token header."""

from __future__ import annotations

from sales_recon.models import SearchOptions, SearchResult
from sales_recon.search.providers.base import SearchProvider

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"

# Brave rejects count > 20
BRAVE_MAX_COUNT = 20


class BraveProvider(SearchProvider):
    name = "Brave"
    credential_env = "BRAVE_API_KEY"

    async def _fetch(
        self, query: str, max_results: int, options: SearchOptions,
    ) -> list[SearchResult]:
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip",
            "X-Subscription-Token": self.api_key,
        }
        params = {"q": query, "count": str(min(max_results, BRAVE_MAX_COUNT))}
        data = await self._request("GET", BRAVE_SEARCH_URL, headers=headers, params=params)

        web = data.get("web")
        if not isinstance(web, dict):
            web = {}
        return [
            SearchResult(
                title=item.get("title") or "",
                url=item.get("url") or "",
                content=item.get("description") or "",
            )
            for item in web.get("results") or []
            if isinstance(item, dict)
        ]
