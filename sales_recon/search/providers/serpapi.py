"""SerpAPI provider: Google results via query-string authentication."""

from __future__ import annotations

from sales_recon.errors import ProviderError, QuotaExhaustionError, has_quota_marker
from sales_recon.models import SearchOptions, SearchResult
from sales_recon.search.providers.base import SearchProvider

SERPAPI_BASE_URL = "https://serpapi.com/search.json"


class SerpApiProvider(SearchProvider):
    name = "SerpAPI"
    credential_env = "SERPAPI_API_KEY"

    async def _fetch(
        self, query: str, max_results: int, options: SearchOptions,
    ) -> list[SearchResult]:
        params = {
            "engine": "google",
            "q": query,
            "api_key": self.api_key,
            "num": str(max_results),
        }
        data = await self._request("GET", SERPAPI_BASE_URL, params=params)

        # SerpAPI reports some failures inside a 200 body
        if data.get("error"):
            message = f"SerpAPI error: {data['error']}"
            if has_quota_marker(data["error"]):
                raise QuotaExhaustionError(self.name, message)
            if "hasn't returned any results" in data["error"]:
                return []
            raise ProviderError(self.name, message)

        return [
            SearchResult(
                title=item.get("title") or "",
                url=item.get("link") or "",
                content=item.get("snippet") or "",
            )
            for item in data.get("organic_results") or []
            if isinstance(item, dict)
        ]
