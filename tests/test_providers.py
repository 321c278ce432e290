"""Provider adapters against mocked HTTP transports."""

from __future__ import annotations

import json

import httpx
import pytest

from sales_recon.errors import (
    ExtractionNotSupportedError,
    ProviderError,
    QuotaExhaustionError,
)
from sales_recon.models import SearchOptions
from sales_recon.search.health import HealthCache
from sales_recon.search.orchestrator import SearchOrchestrator
from sales_recon.search.providers.brave import BraveProvider
from sales_recon.search.providers.serpapi import SerpApiProvider
from sales_recon.search.providers.serper import SerperProvider
from sales_recon.search.providers.tavily import TavilyProvider


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_tavily_search_maps_results_and_sends_bearer_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"results": [
            {"title": "Acme", "url": "https://acme.com", "content": "Rockets", "raw_content": None},
            {"title": None, "url": "https://acme.com/b", "content": None},
        ]})

    provider = TavilyProvider("tv-key", 1, client=mock_client(handler))
    response = await provider.search("acme news", SearchOptions(max_results=3))

    assert seen["auth"] == "Bearer tv-key"
    assert seen["body"] == {"query": "acme news", "max_results": 3, "search_depth": "advanced"}
    assert response.provider == "Tavily"
    assert [r.title for r in response.results] == ["Acme", ""]
    assert response.results[1].content == ""


@pytest.mark.asyncio
async def test_tavily_default_max_results_is_five():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"results": []})

    provider = TavilyProvider("k", 1, client=mock_client(handler))
    response = await provider.search("acme")

    assert seen["body"]["max_results"] == 5
    assert response.results == []


@pytest.mark.asyncio
async def test_tavily_extract_returns_raw_content():
    def handler(request):
        assert request.url.path == "/extract"
        assert json.loads(request.content) == {"urls": ["https://acme.com"]}
        return httpx.Response(200, json={"results": [{"url": "https://acme.com", "raw_content": "Hello"}]})

    provider = TavilyProvider("k", 1, client=mock_client(handler))
    assert await provider.extract("https://acme.com") == "Hello"


@pytest.mark.asyncio
async def test_tavily_extract_failed_results_raise():
    def handler(request):
        return httpx.Response(200, json={
            "results": [],
            "failed_results": [{"url": "https://acme.com", "error": "blocked"}],
        })

    provider = TavilyProvider("k", 1, client=mock_client(handler))
    with pytest.raises(ProviderError, match="blocked"):
        await provider.extract("https://acme.com")


@pytest.mark.asyncio
async def test_tavily_extract_empty_response_is_empty_string():
    provider = TavilyProvider("k", 1, client=mock_client(lambda r: httpx.Response(200, json={})))
    assert await provider.extract("https://acme.com") == ""


@pytest.mark.asyncio
async def test_serper_maps_organic_results():
    def handler(request):
        assert request.headers["X-API-KEY"] == "sp-key"
        assert json.loads(request.content) == {"q": "acme", "num": 4}
        return httpx.Response(200, json={"organic": [
            {"title": "Acme", "link": "https://acme.com", "snippet": "We build"},
        ]})

    provider = SerperProvider("sp-key", 2, client=mock_client(handler))
    response = await provider.search("acme", SearchOptions(max_results=4))

    assert response.provider == "Serper"
    assert response.results[0].url == "https://acme.com"
    assert response.results[0].content == "We build"


@pytest.mark.asyncio
async def test_brave_caps_count_and_maps_web_results():
    def handler(request):
        assert request.headers["X-Subscription-Token"] == "br-key"
        assert request.url.params["count"] == "20"
        return httpx.Response(200, json={"web": {"results": [
            {"title": "Acme", "url": "https://acme.com", "description": "Desc"},
        ]}})

    provider = BraveProvider("br-key", 3, client=mock_client(handler))
    response = await provider.search("acme", SearchOptions(max_results=50))

    assert response.results[0].content == "Desc"


@pytest.mark.asyncio
async def test_brave_missing_web_section_is_empty():
    provider = BraveProvider("k", 3, client=mock_client(lambda r: httpx.Response(200, json={})))
    response = await provider.search("acme")
    assert response.results == []


@pytest.mark.asyncio
async def test_serpapi_sends_key_as_query_param():
    def handler(request):
        params = request.url.params
        assert params["api_key"] == "sa-key"
        assert params["engine"] == "google"
        return httpx.Response(200, json={"organic_results": [
            {"title": "Acme", "link": "https://acme.com", "snippet": "Snip"},
        ]})

    provider = SerpApiProvider("sa-key", 4, client=mock_client(handler))
    response = await provider.search("acme")
    assert response.results[0].title == "Acme"


@pytest.mark.asyncio
async def test_serpapi_body_error_with_quota_marker_is_quota_exhaustion():
    def handler(request):
        return httpx.Response(200, json={"error": "Your account has run out of searches."})

    provider = SerpApiProvider("k", 4, client=mock_client(handler))
    with pytest.raises(QuotaExhaustionError):
        await provider.search("acme")


@pytest.mark.asyncio
async def test_serpapi_no_results_error_is_empty_result_set():
    def handler(request):
        return httpx.Response(200, json={"error": "Google hasn't returned any results for this query."})

    provider = SerpApiProvider("k", 4, client=mock_client(handler))
    response = await provider.search("zzzz")
    assert response.results == []


@pytest.mark.asyncio
async def test_quota_status_code_raises_quota_exhaustion():
    provider = TavilyProvider(
        "k", 1, client=mock_client(lambda r: httpx.Response(432, text="plan limit")),
    )
    with pytest.raises(QuotaExhaustionError) as exc_info:
        await provider.search("acme")
    assert exc_info.value.http_status == 432


@pytest.mark.asyncio
async def test_server_error_raises_provider_error_with_status():
    provider = SerperProvider(
        "k", 2, client=mock_client(lambda r: httpx.Response(500, text="internal")),
    )
    with pytest.raises(ProviderError) as exc_info:
        await provider.search("acme")

    assert not isinstance(exc_info.value, QuotaExhaustionError)
    assert "Serper API error (500)" in str(exc_info.value)
    assert exc_info.value.provider == "Serper"


@pytest.mark.asyncio
async def test_usage_limit_body_on_error_status_is_quota_exhaustion():
    provider = SerperProvider(
        "k", 2,
        client=mock_client(lambda r: httpx.Response(400, text="This request exceeds your plan's set usage limit")),
    )
    with pytest.raises(QuotaExhaustionError):
        await provider.search("acme")


@pytest.mark.asyncio
async def test_timeout_becomes_provider_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    provider = BraveProvider("k", 3, client=mock_client(handler))
    with pytest.raises(ProviderError, match="Brave timeout"):
        await provider.search("acme")


@pytest.mark.asyncio
async def test_invalid_json_becomes_provider_error():
    provider = SerperProvider(
        "k", 2, client=mock_client(lambda r: httpx.Response(200, text="<html>")),
    )
    with pytest.raises(ProviderError, match="invalid JSON"):
        await provider.search("acme")


@pytest.mark.asyncio
async def test_unconfigured_provider_reports_unhealthy():
    health = await TavilyProvider("", 1).is_available()
    assert not health.healthy
    assert health.message == "TAVILY_API_KEY not configured"

    assert (await SerperProvider("k", 2).is_available()).healthy


@pytest.mark.asyncio
async def test_extract_not_supported_by_search_only_providers():
    with pytest.raises(ExtractionNotSupportedError):
        await SerperProvider("k", 2).extract("https://acme.com")


@pytest.mark.asyncio
async def test_non_dict_items_are_skipped():
    def handler(request):
        return httpx.Response(200, json={"results": [None, "junk", {"title": "Acme", "url": "u"}]})

    provider = TavilyProvider("k", 1, client=mock_client(handler))
    response = await provider.search("acme")

    assert [r.title for r in response.results] == ["Acme"]


@pytest.mark.asyncio
async def test_brave_non_dict_web_section_is_empty():
    provider = BraveProvider(
        "k", 3, client=mock_client(lambda request: httpx.Response(200, json={"web": ["x"]})),
    )

    response = await provider.search("acme")

    assert response.results == []


@pytest.mark.asyncio
async def test_malformed_payload_is_provider_error():
    provider = TavilyProvider(
        "k", 1, client=mock_client(lambda request: httpx.Response(200, json={"results": 5})),
    )

    with pytest.raises(ProviderError, match="malformed payload"):
        await provider.search("acme")


@pytest.mark.asyncio
async def test_malformed_payload_falls_back_to_next_provider():
    tavily = TavilyProvider(
        "k", 1, client=mock_client(lambda request: httpx.Response(200, json={"results": 5})),
    )
    serper = SerperProvider(
        "k", 2,
        client=mock_client(lambda request: httpx.Response(200, json={"organic": [
            {"title": "Acme", "link": "https://acme.com", "snippet": "Rockets"},
        ]})),
    )
    orchestrator = SearchOrchestrator(providers=[tavily, serper], health_cache=HealthCache())

    response = await orchestrator.search("acme")

    assert response.provider == "Serper"
    stats = {s.name: s for s in orchestrator.get_stats()}
    assert stats["Tavily"].failures == 1
    assert "malformed payload" in stats["Tavily"].last_error
