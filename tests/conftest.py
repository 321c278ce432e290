"""Shared fixtures and fakes for the test suite."""

from __future__ import annotations

import pytest

from sales_recon.analysis.llm_client import AssistantTurn, ToolCall
from sales_recon.models import SearchResult
from sales_recon.search.providers.base import SearchProvider


class FakeClock:
    """Monotonic clock under test control."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider(SearchProvider):
    """Scripted provider that counts probes, searches and extractions."""

    def __init__(
        self,
        name: str,
        priority: int,
        results: list[SearchResult] | None = None,
        error: Exception | None = None,
        configured: bool = True,
        supports_extract: bool = False,
        extract_content: str = "",
        extract_error: Exception | None = None,
    ):
        super().__init__(api_key="test-key" if configured else "", priority=priority)
        self.name = name
        self.credential_env = f"{name.upper()}_API_KEY"
        self.supports_extract = supports_extract
        self.results = results or []
        self.error = error
        self.extract_content = extract_content
        self.extract_error = extract_error
        self.probe_calls = 0
        self.search_calls = 0
        self.extract_calls = 0
        self.queries: list[str] = []

    async def is_available(self):
        self.probe_calls += 1
        return await super().is_available()

    async def _fetch(self, query, max_results, options):
        self.search_calls += 1
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return list(self.results)

    async def extract(self, url: str) -> str:
        self.extract_calls += 1
        if not self.supports_extract:
            return await super().extract(url)
        error = self.extract_error or self.error
        if error is not None:
            raise error
        return self.extract_content


class FakeChatModel:
    """Replays a fixed list of assistant turns; repeats the last one forever."""

    def __init__(self, turns: list[AssistantTurn]):
        self.turns = turns
        self.calls: list[dict] = []

    async def chat(self, messages, tools, tool_choice):
        self.calls.append({"messages": list(messages), "tools": tools, "tool_choice": tool_choice})
        index = min(len(self.calls) - 1, len(self.turns) - 1)
        return self.turns[index]


def make_result(title: str, url: str | None = None, content: str | None = None) -> SearchResult:
    return SearchResult(
        title=title,
        url=url or f"https://example.com/{title.lower().replace(' ', '-')}",
        content=content or f"{title} content",
    )


def search_call(call_id: str, query: str) -> ToolCall:
    return ToolCall(id=call_id, name="search_web", arguments=f'{{"query": "{query}"}}')


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
