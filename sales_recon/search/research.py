"""Six-stream parallel company research built on the search orchestrator."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any

from sales_recon.errors import AnalysisError, QuotaExhaustionError, is_quota_exhaustion
from sales_recon.models import AdvancedSearchParams, ResearchData, SearchOptions, SearchResult
from sales_recon.search.orchestrator import SearchOrchestrator
from sales_recon.search.strategy import generate_research_queries

logger = logging.getLogger(__name__)

NO_WEBSITE_CONTENT = "No content extracted"
WEBSITE_FAILED = "Failed to extract"
BRANCH_FAILED = "No data"

EMPTY_TEXT = {
    "leadership": "No leadership data found",
    "social_media": "No social activity found",
    "news": "No recent news found",
    "financials": "No financial data found",
    "signals": "No growth signals found",
}

# Order of the gathered branches; matches ResearchData fields
STREAMS = ("website_content", "leadership", "social_media", "news", "financials", "signals")


def format_results(results: list[SearchResult], tag: str = "") -> list[str]:
    prefix = f"[{tag}] " if tag else ""
    return [f"[SOURCE: {r.url}] {prefix}{r.title}: {r.content}" for r in results]


async def extract_website_content(orchestrator: SearchOrchestrator, url: str) -> str:
    """Extracted page text, or "" when extraction is unavailable or fails."""
    try:
        content = await orchestrator.extract(url)
    except Exception as e:
        logger.warning("Website extraction failed for %s: %s", url, e)
        return ""

    if not content:
        logger.info("No content extracted from %s", url)
        return ""
    logger.info("Website content extracted: %d chars", len(content))
    return content


async def perform_multi_source_research(
    orchestrator: SearchOrchestrator,
    company_name: str,
    url: str,
    website_content: str,
    is_swedish: bool = False,
    org_number: str = "",
    verified_financials: str = "",
    params: AdvancedSearchParams | None = None,
    today: date | None = None,
) -> ResearchData:
    """Run every research stream concurrently and fold the outcomes.

    A failing stream is replaced by a placeholder. Quota exhaustion in any
    stream aborts the whole step, as does having no usable data at all.
    """
    queries = {
        q["purpose"]: q
        for q in generate_research_queries(
            company_name, url, is_swedish=is_swedish, org_number=org_number,
            params=params, today=today,
        )
    }
    logger.info(
        "Starting research for %s%s",
        company_name or "company",
        " (targeted)" if params is not None and params.has_targeting() else "",
    )

    async def website() -> str:
        return website_content or NO_WEBSITE_CONTENT

    async def stream(purpose: str) -> str:
        results = await _search(orchestrator, queries[purpose])
        if not results:
            return EMPTY_TEXT[purpose]
        return "\n".join(format_results(results))

    async def financials() -> str:
        searches = [_search(orchestrator, queries["financials"])]
        if "financials_registry" in queries:
            searches.append(_search(orchestrator, queries["financials_registry"]))
        responses = await asyncio.gather(*searches)

        lines = format_results(responses[0])
        if len(responses) > 1:
            lines += format_results(responses[1], tag="Allabolag")
        return "\n".join(lines) if lines else EMPTY_TEXT["financials"]

    outcomes = await asyncio.gather(
        website(),
        stream("leadership"),
        stream("social_media"),
        stream("news"),
        financials(),
        stream("signals"),
        return_exceptions=True,
    )

    research = fold_outcomes(dict(zip(STREAMS, outcomes)))

    if verified_financials:
        header = f"=== VERIFIED REGISTRY DATA (ORG {org_number}) ==="
        research.financials = f"{header}\n{verified_financials}\n\n{research.financials}"

    if not has_sufficient_data(research):
        raise AnalysisError(
            "Unable to gather sufficient data for analysis. Please check API limits and try again."
        )

    logger.info("Research complete for %s", company_name or "company")
    return research


async def _search(orchestrator: SearchOrchestrator, q: dict) -> list[SearchResult]:
    response = await orchestrator.search(
        q["query"], SearchOptions(max_results=q["max_results"], search_depth="advanced"),
    )
    return response.results


def fold_outcomes(outcomes: dict[str, Any]) -> ResearchData:
    """Reduce per-stream outcomes (text or exception) into ResearchData.

    Raises QuotaExhaustionError if any stream hit a usage limit, before
    anything else is inspected.
    """
    for name, outcome in outcomes.items():
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, Exception) and is_quota_exhaustion(outcome):
            logger.error("Search quota exhausted during %s research: %s", name, outcome)
            raise QuotaExhaustionError(
                message=(
                    "Search API usage limit reached. Please try again later "
                    "or upgrade the search plan."
                ),
            ) from outcome

    fields = {}
    for name, outcome in outcomes.items():
        if isinstance(outcome, Exception):
            logger.warning("Research stream %s failed: %s", name, outcome)
            fields[name] = WEBSITE_FAILED if name == "website_content" else BRANCH_FAILED
        else:
            fields[name] = outcome
    return ResearchData(**fields)


def has_sufficient_data(research: ResearchData) -> bool:
    return (
        research.website_content != WEBSITE_FAILED
        or research.leadership != BRANCH_FAILED
        or research.social_media != BRANCH_FAILED
        or research.news != BRANCH_FAILED
    )
