"""LLM response handling for the sales analysis."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from sales_recon.analysis.analyzer import _extract_json, analyze_company
from sales_recon.analysis.prompts import build_system_prompt, build_user_prompt
from sales_recon.errors import AnalysisError
from sales_recon.models import AdvancedSearchParams, ResearchData

URL = "https://acme.com"

VALID = {
    "summary": "Acme builds reusable rockets for small payloads.",
    "ice_breaker": [
        {"text": "Saw the launch recap from last week", "source_url": "https://linkedin.com/posts/1"},
        {"text": "Congrats on the new Gothenburg office", "source_url": None},
    ],
    "pain_points": ["Launch cadence", "Supply chain delays", "Hiring engineers"],
    "sales_hooks": ["Cut integration time in half", "Scale test infrastructure"],
    "financial_signals": "Series B closed, hiring 40 engineers.",
    "company_tone": "Innovative Startup",
}


def llm_returning(text: str) -> AsyncMock:
    llm = AsyncMock()
    llm.complete.return_value = text
    return llm


def research() -> ResearchData:
    return ResearchData(
        website_content="Acme website",
        leadership="CEO Jane",
        social_media="posts",
        news="news",
        financials="numbers",
        signals="hiring",
    )


@pytest.mark.asyncio
async def test_valid_response_is_parsed():
    llm = llm_returning("```json\n" + json.dumps(VALID) + "\n```")

    result = await analyze_company(llm, "acme", URL, research())

    assert result.summary == VALID["summary"]
    assert result.ice_breaker[0].source_url == "https://linkedin.com/posts/1"
    assert result.ice_breaker[1].source_url is None
    assert result.company_tone == "Innovative Startup"
    assert result.error is None

    kwargs = llm.complete.await_args.kwargs
    assert kwargs["json_mode"] is True
    assert "NSFW_CONTENT" in kwargs["system"]


@pytest.mark.asyncio
async def test_nsfw_flag_returns_empty_result():
    result = await analyze_company(llm_returning('{"error": "NSFW_CONTENT"}'), "acme", URL, research())

    assert result.error == "NSFW_CONTENT"
    assert result.summary == ""
    assert result.ice_breaker == []
    assert result.pain_points == []


@pytest.mark.asyncio
@pytest.mark.parametrize("language,text", [
    ("en", "Impressed by your profile and experience"),
    ("sv", "Imponerad av din profil och erfarenhet"),
])
async def test_empty_ice_breakers_get_localized_fallback(language, text):
    data = dict(VALID, ice_breaker=[])

    result = await analyze_company(
        llm_returning(json.dumps(data)), "acme", URL, research(), language=language,
    )

    assert len(result.ice_breaker) == 1
    assert result.ice_breaker[0].text == text
    assert result.ice_breaker[0].source_url == URL


@pytest.mark.asyncio
async def test_missing_fields_are_listed():
    data = {k: v for k, v in VALID.items() if k not in ("pain_points", "company_tone")}

    with pytest.raises(AnalysisError) as exc_info:
        await analyze_company(llm_returning(json.dumps(data)), "acme", URL, research())

    assert str(exc_info.value) == "AI returned incomplete analysis. Missing: pain_points, company_tone"


@pytest.mark.asyncio
async def test_non_array_ice_breaker_is_rejected():
    data = dict(VALID, ice_breaker="just a string")

    with pytest.raises(AnalysisError, match="ice_breaker not array"):
        await analyze_company(llm_returning(json.dumps(data)), "acme", URL, research())


@pytest.mark.asyncio
async def test_unparseable_response_raises():
    with pytest.raises(AnalysisError, match="Failed to parse"):
        await analyze_company(llm_returning("Sorry, I can't help."), "acme", URL, research())


@pytest.mark.asyncio
async def test_empty_response_raises():
    with pytest.raises(AnalysisError, match="No response"):
        await analyze_company(llm_returning(""), "acme", URL, research())


@pytest.mark.asyncio
async def test_oversized_lists_are_trimmed():
    data = dict(
        VALID,
        ice_breaker=[{"text": f"Opener {i}", "source_url": None} for i in range(8)],
        pain_points=[f"Pain {i}" for i in range(15)],
        company_tone="x" * 300,
    )

    result = await analyze_company(llm_returning(json.dumps(data)), "acme", URL, research())

    assert len(result.ice_breaker) == 5
    assert len(result.pain_points) == 10
    assert len(result.company_tone) == 100


def test_extract_json_finds_object_in_prose():
    text = 'Here you go: {"summary": "a {brace} inside", "n": 1} Thanks!'
    assert json.loads(_extract_json(text)) == {"summary": "a {brace} inside", "n": 1}


def test_user_prompt_applies_stream_budgets():
    data = ResearchData(website_content="w" * 5000, financials="f" * 5000)

    prompt = build_user_prompt("acme", URL, data)

    assert "w" * 3000 in prompt
    assert "w" * 3001 not in prompt
    assert "f" * 4000 in prompt
    assert "f" * 4001 not in prompt


def test_user_prompt_includes_targeting_only_when_set():
    params = AdvancedSearchParams(contact_person="Jane Doe", department="Sales")

    targeted = build_user_prompt("acme", URL, research(), params=params)
    plain = build_user_prompt("acme", URL, research())

    assert "- Contact Person: Jane Doe" in targeted
    assert "- Department: Sales" in targeted
    assert "Job Title" not in targeted
    assert "TARGETED SEARCH" not in plain


def test_system_prompt_language():
    assert "SVENSKA" in build_system_prompt("sv")
    assert "ENGLISH" in build_system_prompt("en")


def test_registry_notes_only_when_verified_data_present():
    unverified = build_user_prompt("acme", "https://acme.se", research(), is_swedish=True)
    verified = build_user_prompt(
        "acme", "https://acme.se", research(), is_swedish=True, has_verified_financials=True,
    )

    assert "[Swedish company]" in unverified
    assert "VERIFIED REGISTRY DATA" not in unverified
    assert "=== FINANCIAL RESULTS (INCLUDES VERIFIED REGISTRY DATA) ===" in verified
    assert "verified registry data included below" in verified
