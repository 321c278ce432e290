"""Sales intelligence generation from aggregated research via the LLM."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from sales_recon.analysis.llm_client import LLMClient
from sales_recon.analysis.prompts import build_system_prompt, build_user_prompt
from sales_recon.errors import AnalysisError
from sales_recon.models import AdvancedSearchParams, AnalysisResult, ResearchData

logger = logging.getLogger(__name__)

NSFW_FLAG = "NSFW_CONTENT"

FALLBACK_ICE_BREAKER = {
    "en": "Impressed by your profile and experience",
    "sv": "Imponerad av din profil och erfarenhet",
}

REQUIRED_FIELDS = (
    "summary", "ice_breaker", "pain_points", "sales_hooks", "financial_signals", "company_tone",
)

# Hard caps matching AnalysisResult; longer model output is trimmed, not rejected
_MAX_ICE_BREAKERS = 5
_MAX_ICE_BREAKER_CHARS = 200
_MAX_LIST_ITEMS = 10
_MAX_TEXT_CHARS = {"summary": 1000, "financial_signals": 1000, "company_tone": 100}


def _extract_json(text: str) -> str:
    """Extract the first valid JSON object from the model's response."""
    cleaned = text.strip()
    cleaned = re.sub(r"^```json\s*", "", cleaned)
    cleaned = re.sub(r"^```\s*", "", cleaned)
    cleaned = re.sub(r"\s*```\s*$", "", cleaned)
    cleaned = cleaned.strip()

    try:
        json.loads(cleaned)
        return cleaned
    except json.JSONDecodeError:
        pass

    start = cleaned.find("{")
    if start == -1:
        return cleaned

    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(cleaned)):
        c = cleaned[i]
        if escape:
            escape = False
            continue
        if c == "\\":
            escape = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                candidate = cleaned[start:i + 1]
                try:
                    json.loads(candidate)
                    return candidate
                except json.JSONDecodeError:
                    break

    return cleaned


def _normalize_ice_breakers(items: list) -> list[dict[str, Any]]:
    normalized = []
    for item in items:
        if isinstance(item, str):
            item = {"text": item, "source_url": None}
        if not isinstance(item, dict):
            continue
        text = str(item.get("text") or "").strip()
        if not text:
            continue
        normalized.append({
            "text": text[:_MAX_ICE_BREAKER_CHARS],
            "source_url": item.get("source_url") or None,
        })
    return normalized[:_MAX_ICE_BREAKERS]


def validate_and_fix(data: dict[str, Any], url: str, language: str = "en") -> AnalysisResult:
    """Check required fields, patch an empty ice-breaker list, clamp lengths.

    Raises AnalysisError naming every missing or invalid field.
    """
    missing = []
    for name in REQUIRED_FIELDS:
        if name == "ice_breaker":
            continue
        if not data.get(name):
            missing.append(name)
        elif name in ("pain_points", "sales_hooks") and not isinstance(data[name], list):
            missing.append(f"{name} not array")

    ice_breakers = data.get("ice_breaker")
    if ice_breakers is None:
        missing.insert(1, "ice_breaker")
    elif not isinstance(ice_breakers, list):
        missing.insert(1, "ice_breaker not array")
    else:
        ice_breakers = _normalize_ice_breakers(ice_breakers)
        if not ice_breakers:
            logger.info("Empty ice_breaker list, using fallback for %s", url)
            ice_breakers = [{
                "text": FALLBACK_ICE_BREAKER.get(language, FALLBACK_ICE_BREAKER["en"]),
                "source_url": url,
            }]

    if missing:
        logger.error("Analysis validation failed. Missing/invalid fields: %s", ", ".join(missing))
        raise AnalysisError(f"AI returned incomplete analysis. Missing: {', '.join(missing)}")

    try:
        return AnalysisResult(
            summary=str(data["summary"])[: _MAX_TEXT_CHARS["summary"]],
            ice_breaker=ice_breakers,
            pain_points=[str(p) for p in data["pain_points"]][:_MAX_LIST_ITEMS],
            sales_hooks=[str(h) for h in data["sales_hooks"]][:_MAX_LIST_ITEMS],
            financial_signals=str(data["financial_signals"])[: _MAX_TEXT_CHARS["financial_signals"]],
            company_tone=str(data["company_tone"])[: _MAX_TEXT_CHARS["company_tone"]],
        )
    except (ValidationError, TypeError) as e:
        raise AnalysisError(f"AI returned malformed analysis: {e}") from e


async def analyze_company(
    llm: LLMClient,
    company_name: str,
    url: str,
    research: ResearchData,
    is_swedish: bool = False,
    language: str = "en",
    params: AdvancedSearchParams | None = None,
    max_tokens: int = 4000,
    temperature: float = 0.7,
    has_verified_financials: bool = False,
) -> AnalysisResult:
    """Ask the LLM for sales intelligence and return a validated result."""
    system = build_system_prompt(language)
    prompt = build_user_prompt(
        company_name, url, research, is_swedish, params, has_verified_financials,
    )

    response_text = await llm.complete(
        prompt,
        system=system,
        max_tokens=max_tokens,
        temperature=temperature,
        json_mode=True,
    )
    if not response_text:
        raise AnalysisError("No response from AI. Please try again.")

    logger.debug("LLM response (%d chars): %s", len(response_text), response_text[:500])

    try:
        data = json.loads(_extract_json(response_text))
    except json.JSONDecodeError as e:
        logger.error("JSON parse error: %s\nResponse preview: %s", e, response_text[:200])
        raise AnalysisError("Failed to parse AI response. The response may be malformed.") from e

    if not isinstance(data, dict):
        raise AnalysisError("Failed to parse AI response. Expected a JSON object.")

    if data.get("error") == NSFW_FLAG:
        logger.warning("Content for %s flagged as NSFW, skipping analysis", url)
        return AnalysisResult.nsfw()

    result = validate_and_fix(data, url, language)
    logger.info("Analysis complete for %s", company_name)
    return result
