"""Multi-query search strategy for the company research streams."""

from __future__ import annotations

import re
from datetime import date

from sales_recon.models import AdvancedSearchParams

# Results requested per stream
SEARCH_LIMITS = {
    "leadership": 4,
    "social_media": 5,
    "news": 5,
    "financials": 2,
    "financials_registry": 3,
    "signals": 4,
}

# Zero-based months 0-5 (January to June) use the first list
CURRENT_MONTH_THRESHOLD = 6
FIRST_HALF_MONTHS = "January February March April May"
SECOND_HALF_MONTHS = "June July August September October November December"


def validate_query_component(value: str | None, max_length: int = 100) -> str:
    """Trim a query fragment; fragments under 2 characters are dropped."""
    if not value:
        return ""
    trimmed = value.strip()
    if len(trimmed) < 2:
        return ""
    return trimmed[:max_length]


def current_months(today: date | None = None) -> str:
    today = today or date.today()
    # date.month is 1-based
    if today.month - 1 < CURRENT_MONTH_THRESHOLD:
        return FIRST_HALF_MONTHS
    return SECOND_HALF_MONTHS


def _join(*parts: str) -> str:
    return re.sub(r"\s+", " ", " ".join(p for p in parts if p)).strip()


def generate_research_queries(
    company_name: str,
    url: str,
    is_swedish: bool = False,
    org_number: str = "",
    params: AdvancedSearchParams | None = None,
    today: date | None = None,
) -> list[dict]:
    """Generate one query per search-backed research stream.

    Returns list of dicts with 'query', 'purpose' and 'max_results' keys.
    The registry query is only included for Swedish companies.
    """
    params = params or AdvancedSearchParams()
    today = today or date.today()
    year = str(today.year)
    months = current_months(today)

    company = validate_query_component(company_name, 100)
    contact = validate_query_component(params.contact_person, 100)
    job_title = validate_query_component(params.job_title, 100)
    department = validate_query_component(params.department, 100)
    location = validate_query_component(params.location, 100)
    focus = validate_query_component(params.specific_focus, 200)

    target_context = _join(contact, job_title, department, location)

    if contact:
        leadership = _join(contact, company, "LinkedIn", location, job_title, year)
        social = _join(contact, "LinkedIn post", focus, months, year)
    else:
        leadership = _join(company, target_context, "CEO founder leadership team LinkedIn", year)
        social = _join(company, target_context, "LinkedIn post recent", months, year)

    queries = [
        {"query": leadership, "purpose": "leadership"},
        {"query": social, "purpose": "social_media"},
        {"query": _join(company, "news press release announcement", year), "purpose": "news"},
        {
            "query": _join(
                company, "financial results quarterly earnings revenue", str(today.year - 1), year,
            ),
            "purpose": "financials",
        },
    ]

    if is_swedish:
        if org_number:
            registry = f"{org_number} Allabolag årsredovisning omsättning"
        else:
            registry = f"{url} Allabolag omsättning"
        queries.append({"query": registry, "purpose": "financials_registry"})

    queries.append({
        "query": _join(company, "hiring jobs funding expansion partnership", year),
        "purpose": "signals",
    })

    for q in queries:
        q["max_results"] = SEARCH_LIMITS[q["purpose"]]
    return queries
