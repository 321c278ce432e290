"""LLM prompt templates for the sales intelligence analysis."""

from __future__ import annotations

from sales_recon.models import AdvancedSearchParams, ResearchData

# Characters of each research stream passed to the model
STREAM_BUDGETS = {
    "website_content": 3000,
    "leadership": 2000,
    "social_media": 2000,
    "news": 2500,
    "financials": 4000,
    "signals": 1500,
}

LANGUAGE_INSTRUCTIONS = {
    "sv": (
        "SPRÅK: Generera ALLA texter (summary, ice_breaker, pain_points, sales_hooks, "
        "financial_signals, company_tone) på SVENSKA. Använd naturlig svensk text, "
        "inte översättningar."
    ),
    "en": "LANGUAGE: Generate ALL text content in ENGLISH.",
}

# ---------------------------------------------------------------------------
# System prompt
# ---------------------------------------------------------------------------

ANALYSIS_SYSTEM_PROMPT = """SAFETY FIRST: Check the content. If it is pornographic, gambling or hate speech, return JSON ONLY: {{"error": "NSFW_CONTENT"}}. Do not analyze.

{language_instruction}

**GROUNDING:** You are analyzing the SPECIFIC URL provided.
- Do NOT assume a similar-sounding name is a famous brand.
- If the extracted website content is personal or sparse, trust it over the search results.
- If content contradicts search results, prioritize the website content.

You are a B2B sales intelligence analyst. Extract CONCISE, ACTIONABLE sales intelligence.
Keep every answer short. No generic statements.

**ICE BREAKER RULES:**
- Provide 2-3 different ice breakers (an array), 15-20 words each
- Each takes a different angle: a recent post, company news, a growth signal
- Conversational peer tone; prefer activity from the last 2-4 weeks
- Skip generic PR and promotional announcements
- Every research entry starts with a [SOURCE: url] tag. Use the EXACT url of the entry
  your ice breaker refers to as source_url. Never default to the homepage.
- Only write ice breakers you can tie to a [SOURCE: ...] tag. If none exist, set source_url to null.
- Personal sites and portfolios still get at least one ice breaker (website URL as source).

**ANALYSIS FRAMEWORK:**
1. summary: 1-2 sentences on what they do and their value proposition
2. ice_breaker: array of {{"text": ..., "source_url": ...}}
3. pain_points: 3 items, 5-10 words each
4. sales_hooks: 2 items, 8-12 words each, tied to the pain points
5. financial_signals: 1-2 sentences on growth, hiring, funding or cost pressure.
   Data under "=== VERIFIED REGISTRY DATA (ORG ...) ===" comes from the Swedish company
   registry. Summarize it in natural language, do not paste it. Translate terms:
   Omsättning = revenue, Resultat = profit, Soliditet = equity ratio, tkr = thousands SEK.
6. company_tone: 2-4 words describing the brand voice

Respond with ONLY valid JSON (no markdown, no explanations):
{{
  "summary": "...",
  "ice_breaker": [{{"text": "...", "source_url": "https://..."}}],
  "pain_points": ["...", "...", "..."],
  "sales_hooks": ["...", "..."],
  "financial_signals": "...",
  "company_tone": "..."
}}"""


def build_system_prompt(language: str = "en") -> str:
    instruction = LANGUAGE_INSTRUCTIONS.get(language, LANGUAGE_INSTRUCTIONS["en"])
    return ANALYSIS_SYSTEM_PROMPT.format(language_instruction=instruction)


# ---------------------------------------------------------------------------
# User prompt
# ---------------------------------------------------------------------------

def build_targeting_context(params: AdvancedSearchParams | None) -> str:
    if params is None or params.is_empty():
        return ""

    lines = ["", "", "TARGETED SEARCH - Focus your analysis on:"]
    for label, value in (
        ("Contact Person", params.contact_person),
        ("Job Title", params.job_title),
        ("Department", params.department),
        ("Location", params.location),
        ("Focus Area", params.specific_focus),
    ):
        if value:
            lines.append(f"- {label}: {value}")
    lines.append("")
    lines.append(
        "IMPORTANT: Tailor the ice breakers, pain points and sales hooks to this "
        "person/department/location within the larger organization."
    )
    return "\n".join(lines)


def build_user_prompt(
    company_name: str,
    url: str,
    research: ResearchData,
    is_swedish: bool = False,
    params: AdvancedSearchParams | None = None,
    has_verified_financials: bool = False,
) -> str:
    """Render the research streams, each cut to its character budget."""
    def cut(field: str) -> str:
        return getattr(research, field)[: STREAM_BUDGETS[field]]

    swedish_note = ""
    if is_swedish:
        swedish_note = (
            " [Swedish company - verified registry data included below]"
            if has_verified_financials
            else " [Swedish company]"
        )
    financial_note = " (INCLUDES VERIFIED REGISTRY DATA)" if has_verified_financials else ""

    return f"""Company: {company_name} ({url}){swedish_note}{build_targeting_context(params)}

=== WEBSITE (PRIMARY SOURCE - TRUST THIS) ===
{cut("website_content")}

=== LEADERSHIP & KEY PEOPLE ===
{cut("leadership")}

=== SOCIAL MEDIA ACTIVITY (prioritize recent, personal posts) ===
{cut("social_media")}

=== RECENT NEWS & PRESS ===
{cut("news")}

=== FINANCIAL RESULTS{financial_note} ===
{cut("financials")}

=== GROWTH SIGNALS ===
{cut("signals")}

Analyze and provide sales intelligence."""
