"""URL and free-text input sanitization, applied before any network call."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from sales_recon.errors import InvalidURLError
from sales_recon.models import AdvancedSearchParams

MAX_URL_LENGTH = 500
DEFAULT_TEXT_MAX_LENGTH = 200

FIELD_LIMITS = {
    "contact_person": 150,
    "department": 100,
    "location": 100,
    "job_title": 100,
    "specific_focus": 300,
}

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

DANGEROUS_URL_PATTERNS = [
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"data:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"file:", re.IGNORECASE),
    re.compile(r"about:", re.IGNORECASE),
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"on\w+=", re.IGNORECASE),  # onclick=, onerror=, ...
]

PROMPT_INJECTION_PATTERNS = [
    re.compile(r"ignore\s+(previous|all)\s+instructions", re.IGNORECASE),
    re.compile(r"forget\s+everything", re.IGNORECASE),
    re.compile(r"system\s*:", re.IGNORECASE),
    re.compile(r"assistant\s*:", re.IGNORECASE),
    re.compile(r"<\|im_start\|>", re.IGNORECASE),
    re.compile(r"<\|im_end\|>", re.IGNORECASE),
    re.compile(r"```"),
]


def sanitize_url(raw: str) -> str:
    """Strip control characters and reject oversize or script-bearing input."""
    cleaned = _CONTROL_CHARS.sub("", (raw or "").strip())

    if not cleaned:
        raise InvalidURLError("URL cannot be empty.")
    if len(cleaned) > MAX_URL_LENGTH:
        raise InvalidURLError(f"URL too long. Maximum length is {MAX_URL_LENGTH} characters.")

    for pattern in DANGEROUS_URL_PATTERNS:
        if pattern.search(cleaned):
            raise InvalidURLError("Invalid URL format. Please provide a valid HTTP/HTTPS URL.")

    return cleaned


def normalize_url(raw: str) -> str:
    """Sanitize and ensure an http(s) scheme, defaulting to https://."""
    sanitized = sanitize_url(raw)

    if re.match(r"^https?://", sanitized, re.IGNORECASE):
        normalized = sanitized
    else:
        normalized = f"https://{sanitized}"

    parsed = urlparse(normalized)
    host = parsed.hostname or ""
    if not host or " " in host or "." not in host.strip("."):
        raise InvalidURLError("Invalid URL format. Please provide a valid domain or URL.")
    return normalized


def sanitize_text_input(text: str | None, max_length: int = DEFAULT_TEXT_MAX_LENGTH) -> str:
    """Clean a free-text field so it cannot steer the LLM or break JSON."""
    if not text:
        return ""

    cleaned = _CONTROL_CHARS.sub("", text.strip())
    cleaned = cleaned[:max_length]

    for pattern in PROMPT_INJECTION_PATTERNS:
        cleaned = pattern.sub("", cleaned)

    cleaned = re.sub(r"[<>]", "", cleaned)
    cleaned = re.sub(r"[\"'`]", lambda m: "\\" + m.group(0), cleaned)
    return cleaned


def sanitize_advanced_params(params: AdvancedSearchParams) -> AdvancedSearchParams:
    return AdvancedSearchParams(
        **{
            field: sanitize_text_input(getattr(params, field), limit)
            for field, limit in FIELD_LIMITS.items()
        }
    )


def extract_company_name(url: str) -> str:
    """First host label, without www. ("https://www.acme.se/x" -> "acme")."""
    match = re.match(r"(?:https?://)?(?:www\.)?([^/.]+)", url, re.IGNORECASE)
    return match.group(1) if match else "the company"


def hostname_of(url: str) -> str:
    if not re.match(r"^https?://", url, re.IGNORECASE):
        url = f"https://{url}"
    return (urlparse(url).hostname or "").lower()
