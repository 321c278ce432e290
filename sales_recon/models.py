"""Pydantic data models for the sales research pipeline."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Search models
# ---------------------------------------------------------------------------

class SearchResult(BaseModel):
    """A single fact with a traceable source, normalised across providers."""
    model_config = ConfigDict(frozen=True)

    title: str = ""
    url: str = ""
    content: str = ""
    raw_content: str | None = None

    @field_validator("title", "url", "content", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        if v is None:
            return ""
        return str(v)


class SearchResponse(BaseModel):
    results: list[SearchResult] = Field(default_factory=list)
    provider: str


class SearchOptions(BaseModel):
    max_results: int | None = None
    search_depth: Literal["basic", "advanced"] = "advanced"


class HealthCheckResult(BaseModel):
    healthy: bool
    message: str = ""


class ProviderStats(BaseModel):
    """Per-provider usage counters, mutated after every real attempt."""
    name: str
    searches: int = 0
    failures: int = 0
    last_used: float | None = None
    last_error: str | None = None


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class AdvancedSearchParams(BaseModel):
    """Optional targeting fields that narrow the research to a person/team."""
    contact_person: str = ""
    department: str = ""
    location: str = ""
    job_title: str = ""
    specific_focus: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        if v is None:
            return ""
        return v

    def has_targeting(self) -> bool:
        return any([self.contact_person, self.department, self.location, self.job_title])

    def is_empty(self) -> bool:
        return not any(self.model_dump().values())


# ---------------------------------------------------------------------------
# Research models
# ---------------------------------------------------------------------------

class ResearchData(BaseModel):
    """Aggregated text of the six research streams."""
    website_content: str = ""
    leadership: str = ""
    social_media: str = ""
    news: str = ""
    financials: str = ""
    signals: str = ""


class OrgLookupResult(BaseModel):
    """Outcome of the registry identifier lookup. Empty strings when unresolved."""
    org_number: str = ""
    financial_data: str = ""
    iterations: int = 0
    exhausted: bool = False


class DomainValidationResult(BaseModel):
    exists: bool
    error: Literal["not_found", "offline"] | None = None
    suggestion: str | None = None
    details: str = ""


# ---------------------------------------------------------------------------
# Analysis models
# ---------------------------------------------------------------------------

class IceBreaker(BaseModel):
    text: str = Field(min_length=1, max_length=200)
    source_url: str | None = None


class AnalysisResult(BaseModel):
    """Sales intelligence returned to the caller."""
    summary: str = Field(default="", max_length=1000)
    ice_breaker: list[IceBreaker] = Field(default_factory=list, max_length=5)
    pain_points: list[str] = Field(default_factory=list, max_length=10)
    sales_hooks: list[str] = Field(default_factory=list, max_length=10)
    financial_signals: str = Field(default="", max_length=1000)
    company_tone: str = Field(default="", max_length=100)
    error: str | None = None

    @classmethod
    def nsfw(cls) -> AnalysisResult:
        return cls(error="NSFW_CONTENT")


class CacheStats(BaseModel):
    hits: int = 0
    misses: int = 0
    size: int = 0
    evictions: int = 0
    hit_rate: str = "0.00%"
