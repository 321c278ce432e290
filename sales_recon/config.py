"""Configuration management via environment variables and .env file."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel

from sales_recon.errors import ConfigurationError


class Config(BaseModel):
    """Application configuration loaded from environment."""

    # Search provider credentials. A provider is active only when its key is set.
    tavily_api_key: str = ""
    serper_api_key: str = ""
    brave_api_key: str = ""
    serpapi_api_key: str = ""

    # LLM credentials
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # Models
    openai_analysis_model: str = "gpt-4o"
    openai_lookup_model: str = "gpt-4o"
    anthropic_analysis_model: str = "claude-sonnet-4-20250514"
    analysis_max_tokens: int = 4000
    analysis_temperature: float = 0.7
    llm_timeout: int = 120

    # HTTP
    http_timeout: float = 30.0

    # Provider health cache
    health_ttl_seconds: float = 300.0

    # Analysis cache
    cache_max_size: int = 100
    cache_ttl_seconds: float = 3600.0
    cache_cleanup_interval_seconds: float = 300.0

    # Rate limiting
    rate_limit_window_seconds: float = 300.0
    rate_limit_max_requests: int = 10

    # Registry lookup agent
    lookup_max_iterations: int = 5
    lookup_tool_choice_threshold: int = 4
    lookup_observation_chars: int = 3000

    # Domain validation gate
    validate_domains: bool = True
    dns_timeout_seconds: float = 5.0

    def configured_search_keys(self) -> dict[str, str]:
        return {
            name: key
            for name, key in (
                ("TAVILY_API_KEY", self.tavily_api_key),
                ("SERPER_API_KEY", self.serper_api_key),
                ("BRAVE_API_KEY", self.brave_api_key),
                ("SERPAPI_API_KEY", self.serpapi_api_key),
            )
            if key
        }

    @property
    def has_llm(self) -> bool:
        return bool(self.openai_api_key or self.anthropic_api_key)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(require_llm: bool = True) -> Config:
    """Load configuration from .env file and environment variables.

    Environment variables override .env values.
    Raises ConfigurationError when no search provider (or, if required,
    no LLM) credential is present.
    """
    load_dotenv()

    try:
        config = Config(
            tavily_api_key=os.getenv("TAVILY_API_KEY", ""),
            serper_api_key=os.getenv("SERPER_API_KEY", ""),
            brave_api_key=os.getenv("BRAVE_API_KEY", ""),
            serpapi_api_key=os.getenv("SERPAPI_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            openai_analysis_model=os.getenv("OPENAI_ANALYSIS_MODEL", "gpt-4o"),
            openai_lookup_model=os.getenv("OPENAI_LOOKUP_MODEL", "gpt-4o"),
            anthropic_analysis_model=os.getenv("ANTHROPIC_ANALYSIS_MODEL", "claude-sonnet-4-20250514"),
            http_timeout=float(os.getenv("HTTP_TIMEOUT_SECONDS", "30")),
            health_ttl_seconds=float(os.getenv("HEALTH_TTL_SECONDS", "300")),
            cache_max_size=int(os.getenv("CACHE_MAX_SIZE", "100")),
            cache_ttl_seconds=float(os.getenv("CACHE_TTL_SECONDS", "3600")),
            cache_cleanup_interval_seconds=float(os.getenv("CACHE_CLEANUP_INTERVAL_SECONDS", "300")),
            rate_limit_window_seconds=float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "300")),
            rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "10")),
            validate_domains=_env_bool("VALIDATE_DOMAINS", True),
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric configuration value: {e}") from e

    problems = []
    if not config.configured_search_keys():
        problems.append(
            "At least one search key required: TAVILY_API_KEY, SERPER_API_KEY, "
            "BRAVE_API_KEY or SERPAPI_API_KEY"
        )
    if require_llm and not config.has_llm:
        problems.append("At least one LLM key required: OPENAI_API_KEY or ANTHROPIC_API_KEY")
    if problems:
        raise ConfigurationError("; ".join(problems))

    return config
