"""End-to-end company analysis: validation, research, enrichment, LLM, caching."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from sales_recon.analysis.analyzer import analyze_company
from sales_recon.analysis.llm_client import ChatModel, LLMClient, OpenAIChatModel
from sales_recon.cache.store import AnalysisCache, generate_cache_key
from sales_recon.config import Config
from sales_recon.domain_check import DomainValidator
from sales_recon.enrichment.org_lookup import OrgNumberLookup, is_swedish_company
from sales_recon.errors import (
    AnalysisError,
    AppError,
    DomainNotFoundError,
    InputValidationError,
    QuotaExhaustionError,
    RateLimitError,
    is_quota_exhaustion,
)
from sales_recon.models import AdvancedSearchParams, AnalysisResult, OrgLookupResult
from sales_recon.rate_limit import RateLimiter, rate_limit_message
from sales_recon.search.orchestrator import SearchOrchestrator
from sales_recon.search.research import extract_website_content, perform_multi_source_research
from sales_recon.validation import (
    extract_company_name,
    hostname_of,
    normalize_url,
    sanitize_advanced_params,
)

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "sv")


class ReconPipeline:
    """Owns every process-scoped collaborator and runs one analysis per call.

    Anything not passed in is built from ``config``. Use as an async context
    manager to run the periodic sweep of lapsed cache entries and
    rate-limit windows.
    """

    def __init__(
        self,
        config: Config,
        orchestrator: SearchOrchestrator | None = None,
        cache: AnalysisCache | None = None,
        llm: LLMClient | None = None,
        chat_model: ChatModel | None = None,
        rate_limiter: RateLimiter | None = None,
        domain_validator: DomainValidator | None = None,
    ):
        self.config = config
        self.orchestrator = orchestrator if orchestrator is not None else SearchOrchestrator(config)
        if cache is None:
            cache = AnalysisCache(
                max_size=config.cache_max_size,
                default_ttl=config.cache_ttl_seconds,
            )
        self.cache = cache
        self.llm = llm if llm is not None else LLMClient.from_config(config)

        if chat_model is None and config.openai_api_key:
            chat_model = OpenAIChatModel(
                api_key=config.openai_api_key,
                model=config.openai_lookup_model,
                timeout=config.llm_timeout,
            )
        self.chat_model = chat_model

        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter(
            max_requests=config.rate_limit_max_requests,
            window_seconds=config.rate_limit_window_seconds,
        )
        if domain_validator is None and config.validate_domains:
            domain_validator = DomainValidator(timeout=config.dns_timeout_seconds)
        self.domain_validator = domain_validator
        self._sweeper: asyncio.Task | None = None

    async def __aenter__(self) -> ReconPipeline:
        self.start_sweeper(self.config.cache_cleanup_interval_seconds)
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop_sweeper()

    def sweep(self) -> None:
        """Drop lapsed analysis-cache entries and rate-limit windows."""
        entries = self.cache.cleanup()
        windows = self.rate_limiter.cleanup()
        if entries or windows:
            logger.debug("Swept %d cache entries, %d rate-limit windows", entries, windows)

    def start_sweeper(self, interval: float) -> asyncio.Task:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever(interval))
        return self._sweeper

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()

    async def analyze(
        self,
        url: str,
        advanced_params: AdvancedSearchParams | None = None,
        language: str = "en",
        client_id: str = "local",
    ) -> AnalysisResult:
        """Analyze a company website and return sales intelligence.

        Raises an AppError subclass on failure. Unexpected exceptions are
        logged and surfaced as AnalysisError.
        """
        start = time.monotonic()
        try:
            result = await self._analyze(url, advanced_params, language, client_id)
        except AppError as e:
            logger.warning("Analysis of %s failed: %s", url, e.developer_message)
            raise
        except Exception as e:
            if is_quota_exhaustion(e):
                raise QuotaExhaustionError(message=str(e)) from e
            logger.exception("Unexpected error analyzing %s", url)
            raise AnalysisError(f"Unexpected error: {e}") from e

        logger.info("Analysis of %s finished in %.1fs", url, time.monotonic() - start)
        return result

    async def _analyze(
        self,
        url: str,
        advanced_params: AdvancedSearchParams | None,
        language: str,
        client_id: str,
    ) -> AnalysisResult:
        decision = self.rate_limiter.check(client_id)
        if not decision.allowed:
            raise RateLimitError(
                decision.retry_after,
                user_message=rate_limit_message(decision.retry_after, language),
            )

        if language not in SUPPORTED_LANGUAGES:
            raise InputValidationError(f"Unsupported language: {language!r}")

        normalized_url = normalize_url(url)
        params = (
            sanitize_advanced_params(advanced_params)
            if advanced_params is not None
            else AdvancedSearchParams()
        )

        if self.domain_validator is not None:
            check = await self.domain_validator.validate(normalized_url)
            if check.error == "not_found":
                raise DomainNotFoundError(hostname_of(normalized_url), check.suggestion)
            if check.error == "offline":
                logger.warning(
                    "Could not verify %s (%s), continuing", normalized_url, check.details,
                )

        cache_key = generate_cache_key(normalized_url, params, language)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Returning cached analysis for %s", normalized_url)
            return cached

        company_name = extract_company_name(normalized_url)
        is_swedish = is_swedish_company(normalized_url)

        website_content = await extract_website_content(self.orchestrator, normalized_url)

        lookup = OrgLookupResult()
        if is_swedish:
            lookup = await self._lookup_registry(company_name, normalized_url)

        research = await perform_multi_source_research(
            self.orchestrator,
            company_name,
            normalized_url,
            website_content,
            is_swedish=is_swedish,
            org_number=lookup.org_number,
            verified_financials=lookup.financial_data,
            params=params,
        )

        result = await analyze_company(
            self.llm,
            company_name,
            normalized_url,
            research,
            is_swedish=is_swedish,
            language=language,
            params=None if params.is_empty() else params,
            max_tokens=self.config.analysis_max_tokens,
            temperature=self.config.analysis_temperature,
            has_verified_financials=bool(lookup.financial_data),
        )

        if result.error is None:
            self.cache.set(cache_key, result)
        return result

    async def _lookup_registry(self, company_name: str, url: str) -> OrgLookupResult:
        """Org number and financials for Swedish companies. Failures are non-fatal."""
        if self.chat_model is None:
            logger.info("No tool-calling model configured, skipping registry lookup")
            return OrgLookupResult()

        lookup = OrgNumberLookup(
            self.chat_model,
            self.orchestrator.search,
            max_iterations=self.config.lookup_max_iterations,
            tool_choice_threshold=self.config.lookup_tool_choice_threshold,
            observation_limit=self.config.lookup_observation_chars,
        )
        try:
            return await lookup.run(company_name, url)
        except Exception as e:
            logger.warning("Registry lookup for %s failed: %s", company_name, e)
            return OrgLookupResult()

    def stats(self) -> dict[str, Any]:
        return {
            "providers": [s.model_dump() for s in self.orchestrator.get_stats()],
            "cache": self.cache.stats().model_dump(),
        }
