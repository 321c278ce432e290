"""Priority-ordered search dispatcher with automatic provider fallback."""

from __future__ import annotations

import logging
import time
from enum import Enum

import httpx

from sales_recon.config import Config
from sales_recon.errors import (
    AllProvidersFailedError,
    CapabilityUnavailableError,
    ConfigurationError,
    ExtractionNotSupportedError,
    ProviderError,
    has_quota_marker,
    is_quota_exhaustion,
)
from sales_recon.models import ProviderStats, SearchOptions, SearchResponse
from sales_recon.search.health import HealthCache
from sales_recon.search.providers.base import SearchProvider
from sales_recon.search.providers.brave import BraveProvider
from sales_recon.search.providers.serpapi import SerpApiProvider
from sales_recon.search.providers.serper import SerperProvider
from sales_recon.search.providers.tavily import TavilyProvider

logger = logging.getLogger(__name__)

# (provider class, Config attribute holding its key, priority)
PROVIDER_REGISTRY: list[tuple[type[SearchProvider], str, int]] = [
    (TavilyProvider, "tavily_api_key", 1),    # content extraction
    (SerperProvider, "serper_api_key", 2),    # 2,500 free/month, Google
    (BraveProvider, "brave_api_key", 3),      # 2,000 free/month, own index
    (SerpApiProvider, "serpapi_api_key", 4),  # 250 free/month
]


class OrchestratorState(str, Enum):
    NOT_INITIALIZED = "not_initialized"
    INITIALIZING = "initializing"
    READY = "ready"


class SearchOrchestrator:
    """One search/extract API over every provider that has credentials.

    Either pass ``providers`` explicitly or a ``config`` from which the
    providers are built on first use.
    """

    def __init__(
        self,
        config: Config | None = None,
        providers: list[SearchProvider] | None = None,
        health_cache: HealthCache | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config
        self.health = health_cache or HealthCache(
            ttl_seconds=config.health_ttl_seconds if config else 300.0,
        )
        self._explicit_providers = providers
        self._http_client = http_client
        self.providers: list[SearchProvider] = []
        self._stats: dict[str, ProviderStats] = {}
        self.state = OrchestratorState.NOT_INITIALIZED

    def initialize(self) -> None:
        """Build and rank providers. Idempotent; runs once per instance."""
        if self.state is OrchestratorState.READY:
            return
        self.state = OrchestratorState.INITIALIZING

        try:
            if self._explicit_providers is not None:
                providers = list(self._explicit_providers)
            else:
                providers = self._build_from_config()

            if not providers:
                raise ConfigurationError(
                    "No search providers available. Please configure at least one API key."
                )
        except ConfigurationError:
            self.state = OrchestratorState.NOT_INITIALIZED
            raise

        self.providers = sorted(providers, key=lambda p: p.priority)
        for provider in self.providers:
            self._stats[provider.name] = ProviderStats(name=provider.name)

        logger.info(
            "Search orchestrator initialized with %d providers: %s",
            len(self.providers),
            ", ".join(f"{p.name}(priority {p.priority})" for p in self.providers),
        )
        self.state = OrchestratorState.READY

    def _build_from_config(self) -> list[SearchProvider]:
        if self.config is None:
            return []
        providers = []
        for provider_cls, key_attr, priority in PROVIDER_REGISTRY:
            api_key = getattr(self.config, key_attr, "")
            if not api_key:
                continue
            providers.append(
                provider_cls(
                    api_key,
                    priority,
                    client=self._http_client,
                    timeout=self.config.http_timeout,
                )
            )
            logger.debug("%s provider configured (priority %d)", provider_cls.name, priority)
        return providers

    # --- Statistics ---

    def get_stats(self) -> list[ProviderStats]:
        return [stats.model_copy() for stats in self._stats.values()]

    def _record(self, name: str, success: bool, error: str | None = None) -> None:
        stats = self._stats.get(name)
        if stats is None:
            return
        stats.searches += 1
        stats.last_used = time.time()
        if success:
            stats.last_error = None
        else:
            stats.failures += 1
            stats.last_error = error or "Unknown error"

    # --- Search ---

    async def search(self, query: str, options: SearchOptions | None = None) -> SearchResponse:
        """Return the first successful response in priority order.

        Raises AllProvidersFailedError naming every provider and its reason
        when nothing succeeds.
        """
        self.initialize()
        failures: list[tuple[str, str]] = []
        quota_hit = False

        for provider in self.providers:
            health = await self.health.is_healthy(provider)
            if not health.healthy:
                reason = health.message or "Unhealthy"
                logger.info("Skipping %s (cached unhealthy: %s)", provider.name, reason)
                failures.append((provider.name, f"skipped: {reason}"))
                quota_hit = quota_hit or has_quota_marker(reason)
                continue

            try:
                response = await provider.search(query, options)
            except ProviderError as e:
                message = str(e)
                logger.warning("%s search failed, trying next provider: %s", provider.name, message)
                self.health.mark_unhealthy(provider.name, message)
                self._record(provider.name, False, message)
                failures.append((provider.name, message))
                quota_hit = quota_hit or is_quota_exhaustion(e)
                continue

            self.health.mark_healthy(provider.name)
            self._record(provider.name, True)
            logger.info(
                "Search completed with %s (%d results, %d fallbacks)",
                provider.name, len(response.results), len(failures),
            )
            return response

        logger.error(
            "All search providers exhausted for query %r: %s", query[:100], failures,
        )
        raise AllProvidersFailedError(failures, quota_exhausted=quota_hit)

    async def extract(self, url: str) -> str:
        """Extract page content with the single extraction-capable provider.

        No fallback: no other provider offers this capability.
        """
        self.initialize()
        provider = next((p for p in self.providers if p.supports_extract), None)
        if provider is None:
            raise CapabilityUnavailableError(
                "Content extraction requires Tavily provider, which is not available"
            )

        health = await self.health.is_healthy(provider)
        if not health.healthy:
            raise ProviderError(provider.name, f"{provider.name} unavailable: {health.message}")

        try:
            content = await provider.extract(url)
        except ExtractionNotSupportedError as e:
            raise ConfigurationError(str(e)) from e
        except ProviderError as e:
            # Page-level failure; search health is left alone
            self._record(provider.name, False, str(e))
            raise

        self._record(provider.name, True)
        return content
