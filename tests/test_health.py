"""Health cache TTL behaviour."""

from __future__ import annotations

import pytest

from conftest import FakeProvider
from sales_recon.search.health import HealthCache


@pytest.mark.asyncio
async def test_two_checks_within_ttl_probe_once(clock):
    cache = HealthCache(ttl_seconds=300, clock=clock)
    provider = FakeProvider("Alpha", 1)

    first = await cache.is_healthy(provider)
    clock.advance(299)
    second = await cache.is_healthy(provider)

    assert first.healthy and second.healthy
    assert provider.probe_calls == 1


@pytest.mark.asyncio
async def test_check_after_expiry_probes_exactly_once_more(clock):
    cache = HealthCache(ttl_seconds=300, clock=clock)
    provider = FakeProvider("Alpha", 1)

    await cache.is_healthy(provider)
    clock.advance(300)
    await cache.is_healthy(provider)
    await cache.is_healthy(provider)

    assert provider.probe_calls == 2


@pytest.mark.asyncio
async def test_unconfigured_provider_is_cached_unhealthy(clock):
    cache = HealthCache(clock=clock)
    provider = FakeProvider("Alpha", 1, configured=False)

    result = await cache.is_healthy(provider)

    assert not result.healthy
    assert result.message == "ALPHA_API_KEY not configured"
    assert cache.peek("Alpha").healthy is False


@pytest.mark.asyncio
async def test_mark_unhealthy_short_circuits_probe(clock):
    cache = HealthCache(clock=clock)
    provider = FakeProvider("Alpha", 1)

    cache.mark_unhealthy("Alpha", "Alpha API error (401)")
    result = await cache.is_healthy(provider)

    assert not result.healthy
    assert result.message == "Alpha API error (401)"
    assert provider.probe_calls == 0


def test_peek_drops_expired_entries(clock):
    cache = HealthCache(ttl_seconds=10, clock=clock)
    cache.mark_healthy("Alpha")

    assert cache.peek("Alpha") is not None
    clock.advance(10)
    assert cache.peek("Alpha") is None
    assert cache.peek("Missing") is None
