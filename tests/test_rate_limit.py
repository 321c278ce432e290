"""Fixed-window rate limiting."""

from __future__ import annotations

from sales_recon.rate_limit import RateLimiter, rate_limit_message


def test_allows_up_to_limit_then_blocks(clock):
    limiter = RateLimiter(max_requests=10, window_seconds=300, clock=clock)

    decisions = [limiter.check("1.2.3.4") for _ in range(10)]
    blocked = limiter.check("1.2.3.4")

    assert all(d.allowed for d in decisions)
    assert [d.remaining for d in decisions][:3] == [9, 8, 7]
    assert decisions[-1].remaining == 0
    assert not blocked.allowed
    assert blocked.retry_after == 300
    assert blocked.reset_at == clock() + 300


def test_window_resets_after_expiry(clock):
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
    limiter.check("a")
    assert not limiter.check("a").allowed

    clock.advance(45)
    assert limiter.check("a").retry_after == 15

    clock.advance(15)
    assert limiter.check("a").allowed


def test_identifiers_are_independent(clock):
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)

    assert limiter.check("a").allowed
    assert limiter.check("b").allowed
    assert not limiter.check("a").allowed


def test_cleanup_drops_lapsed_windows(clock):
    limiter = RateLimiter(window_seconds=60, clock=clock)
    limiter.check("a")
    clock.advance(30)
    limiter.check("b")
    clock.advance(31)

    assert limiter.cleanup() == 1
    assert limiter.cleanup() == 0


def test_messages_round_up_to_minutes():
    assert rate_limit_message(300) == "Too many requests. Please wait 5 minute(s) before trying again."
    assert rate_limit_message(61) == "Too many requests. Please wait 2 minute(s) before trying again."
    assert rate_limit_message(10, "sv") == (
        "För många förfrågningar. Vänligen vänta 1 minut(er) innan du försöker igen."
    )
