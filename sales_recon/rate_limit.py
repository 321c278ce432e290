"""Fixed-window request limiter keyed by caller identifier."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from sales_recon.errors import Language

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 5 * 60
DEFAULT_MAX_REQUESTS = 10


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: int | None = None


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """In-process, single-instance limiter. Each identifier gets its own window."""

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def check(self, identifier: str) -> RateLimitDecision:
        now = self._clock()
        window = self._windows.get(identifier)

        if window is None or window.reset_at <= now:
            window = _Window(count=1, reset_at=now + self.window_seconds)
            self._windows[identifier] = window
            return RateLimitDecision(
                allowed=True, remaining=self.max_requests - 1, reset_at=window.reset_at,
            )

        if window.count >= self.max_requests:
            retry_after = max(1, math.ceil(window.reset_at - now))
            logger.warning("Rate limit exceeded for %s (retry in %ds)", identifier, retry_after)
            return RateLimitDecision(
                allowed=False, remaining=0, reset_at=window.reset_at, retry_after=retry_after,
            )

        window.count += 1
        return RateLimitDecision(
            allowed=True,
            remaining=self.max_requests - window.count,
            reset_at=window.reset_at,
        )

    def cleanup(self) -> int:
        now = self._clock()
        expired = [key for key, w in self._windows.items() if w.reset_at <= now]
        for key in expired:
            del self._windows[key]
        return len(expired)


def rate_limit_message(retry_after: int, language: Language = "en") -> str:
    minutes = max(1, math.ceil(retry_after / 60))
    if language == "sv":
        return (
            f"För många förfrågningar. Vänligen vänta {minutes} minut(er) "
            "innan du försöker igen."
        )
    return f"Too many requests. Please wait {minutes} minute(s) before trying again."
