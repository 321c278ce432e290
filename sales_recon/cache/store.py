"""In-memory LRU + TTL cache for finished analysis results."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Callable

from sales_recon.models import AdvancedSearchParams, AnalysisResult, CacheStats

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 100
DEFAULT_TTL_SECONDS = 60 * 60
KEY_PREVIEW_LENGTH = 12
DEFAULT_HIT_RATE = "0.00"

_PARAM_FIELDS = ("contact_person", "department", "location", "job_title", "specific_focus")
# Wire names kept stable so keys survive a rename of the Python fields
_PARAM_KEYS = ("contactPerson", "department", "location", "jobTitle", "specificFocus")


def generate_cache_key(
    url: str,
    advanced_params: AdvancedSearchParams | None = None,
    language: str = "en",
) -> str:
    """Deterministic fingerprint of (URL, targeting fields, language).

    Casing and surrounding whitespace never change the key, and a missing
    params object hashes the same as one with every field empty.
    """
    normalized_url = url.lower().strip()
    params = advanced_params or AdvancedSearchParams()
    canonical = {
        key: (getattr(params, field) or "").lower().strip()
        for key, field in zip(_PARAM_KEYS, _PARAM_FIELDS)
    }
    params_string = json.dumps(canonical, separators=(",", ":"), ensure_ascii=False)
    raw = f"{normalized_url}:{params_string}:{language}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    data: AnalysisResult
    timestamp: float
    ttl: float
    access_count: int = 0
    last_accessed: float = 0.0


class AnalysisCache:
    """Size-bounded memo of AnalysisResult with per-entry TTL.

    Eviction removes the entry with the oldest ``last_accessed`` (true LRU).
    ``cleanup`` removes lapsed entries; the owning pipeline runs it
    periodically, independent of get/set traffic.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> AnalysisResult | None:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        now = self._clock()
        if now - entry.timestamp > entry.ttl:
            logger.debug("Cache expired: %s...", key[:KEY_PREVIEW_LENGTH])
            del self._entries[key]
            self._misses += 1
            return None

        entry.access_count += 1
        entry.last_accessed = now
        self._hits += 1
        logger.info(
            "Cache hit: %s... (accessed %dx)", key[:KEY_PREVIEW_LENGTH], entry.access_count,
        )
        return entry.data

    def set(self, key: str, value: AnalysisResult, ttl: float | None = None) -> None:
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._evict_lru()

        now = self._clock()
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(data=value, timestamp=now, ttl=ttl, last_accessed=now)
        logger.debug(
            "Cached: %s... (ttl %ss, size %d/%d)",
            key[:KEY_PREVIEW_LENGTH], ttl, len(self._entries), self.max_size,
        )

    def _evict_lru(self) -> None:
        if not self._entries:
            return
        oldest_key = min(self._entries, key=lambda k: self._entries[k].last_accessed)
        logger.debug("Evicting LRU: %s...", oldest_key[:KEY_PREVIEW_LENGTH])
        del self._entries[oldest_key]
        self._evictions += 1

    def cleanup(self) -> int:
        """Remove every lapsed entry. Returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now - e.timestamp > e.ttl]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Cleaned up %d expired cache entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Analysis cache cleared")

    def stats(self) -> CacheStats:
        total = self._hits + self._misses
        hit_rate = f"{self._hits / total * 100:.2f}" if total else DEFAULT_HIT_RATE
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            size=len(self._entries),
            evictions=self._evictions,
            hit_rate=f"{hit_rate}%",
        )
