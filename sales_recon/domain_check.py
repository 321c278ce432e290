"""DNS existence check for the target domain, with a per-host result cache."""

from __future__ import annotations

import asyncio
import logging
import socket
import time
from typing import Awaitable, Callable

from sales_recon.models import DomainValidationResult
from sales_recon.validation import hostname_of

logger = logging.getLogger(__name__)

DNS_TIMEOUT_SECONDS = 5.0
POSITIVE_TTL = 60 * 60
NOT_FOUND_TTL = 60 * 60
OFFLINE_TTL = 5 * 60

# Frequently mistyped top-level domains -> intended TLD
TLD_TYPOS = {
    "con": "com",
    "cmo": "com",
    "ocm": "com",
    "comm": "com",
    "co,": "com",
    "nte": "net",
    "ner": "net",
    "ogr": "org",
    "orh": "org",
    "sw": "se",
    "ese": "se",
    "sr": "se",
}

# getaddrinfo errors that mean "the name does not exist" rather than
# "the resolver could not answer"
_NOT_FOUND_ERRNOS = {
    getattr(socket, "EAI_NONAME", None),
    getattr(socket, "EAI_NODATA", None),
} - {None}

Resolver = Callable[[str], Awaitable[object]]


def suggest_domain(host: str) -> str | None:
    """Return ``host`` with a corrected TLD when the TLD is a known typo."""
    if "." not in host:
        return None
    name, tld = host.rsplit(".", 1)
    fixed = TLD_TYPOS.get(tld.lower())
    if fixed is None or not name:
        return None
    return f"{name}.{fixed}"


async def _default_resolver(host: str) -> object:
    loop = asyncio.get_running_loop()
    return await loop.getaddrinfo(host, None)


class DomainValidator:
    """Resolves hostnames and remembers the answer.

    ``not_found`` means the resolver positively said the name does not
    exist. ``offline`` covers timeouts and transient resolver failures,
    which are cached for a shorter window.
    """

    def __init__(
        self,
        timeout: float = DNS_TIMEOUT_SECONDS,
        resolver: Resolver | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.timeout = timeout
        self._resolve = resolver or _default_resolver
        self._clock = clock
        self._cache: dict[str, tuple[DomainValidationResult, float]] = {}

    async def validate(self, url_or_host: str) -> DomainValidationResult:
        host = hostname_of(url_or_host)
        if not host:
            return DomainValidationResult(exists=False, error="not_found", details="No hostname")

        cached = self._cache.get(host)
        if cached is not None:
            result, expiry = cached
            if self._clock() < expiry:
                logger.debug("Domain check cache hit for %s", host)
                return result
            del self._cache[host]

        result = await self._lookup(host)
        ttl = OFFLINE_TTL if result.error == "offline" else (
            POSITIVE_TTL if result.exists else NOT_FOUND_TTL
        )
        self._cache[host] = (result, self._clock() + ttl)
        return result

    async def _lookup(self, host: str) -> DomainValidationResult:
        try:
            await asyncio.wait_for(self._resolve(host), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("DNS lookup for %s timed out after %ss", host, self.timeout)
            return DomainValidationResult(
                exists=False, error="offline", details=f"DNS lookup timed out after {self.timeout}s",
            )
        except socket.gaierror as e:
            if e.errno in _NOT_FOUND_ERRNOS:
                logger.info("Domain %s does not resolve", host)
                return DomainValidationResult(
                    exists=False,
                    error="not_found",
                    suggestion=suggest_domain(host),
                    details=str(e),
                )
            logger.warning("DNS lookup for %s failed: %s", host, e)
            return DomainValidationResult(exists=False, error="offline", details=str(e))
        except OSError as e:
            logger.warning("DNS lookup for %s failed: %s", host, e)
            return DomainValidationResult(exists=False, error="offline", details=str(e))

        return DomainValidationResult(exists=True)
