"""Application error taxonomy with localized user-facing messages."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

Language = Literal["en", "sv"]


class ErrorCode(str, Enum):
    INVALID_URL = "INVALID_URL"
    INVALID_INPUT = "INVALID_INPUT"
    DOMAIN_NOT_FOUND = "DOMAIN_NOT_FOUND"
    CONFIGURATION = "CONFIGURATION"
    CAPABILITY_UNAVAILABLE = "CAPABILITY_UNAVAILABLE"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    ALL_PROVIDERS_FAILED = "ALL_PROVIDERS_FAILED"
    API_LIMIT_EXCEEDED = "API_LIMIT_EXCEEDED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# Short messages shown to the caller. Provider text never goes here.
USER_MESSAGES: dict[ErrorCode, dict[str, str]] = {
    ErrorCode.INVALID_URL: {
        "en": "Please enter a valid URL.",
        "sv": "Ange en giltig URL.",
    },
    ErrorCode.INVALID_INPUT: {
        "en": "The request contains invalid input.",
        "sv": "Förfrågan innehåller ogiltig information.",
    },
    ErrorCode.DOMAIN_NOT_FOUND: {
        "en": "That domain does not seem to exist.",
        "sv": "Domänen verkar inte finnas.",
    },
    ErrorCode.CONFIGURATION: {
        "en": "The service is not configured correctly.",
        "sv": "Tjänsten är inte korrekt konfigurerad.",
    },
    ErrorCode.CAPABILITY_UNAVAILABLE: {
        "en": "The service is not configured correctly.",
        "sv": "Tjänsten är inte korrekt konfigurerad.",
    },
    ErrorCode.PROVIDER_ERROR: {
        "en": "A search provider failed. Please try again later.",
        "sv": "En sökleverantör misslyckades. Försök igen senare.",
    },
    ErrorCode.ALL_PROVIDERS_FAILED: {
        "en": "Search is currently unavailable. Please try again later.",
        "sv": "Sökningen är inte tillgänglig just nu. Försök igen senare.",
    },
    ErrorCode.API_LIMIT_EXCEEDED: {
        "en": "Search API usage limit reached. Please try again later or upgrade the plan.",
        "sv": "Sök-API:ets användningsgräns är nådd. Försök igen senare eller uppgradera planen.",
    },
    ErrorCode.RATE_LIMIT_EXCEEDED: {
        "en": "Too many requests. Please wait before trying again.",
        "sv": "För många förfrågningar. Vänta innan du försöker igen.",
    },
    ErrorCode.ANALYSIS_FAILED: {
        "en": "Unable to generate a complete analysis. Please try again later.",
        "sv": "Kunde inte generera en komplett analys. Försök igen senare.",
    },
    ErrorCode.UNKNOWN_ERROR: {
        "en": "An unexpected error occurred. Please try again later.",
        "sv": "Ett oväntat fel inträffade. Försök igen senare.",
    },
}

# Upstream phrases that mean the billing-period allowance is used up
QUOTA_MARKERS = (
    "usage limit",
    "plan's set usage",
    "not enough credits",
    "run out of searches",
    "quota exceeded",
    "quota has been exceeded",
)


def user_message_for(code: ErrorCode, language: Language = "en") -> str:
    messages = USER_MESSAGES.get(code, USER_MESSAGES[ErrorCode.UNKNOWN_ERROR])
    return messages.get(language, messages["en"])


def has_quota_marker(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in QUOTA_MARKERS)


class AppError(Exception):
    """Base application error.

    ``developer_message`` is what gets logged; ``user_message`` is the only
    text a caller should ever display.
    """

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    status_code: int = 500

    def __init__(
        self,
        developer_message: str,
        user_message: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(developer_message)
        self.developer_message = developer_message
        self.user_message = user_message or user_message_for(self.code)
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": type(self).__name__,
            "code": self.code.value,
            "message": self.developer_message,
            "user_message": self.user_message,
            "status_code": self.status_code,
            "timestamp": self.timestamp,
            "context": self.context,
        }


class ConfigurationError(AppError):
    """Fatal setup problem. Never retried."""

    code = ErrorCode.CONFIGURATION


class CapabilityUnavailableError(ConfigurationError):
    """No configured provider offers the requested capability."""

    code = ErrorCode.CAPABILITY_UNAVAILABLE


class ProviderError(AppError):
    """A single provider call failed. Recovered by fallback."""

    code = ErrorCode.PROVIDER_ERROR
    status_code = 502

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        ctx = {"provider": provider, "http_status": status_code}
        ctx.update(context or {})
        super().__init__(message, context=ctx)
        self.provider = provider
        self.http_status = status_code


class ExtractionNotSupportedError(ProviderError):
    """Raised by providers that have no content-extraction endpoint."""

    def __init__(self, provider: str):
        super().__init__(provider, f"Content extraction not supported by {provider}")


class QuotaExhaustionError(ProviderError):
    """Upstream reported the plan's usage allowance as exhausted."""

    code = ErrorCode.API_LIMIT_EXCEEDED
    status_code = 429

    def __init__(
        self,
        provider: str = "",
        message: str = "Search API usage limit reached",
        status_code: int | None = None,
    ):
        super().__init__(provider, message, status_code=status_code)


class AllProvidersFailedError(AppError):
    """Every configured provider failed or was skipped for one request."""

    code = ErrorCode.ALL_PROVIDERS_FAILED
    status_code = 502

    def __init__(self, failures: list[tuple[str, str]], quota_exhausted: bool = False):
        detail = ", ".join(f"{name} ({reason})" for name, reason in failures)
        super().__init__(
            f"All search providers failed. Attempted: {detail}",
            context={"failures": [{"provider": n, "error": r} for n, r in failures]},
        )
        self.failures = list(failures)
        self.quota_exhausted = quota_exhausted


class InputValidationError(AppError):
    """Malformed URL or text field. Raised before any network activity."""

    code = ErrorCode.INVALID_INPUT
    status_code = 400


class InvalidURLError(InputValidationError):
    code = ErrorCode.INVALID_URL


class DomainNotFoundError(InputValidationError):
    """The target hostname does not resolve."""

    code = ErrorCode.DOMAIN_NOT_FOUND

    def __init__(self, host: str, suggestion: str | None = None):
        user_message = None
        if suggestion:
            user_message = f"{user_message_for(self.code)} Did you mean {suggestion}?"
        super().__init__(
            f"Domain {host} does not resolve",
            user_message=user_message,
            context={"host": host, "suggestion": suggestion},
        )
        self.host = host
        self.suggestion = suggestion


class RateLimitError(AppError):
    code = ErrorCode.RATE_LIMIT_EXCEEDED
    status_code = 429

    def __init__(self, retry_after: int, user_message: str | None = None):
        super().__init__(
            f"Rate limit exceeded, retry after {retry_after}s",
            user_message=user_message,
            context={"retry_after": retry_after},
        )
        self.retry_after = retry_after


class AnalysisError(AppError):
    code = ErrorCode.ANALYSIS_FAILED


def is_quota_exhaustion(exc: BaseException) -> bool:
    """True when ``exc`` carries the upstream usage-limit signature."""
    if isinstance(exc, QuotaExhaustionError):
        return True
    if isinstance(exc, AllProvidersFailedError) and exc.quota_exhausted:
        return True
    return has_quota_marker(str(exc))


def get_user_message(exc: BaseException, language: Language = "en") -> str:
    """Localized message for any exception, without internal detail."""
    if isinstance(exc, AppError):
        if exc.user_message != user_message_for(exc.code, "en"):
            # Custom message already rendered for the caller
            return exc.user_message
        return user_message_for(exc.code, language)
    return user_message_for(ErrorCode.UNKNOWN_ERROR, language)
