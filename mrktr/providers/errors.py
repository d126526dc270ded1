# mrktr/providers/errors.py

"""Error types raised by search providers and their classification."""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

_AUTH_STATUSES = (401, 403)
_RATE_LIMIT_STATUS = 429

# Providers whose credentials come from a well-known environment variable
_PROVIDER_ENV_VARS: dict[str, str] = {
    "Brave": "BRAVE_API_KEY",
    "Tavily": "TAVILY_API_KEY",
    "Firecrawl": "FIRECRAWL_API_KEY",
}


class ProviderErrorKind(str, Enum):
    """Classification of a failed provider call."""

    UNKNOWN = "unknown"
    CANCELED = "canceled"
    TIMEOUT = "timeout"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    HTTP = "http"
    TRANSPORT = "transport"


class ContextCanceledError(Exception):
    """The search context was cancelled by its owner."""

    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class DeadlineExceededError(TimeoutError):
    """The search context deadline passed before the call finished."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


class SearchProviderError(Exception):
    """Base class for failures raised by a provider adapter."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider


class ProviderNotConfiguredError(SearchProviderError):
    """The provider was asked to search without credentials."""


class ProviderTransportError(SearchProviderError):
    """The request never produced an HTTP response."""


class ProviderResponseError(SearchProviderError):
    """The provider answered 2xx with a payload we could not decode."""


class HTTPStatusError(SearchProviderError):
    """A provider answered with a non-2xx status code."""

    def __init__(self, provider: str, status: int, body: str) -> None:
        super().__init__(provider, f"{provider} status {status}: {body}")
        self.status = status
        self.body = body


class SearchUnavailableError(Exception):
    """No provider produced a usable response for the query."""


@dataclass(frozen=True)
class ProviderError:
    """A failed provider call with its classification."""

    provider: str
    kind: ProviderErrorKind
    err: BaseException | None


def iter_error_chain(err: BaseException | None) -> Iterator[BaseException]:
    """Yield *err* followed by its causes and contexts, once each."""
    seen: set[int] = set()
    current = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def find_in_chain(
    err: BaseException | None,
    exc_type: type[BaseException] | tuple[type[BaseException], ...],
) -> BaseException | None:
    """Return the first exception in *err*'s chain matching *exc_type*."""
    for link in iter_error_chain(err):
        if isinstance(link, exc_type):
            return link
    return None


def is_canceled(err: BaseException | None) -> bool:
    """True when the error was caused by context cancellation."""
    return find_in_chain(err, ContextCanceledError) is not None


def is_deadline_exceeded(err: BaseException | None) -> bool:
    """True when the error was caused by the context deadline."""
    return find_in_chain(err, DeadlineExceededError) is not None


def _status_error(err: BaseException | None) -> HTTPStatusError | None:
    found = find_in_chain(err, HTTPStatusError)
    if isinstance(found, HTTPStatusError):
        return found
    return None


def classify_provider_error(
    err: BaseException | None,
) -> ProviderErrorKind:
    """Derive the kind of a provider failure.

    Cancellation wins over deadline, which wins over an HTTP status;
    anything else is a transport failure.
    """
    if err is None:
        return ProviderErrorKind.UNKNOWN
    if is_canceled(err):
        return ProviderErrorKind.CANCELED
    if is_deadline_exceeded(err):
        return ProviderErrorKind.TIMEOUT

    status_err = _status_error(err)
    if status_err is not None:
        if status_err.status in _AUTH_STATUSES:
            return ProviderErrorKind.AUTH
        if status_err.status == _RATE_LIMIT_STATUS:
            return ProviderErrorKind.RATE_LIMIT
        return ProviderErrorKind.HTTP

    return ProviderErrorKind.TRANSPORT


def actionable_hint(provider: str, err: BaseException | None) -> str:
    """Turn an HTTP status failure into a short user-facing instruction.

    Returns an empty string for errors that carry no HTTP status.
    """
    status_err = _status_error(err)
    if status_err is None:
        return ""

    status = status_err.status
    if status in _AUTH_STATUSES:
        env_var = _PROVIDER_ENV_VARS.get(provider)
        if env_var:
            return f"{provider} auth failed. Check {env_var}."
        return f"{provider} auth failed. Check API key."
    if status == _RATE_LIMIT_STATUS:
        return f"{provider} rate limited. Try again in 60s."
    if status >= 500:
        return (
            f"{provider} service error ({status}). Try again shortly."
        )
    return f"{provider} request failed ({status})."


def summarize_body(body: str | bytes | None, limit: int = 120) -> str:
    """Trim an error response body down to a one-line summary."""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    trimmed = (body or "").strip()
    if not trimmed:
        return "empty response body"
    if len(trimmed) > limit:
        return trimmed[: limit - 3] + "..."
    return trimmed
