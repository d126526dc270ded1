# mrktr/services/search_orchestrator.py

"""Orchestrates price searches across ranked, fallible providers."""

import asyncio
import importlib
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mrktr.config.settings import Settings
from mrktr.models.listing import Listing
from mrktr.providers.base_provider import SearchProvider
from mrktr.providers.errors import (
    ProviderError,
    ProviderErrorKind,
    SearchUnavailableError,
    actionable_hint,
    classify_provider_error,
)
from mrktr.services.search_context import SearchContext

logger = logging.getLogger("mrktr.orchestrator")

NO_PROVIDERS_MESSAGE = (
    "no live search providers configured; set BRAVE_API_KEY, "
    "TAVILY_API_KEY, or FIRECRAWL_API_KEY"
)


class SearchMode(str, Enum):
    """How a response was produced."""

    LIVE = "live"
    UNAVAILABLE = "unavailable"


@dataclass
class SearchResponse:
    """Listings for one query plus per-provider diagnostics."""

    results: list[Listing] = field(
        default_factory=lambda: list[Listing]()
    )
    mode: SearchMode = SearchMode.UNAVAILABLE
    warning: str = ""
    err: Exception | None = None
    provider_errors: list[ProviderError] = field(
        default_factory=lambda: list[ProviderError]()
    )


def _load_provider_class(dotted_path: str) -> type[Any]:
    """Dynamically import a provider class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


def _provider_name(provider: SearchProvider) -> str:
    name = (provider.name() or "").strip()
    return name or "Provider"


def build_search_warning(
    failed_providers: list[str],
    failed_hints: list[str],
) -> str:
    """Prefer actionable hints; otherwise list the providers that failed."""
    if failed_hints:
        return " ".join(failed_hints)
    if failed_providers:
        return (
            f"Live search unavailable ({', '.join(failed_providers)})."
        )
    return ""


def primary_provider_error(
    provider_errors: list[ProviderError],
) -> BaseException | None:
    """Pick the most informative root cause of a total failure.

    Cancellation outranks a timeout, which outranks the first error seen.
    """
    for kind in (ProviderErrorKind.CANCELED, ProviderErrorKind.TIMEOUT):
        for provider_err in provider_errors:
            if provider_err.kind is kind and provider_err.err is not None:
                return provider_err.err
    for provider_err in provider_errors:
        if provider_err.err is not None:
            return provider_err.err
    return None


def build_search_error(
    warning: str,
    provider_errors: list[ProviderError],
) -> SearchUnavailableError:
    """Response-level error chained to the root provider failure."""
    root = primary_provider_error(provider_errors)
    if root is None:
        return SearchUnavailableError(warning or "Live search unavailable.")

    message = f"{warning}: {root}" if warning else str(root)
    err = SearchUnavailableError(message)
    err.__cause__ = root
    return err


class SearchOrchestrator:
    """Dispatches a query to providers in priority order.

    Providers run one after another; the first to return listings wins
    and later providers are not consulted. A failing provider is recorded
    and skipped, never fatal on its own.
    """

    def __init__(
        self, providers: Iterable[SearchProvider | None] = (),
    ) -> None:
        self.providers: list[SearchProvider | None] = list(providers)

    def has_configured_provider(self) -> bool:
        """True if at least one provider has usable credentials."""
        return any(
            p is not None and p.configured() for p in self.providers
        )

    def configured_providers(self) -> list[SearchProvider]:
        return [
            p
            for p in self.providers
            if p is not None and p.configured()
        ]

    def close(self) -> None:
        """Close every provider that holds an HTTP session."""
        for provider in self.providers:
            close = getattr(provider, "close", None)
            if callable(close):
                close()

    # ── Synchronous entry points ─────────────────────────

    def search_prices(self, query: str) -> SearchResponse:
        """Search with a fresh, never-cancelled context."""
        return self.search_prices_context(SearchContext(), query)

    def search_prices_context(
        self,
        ctx: SearchContext | None,
        query: str,
    ) -> SearchResponse:
        """Run *query* through configured providers until one has listings."""
        ctx = ctx or SearchContext()
        q = query.strip()

        if not self.has_configured_provider():
            logger.warning("Search for '%s' skipped: no providers", q)
            return SearchResponse(
                mode=SearchMode.UNAVAILABLE,
                err=SearchUnavailableError(NO_PROVIDERS_MESSAGE),
            )

        successful = 0
        provider_errors: list[ProviderError] = []
        failed_providers: list[str] = []
        failed_hints: list[str] = []

        for provider in self.configured_providers():
            name = _provider_name(provider)
            try:
                results = provider.search(ctx, q)
            except Exception as exc:
                kind = classify_provider_error(exc)
                provider_errors.append(
                    ProviderError(provider=name, kind=kind, err=exc)
                )
                failed_providers.append(name)
                hint = actionable_hint(name, exc)
                if hint:
                    failed_hints.append(hint)
                logger.error(
                    "Provider %s failed for '%s' (%s): %s",
                    name,
                    q,
                    kind.value,
                    exc,
                )
                continue

            successful += 1
            if results:
                logger.info(
                    "Provider %s returned %d listings for '%s'",
                    name,
                    len(results),
                    q,
                )
                return SearchResponse(
                    results=list(results),
                    mode=SearchMode.LIVE,
                    warning=build_search_warning(
                        failed_providers, failed_hints
                    ),
                    provider_errors=provider_errors,
                )
            logger.info(
                "Provider %s returned no listings for '%s'", name, q
            )

        warning = build_search_warning(failed_providers, failed_hints)
        if successful:
            return SearchResponse(
                mode=SearchMode.LIVE,
                warning=warning,
                provider_errors=provider_errors,
            )

        return SearchResponse(
            mode=SearchMode.UNAVAILABLE,
            warning=warning,
            err=build_search_error(warning, provider_errors),
            provider_errors=provider_errors,
        )

    # ── Async entry point ────────────────────────────────

    async def search(
        self,
        query: str,
        ctx: SearchContext | None = None,
    ) -> SearchResponse:
        """Run the search in a worker thread.

        Cancelling the awaiting task cancels *ctx*, so the in-flight
        provider call returns promptly.
        """
        ctx = ctx or SearchContext()
        try:
            return await asyncio.to_thread(
                self.search_prices_context, ctx, query
            )
        except asyncio.CancelledError:
            ctx.cancel()
            raise


def build_env_orchestrator() -> SearchOrchestrator:
    """Build the default orchestrator from ``Settings.PROVIDERS``.

    API keys come from the environment (``.env`` is loaded by Settings);
    providers without a key are kept but report as unconfigured.
    """
    providers: list[SearchProvider] = []
    for source in Settings.PROVIDERS:
        provider_cls = _load_provider_class(source["provider"])
        providers.append(
            provider_cls(api_key=os.getenv(source["env"], ""))
        )
    return SearchOrchestrator(providers)
