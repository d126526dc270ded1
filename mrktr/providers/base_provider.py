# mrktr/providers/base_provider.py

"""Abstract base class and contract for all search providers."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Protocol, runtime_checkable

from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests
from curl_cffi.requests.exceptions import Timeout as CurlTimeout

from mrktr.config.settings import Settings
from mrktr.filters.listing_extractor import ListingExtractor
from mrktr.models.listing import Listing, RawSearchResult
from mrktr.providers.errors import (
    ContextCanceledError,
    DeadlineExceededError,
    HTTPStatusError,
    ProviderNotConfiguredError,
    ProviderResponseError,
    ProviderTransportError,
    summarize_body,
)
from mrktr.services.search_context import SearchContext

# How often an in-flight request re-checks its context for cancellation
_CANCEL_POLL_INTERVAL = 0.05


@runtime_checkable
class SearchProvider(Protocol):
    """Capability contract the orchestrator depends on."""

    def name(self) -> str: ...

    def configured(self) -> bool: ...

    def search(self, ctx: SearchContext, query: str) -> list[Listing]: ...


class BaseProvider(ABC):
    """Shared HTTP plumbing for search API providers.

    Subclasses build the provider-specific request and pull raw
    ``{url, title, description}`` items out of the JSON payload; this
    class handles credentials, cancellation, status errors and the
    hand-off to :class:`ListingExtractor`.
    """

    def __init__(
        self,
        source_name: str,
        env_var: str,
        api_key: str,
        search_url: str,
        default_url: str,
    ) -> None:
        self.source_name = source_name
        self.env_var = env_var
        self.api_key = (api_key or "").strip()
        self.search_url = (search_url or "").strip() or default_url
        self.logger = logging.getLogger(
            f"mrktr.{source_name.lower()}"
        )
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._request_timeout: float = self.settings.REQUEST_TIMEOUT

    def name(self) -> str:
        return self.source_name

    def configured(self) -> bool:
        return bool(self.api_key)

    def close(self) -> None:
        """Release the HTTP session."""
        self.session.close()

    # ── Request plumbing ─────────────────────────────────

    def _timeout_for(self, ctx: SearchContext) -> float:
        """Request timeout capped by whatever the context has left."""
        remaining = ctx.remaining()
        if remaining is None:
            return self._request_timeout
        return min(self._request_timeout, remaining)

    def _start_request(
        self,
        method: str,
        headers: dict[str, str],
        timeout: float,
        kwargs: dict[str, Any],
    ) -> "Future[Any]":
        """Run ``session.request`` on its own daemon thread.

        A call abandoned after cancellation keeps only its own thread
        busy until curl's timeout fires; later requests never queue
        behind it.
        """
        future: "Future[Any]" = Future()

        def _run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                resp = self.session.request(
                    method,
                    self.search_url,
                    headers=headers,
                    timeout=timeout,
                    **kwargs,
                )
            except Exception as exc:
                future.set_exception(exc)
            else:
                future.set_result(resp)

        threading.Thread(
            target=_run,
            name=f"mrktr-{self.source_name.lower()}-request",
            daemon=True,
        ).start()
        return future

    def _await_response(
        self,
        ctx: SearchContext,
        future: "Future[Any]",
    ) -> Any:
        """Wait for the request while watching the context."""
        while True:
            try:
                return future.result(timeout=_CANCEL_POLL_INTERVAL)
            except FutureTimeoutError:
                if ctx.done():
                    ctx.raise_if_done()

    def _request(
        self,
        ctx: SearchContext,
        method: str,
        headers: dict[str, str],
        **kwargs: Any,
    ) -> Any:
        """Send one request, honouring cancellation and deadlines.

        Non-2xx answers raise :class:`HTTPStatusError`. A curl timeout
        or an expired context raises :class:`DeadlineExceededError`; any
        other failure raises :class:`ProviderTransportError`.
        """
        ctx.raise_if_done()
        timeout = self._timeout_for(ctx)
        started = time.monotonic()

        future = self._start_request(method, headers, timeout, kwargs)
        try:
            resp = self._await_response(ctx, future)
        except (ContextCanceledError, DeadlineExceededError):
            self.logger.info(
                "[%s] Request abandoned: context done", self.source_name
            )
            raise
        except Exception as exc:
            self.logger.warning(
                "[%s] Request error after %.1fs: %s",
                self.source_name,
                time.monotonic() - started,
                exc,
                exc_info=True,
            )
            if ctx.cancelled:
                raise ContextCanceledError() from exc
            if ctx.expired or isinstance(exc, CurlTimeout):
                raise DeadlineExceededError() from exc
            raise ProviderTransportError(
                self.source_name,
                f"request {self.source_name.lower()}: {exc}",
            ) from exc

        if not 200 <= resp.status_code < 300:
            body = summarize_body(
                resp.text, self.settings.BODY_SUMMARY_LIMIT
            )
            self.logger.warning(
                "[%s] HTTP %d: %s",
                self.source_name,
                resp.status_code,
                body,
            )
            raise HTTPStatusError(
                self.source_name, resp.status_code, body
            )
        return resp

    def _decode_json(self, resp: Any) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderResponseError(
                self.source_name,
                f"decode {self.source_name.lower()} response: {exc}",
            ) from exc

    @staticmethod
    def clean_text(text: Any) -> str:
        """Strip HTML markup (e.g. ``<strong>`` highlights) from a snippet."""
        if not text:
            return ""
        raw = str(text)
        if "<" in raw and ">" in raw:
            raw = BeautifulSoup(raw, "lxml").get_text()
        return " ".join(raw.split())

    def _site_filter(self, joiner: str = " OR ") -> str:
        return joiner.join(
            f"site:{site}" for site in self.settings.MARKETPLACE_SITES
        )

    # ── Public contract ──────────────────────────────────

    def search(self, ctx: SearchContext, query: str) -> list[Listing]:
        """Query the provider and extract priced listings."""
        if not self.configured():
            raise ProviderNotConfiguredError(
                self.source_name, f"{self.env_var} not set"
            )

        search_query = self.build_query(query)
        self.logger.info(
            "[%s] Searching: %s", self.source_name, search_query
        )
        resp = self._send(ctx, search_query)
        payload = self._decode_json(resp)

        raw_items = [
            RawSearchResult(
                url=str(item.url or ""),
                title=self.clean_text(item.title),
                description=self.clean_text(item.description),
            )
            for item in self._extract_results(payload)
        ]
        listings = ListingExtractor.parse(raw_items)
        self.logger.info(
            "[%s] %d listings from %d results",
            self.source_name,
            len(listings),
            len(raw_items),
        )
        return listings

    @abstractmethod
    def build_query(self, query: str) -> str:
        """Return the provider-specific search string for *query*."""
        ...

    @abstractmethod
    def _send(self, ctx: SearchContext, search_query: str) -> Any:
        """Perform the HTTP call and return the 2xx response."""
        ...

    @abstractmethod
    def _extract_results(self, payload: Any) -> list[RawSearchResult]:
        """Pull raw result items out of the decoded JSON payload."""
        ...
