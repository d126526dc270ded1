# mrktr/providers/tavily_provider.py

"""Search provider backed by the Tavily search API."""

from typing import Any

from mrktr.config.settings import Settings
from mrktr.models.listing import RawSearchResult
from mrktr.providers.base_provider import BaseProvider
from mrktr.services.search_context import SearchContext


class TavilyProvider(BaseProvider):
    """Tavily (POST JSON, API key in the body)."""

    def __init__(self, api_key: str = "", search_url: str = "") -> None:
        super().__init__(
            "Tavily",
            "TAVILY_API_KEY",
            api_key,
            search_url,
            Settings.TAVILY_SEARCH_URL,
        )

    def build_query(self, query: str) -> str:
        # Tavily ignores site: operators, so name the marketplaces instead
        return f"{query} price ebay OR mercari OR amazon"

    def _send(self, ctx: SearchContext, search_query: str) -> Any:
        payload = {
            "api_key": self.api_key,
            "query": search_query,
            "max_results": self.settings.MAX_PROVIDER_RESULTS,
        }
        return self._request(
            ctx,
            "POST",
            {"Content-Type": "application/json"},
            json=payload,
        )

    def _extract_results(self, payload: Any) -> list[RawSearchResult]:
        results = (
            payload.get("results") if isinstance(payload, dict) else None
        )
        return [
            RawSearchResult(
                url=item.get("url") or "",
                title=item.get("title") or "",
                description=item.get("content") or "",
            )
            for item in results or []
            if isinstance(item, dict)
        ]
