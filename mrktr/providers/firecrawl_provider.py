# mrktr/providers/firecrawl_provider.py

"""Search provider backed by the Firecrawl search API."""

from typing import Any

from mrktr.config.settings import Settings
from mrktr.models.listing import RawSearchResult
from mrktr.providers.base_provider import BaseProvider
from mrktr.services.search_context import SearchContext


class FirecrawlProvider(BaseProvider):
    """Firecrawl (POST JSON, bearer token)."""

    def __init__(self, api_key: str = "", search_url: str = "") -> None:
        super().__init__(
            "Firecrawl",
            "FIRECRAWL_API_KEY",
            api_key,
            search_url,
            Settings.FIRECRAWL_SEARCH_URL,
        )

    def build_query(self, query: str) -> str:
        return f"{query} price {self._site_filter()}"

    def _send(self, ctx: SearchContext, search_query: str) -> Any:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "query": search_query,
            "limit": self.settings.MAX_PROVIDER_RESULTS,
        }
        return self._request(ctx, "POST", headers, json=payload)

    def _extract_results(self, payload: Any) -> list[RawSearchResult]:
        data = payload.get("data") if isinstance(payload, dict) else None
        return [
            RawSearchResult(
                url=item.get("url") or "",
                title=item.get("title") or "",
                description=item.get("description") or "",
            )
            for item in data or []
            if isinstance(item, dict)
        ]
