# mrktr/providers/brave_provider.py

"""Search provider backed by the Brave Search web API."""

from typing import Any

from mrktr.config.settings import Settings
from mrktr.models.listing import RawSearchResult
from mrktr.providers.base_provider import BaseProvider
from mrktr.services.search_context import SearchContext


class BraveProvider(BaseProvider):
    """Brave Search (GET, ``X-Subscription-Token`` auth)."""

    def __init__(self, api_key: str = "", search_url: str = "") -> None:
        super().__init__(
            "Brave",
            "BRAVE_API_KEY",
            api_key,
            search_url,
            Settings.BRAVE_SEARCH_URL,
        )

    def build_query(self, query: str) -> str:
        return f"{query} price ({self._site_filter()})"

    def _send(self, ctx: SearchContext, search_query: str) -> Any:
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip",
            "X-Subscription-Token": self.api_key,
        }
        params = {
            "q": search_query,
            "count": str(self.settings.MAX_PROVIDER_RESULTS),
        }
        return self._request(ctx, "GET", headers, params=params)

    def _extract_results(self, payload: Any) -> list[RawSearchResult]:
        web = payload.get("web") if isinstance(payload, dict) else None
        results = web.get("results") if isinstance(web, dict) else None
        return [
            RawSearchResult(
                url=item.get("url") or "",
                title=item.get("title") or "",
                description=item.get("description") or "",
            )
            for item in results or []
            if isinstance(item, dict)
        ]
