# mrktr/config/settings.py

"""Central configuration for the mrktr price search engine."""

from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the mrktr price search engine."""

    # --- Provider endpoints ---
    BRAVE_SEARCH_URL: str = "https://api.search.brave.com/res/v1/web/search"
    TAVILY_SEARCH_URL: str = "https://api.tavily.com/search"
    FIRECRAWL_SEARCH_URL: str = "https://api.firecrawl.dev/v1/search"

    # --- Requests ---
    REQUEST_TIMEOUT: float = 30.0       # Seconds before a provider call times out
    MAX_PROVIDER_RESULTS: int = 20      # Results requested from each provider
    BODY_SUMMARY_LIMIT: int = 120       # Max chars of an error body kept
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    MARKETPLACE_SITES: list[str] = [
        "ebay.com",
        "mercari.com",
        "amazon.com",
    ]

    # --- Query understanding ---
    MAX_EXPAND_TOKENS: int = 3          # Longer queries are left as typed
    MIN_EXPAND_SCORE: float = 0.34      # Confidence floor for a rewrite
    MIN_EXPAND_SEPARATION: float = 0.08  # Best vs runner-up margin
    MAX_SUGGESTIONS: int = 6
    MIN_SUGGEST_PREFIX: int = 2

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    CATALOG_PATH: Path = BASE_DIR / "mrktr" / "config" / "products.json"
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Providers (priority order; first non-empty result wins) ---
    PROVIDERS: list[dict[str, str]] = [
        {
            "id": "brave",
            "label": "Brave",
            "env": "BRAVE_API_KEY",
            "provider": "mrktr.providers.brave_provider.BraveProvider",
        },
        {
            "id": "tavily",
            "label": "Tavily",
            "env": "TAVILY_API_KEY",
            "provider": "mrktr.providers.tavily_provider.TavilyProvider",
        },
        {
            "id": "firecrawl",
            "label": "Firecrawl",
            "env": "FIRECRAWL_API_KEY",
            "provider": (
                "mrktr.providers.firecrawl_provider.FirecrawlProvider"
            ),
        },
    ]
