# tests/test_cli_runner.py

"""Tests for the headless CLI runner."""

import io
import json
import unittest
from unittest.mock import patch

from mrktr.cli.runner import cli_search, run_provider_status, run_suggest
from mrktr.filters.query_expander import QueryExpander
from mrktr.models.listing import Condition, Listing, Platform, Status
from mrktr.models.product import ProductEntry
from mrktr.providers.errors import HTTPStatusError
from mrktr.services.search_context import SearchContext
from mrktr.services.search_orchestrator import SearchOrchestrator


class _RecordingProvider:
    """Provider double that records the queries it sees."""

    def __init__(
        self,
        results: list[Listing] | None = None,
        err: Exception | None = None,
    ) -> None:
        self.results = results or []
        self.err = err
        self.queries: list[str] = []
        self.remaining: list[float | None] = []
        self.closed = False

    def name(self) -> str:
        return "Brave"

    def configured(self) -> bool:
        return True

    def close(self) -> None:
        self.closed = True

    def search(self, ctx: SearchContext, query: str) -> list[Listing]:
        self.queries.append(query)
        self.remaining.append(ctx.remaining())
        if self.err is not None:
            raise self.err
        return self.results


def _expander() -> QueryExpander:
    return QueryExpander.build([
        ProductEntry("PlayStation 5 Console", "Gaming", ("ps5",)),
        ProductEntry("Nintendo Switch OLED", "Gaming", ("switch oled",)),
    ])


_LISTINGS = [
    Listing(Platform.EBAY, 450.0, Condition.USED, Status.ACTIVE,
            "https://www.ebay.com/itm/2", "PS5 used"),
    Listing(Platform.MERCARI, 399.0, Condition.GOOD, Status.SOLD,
            "https://www.mercari.com/us/item/1", "PS5 good"),
]


class TestCliSearch(unittest.IsolatedAsyncioTestCase):
    """cli_search exit codes and JSON output."""

    async def test_json_output_with_expansion(self) -> None:
        """The expanded query is searched and echoed in JSON."""
        provider = _RecordingProvider(results=_LISTINGS)
        with patch("sys.stdout", new_callable=io.StringIO) as out:
            code = await cli_search(
                "ps5",
                orchestrator=SearchOrchestrator([provider]),
                expander=_expander(),
            )
        self.assertEqual(code, 0)
        self.assertEqual(provider.queries, ["PlayStation 5 Console"])

        payload = json.loads(out.getvalue())
        self.assertEqual(payload["query"], "ps5")
        self.assertEqual(payload["expanded_query"], "PlayStation 5 Console")
        self.assertEqual(payload["mode"], "live")
        self.assertIsNone(payload["error"])
        self.assertEqual(len(payload["results"]), 2)
        self.assertEqual(payload["results"][0]["platform"], "eBay")

    async def test_no_expand(self) -> None:
        """--no-expand searches the query as typed."""
        provider = _RecordingProvider(results=_LISTINGS)
        with patch("sys.stdout", new_callable=io.StringIO):
            await cli_search(
                "ps5",
                expand=False,
                orchestrator=SearchOrchestrator([provider]),
            )
        self.assertEqual(provider.queries, ["ps5"])

    async def test_failure_reports_provider_errors(self) -> None:
        """A total failure exits 1 and lists classified errors."""
        provider = _RecordingProvider(
            err=HTTPStatusError("Brave", 401, "bad token")
        )
        with patch("sys.stdout", new_callable=io.StringIO) as out:
            code = await cli_search(
                "ps5",
                expand=False,
                orchestrator=SearchOrchestrator([provider]),
            )
        self.assertEqual(code, 1)
        payload = json.loads(out.getvalue())
        self.assertEqual(payload["mode"], "unavailable")
        self.assertEqual(
            payload["warning"], "Brave auth failed. Check BRAVE_API_KEY."
        )
        self.assertEqual(payload["provider_errors"][0]["kind"], "auth")

    async def test_no_providers(self) -> None:
        """Without providers the run fails with the setup message."""
        with patch("sys.stdout", new_callable=io.StringIO) as out:
            code = await cli_search(
                "ps5", expand=False, orchestrator=SearchOrchestrator()
            )
        self.assertEqual(code, 1)
        payload = json.loads(out.getvalue())
        self.assertIn("BRAVE_API_KEY", payload["error"])

    async def test_empty_query(self) -> None:
        """A blank query exits 1 without searching."""
        provider = _RecordingProvider()
        code = await cli_search(
            "   ", orchestrator=SearchOrchestrator([provider])
        )
        self.assertEqual(code, 1)
        self.assertEqual(provider.queries, [])

    async def test_table_output(self) -> None:
        """Table mode prints listings cheapest first."""
        provider = _RecordingProvider(results=_LISTINGS)
        with patch("sys.stdout", new_callable=io.StringIO) as out:
            code = await cli_search(
                "ps5",
                output_format="table",
                expand=False,
                orchestrator=SearchOrchestrator([provider]),
            )
        self.assertEqual(code, 0)
        text = out.getvalue()
        self.assertIn("$399.00", text)
        self.assertLess(text.index("$399.00"), text.index("$450.00"))

    async def test_timeout_reaches_provider_context(self) -> None:
        """--timeout becomes the search context deadline."""
        provider = _RecordingProvider(results=_LISTINGS)
        with patch("sys.stdout", new_callable=io.StringIO):
            await cli_search(
                "ps5",
                expand=False,
                timeout=5.0,
                orchestrator=SearchOrchestrator([provider]),
            )
        self.assertIsNotNone(provider.remaining[0])
        self.assertLessEqual(provider.remaining[0], 5.0)

    async def test_env_orchestrator_closed(self) -> None:
        """Providers built from the environment are closed afterwards."""
        provider = _RecordingProvider(results=_LISTINGS)
        with patch(
            "mrktr.cli.runner.build_env_orchestrator",
            return_value=SearchOrchestrator([provider]),
        ):
            with patch("sys.stdout", new_callable=io.StringIO):
                code = await cli_search("ps5", expand=False)
        self.assertEqual(code, 0)
        self.assertTrue(provider.closed)

    async def test_caller_orchestrator_left_open(self) -> None:
        """An orchestrator passed in by the caller stays open."""
        provider = _RecordingProvider(results=_LISTINGS)
        with patch("sys.stdout", new_callable=io.StringIO):
            await cli_search(
                "ps5",
                expand=False,
                orchestrator=SearchOrchestrator([provider]),
            )
        self.assertFalse(provider.closed)


class TestRunSuggest(unittest.TestCase):
    """run_suggest output."""

    def test_prints_suggestions(self) -> None:
        """One suggestion per line."""
        with patch("sys.stdout", new_callable=io.StringIO) as out:
            code = run_suggest("ps", expander=_expander())
        self.assertEqual(code, 0)
        self.assertIn("ps5", out.getvalue().splitlines())

    def test_no_suggestions(self) -> None:
        """Nothing matching exits 1."""
        with patch("sys.stdout", new_callable=io.StringIO) as out:
            code = run_suggest("zz", expander=_expander())
        self.assertEqual(code, 1)
        self.assertEqual(out.getvalue(), "")


class TestRunProviderStatus(unittest.TestCase):
    """run_provider_status exit codes."""

    def test_none_configured(self) -> None:
        """No keys exits 1."""
        with patch("sys.stdout", new_callable=io.StringIO):
            self.assertEqual(run_provider_status(), 1)

    def test_one_configured(self) -> None:
        """Any key exits 0."""
        with patch.dict("os.environ", {"FIRECRAWL_API_KEY": "fc"}):
            with patch("sys.stdout", new_callable=io.StringIO) as out:
                self.assertEqual(run_provider_status(), 0)
        self.assertIn("Firecrawl", out.getvalue())


if __name__ == "__main__":
    unittest.main()
