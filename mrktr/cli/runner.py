# mrktr/cli/runner.py

"""Headless CLI runner: expand, search and print one query."""

import json
import logging
import os
import sys

from rich.console import Console
from rich.table import Table

from mrktr.config.settings import Settings
from mrktr.filters.query_expander import QueryExpander
from mrktr.models.listing import Listing
from mrktr.services.search_orchestrator import (
    SearchMode,
    SearchOrchestrator,
    SearchResponse,
    build_env_orchestrator,
)
from mrktr.services.search_session import SearchSession

logger = logging.getLogger("mrktr.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def _response_to_dict(
    query: str,
    expanded: str,
    response: SearchResponse,
) -> dict[str, object]:
    """Serialise a response to plain values for JSON output."""
    return {
        "query": query,
        "expanded_query": expanded,
        "mode": response.mode.value,
        "warning": response.warning,
        "error": str(response.err) if response.err else None,
        "provider_errors": [
            {
                "provider": pe.provider,
                "kind": pe.kind.value,
                "error": str(pe.err) if pe.err else None,
            }
            for pe in response.provider_errors
        ],
        "results": [listing.to_dict() for listing in response.results],
    }


def _print_table(listings: list[Listing]) -> None:
    """Render a Rich table of listings, cheapest first."""
    table = Table(
        title="Listings",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", max_width=60)
    table.add_column("Price", justify="right", style="green", no_wrap=True)
    table.add_column("Condition", justify="center")
    table.add_column("Status", justify="center")
    table.add_column("Platform", style="magenta")
    table.add_column("URL", overflow="fold", style="dim")

    for idx, listing in enumerate(
        sorted(listings, key=lambda item: item.price), 1
    ):
        table.add_row(
            str(idx),
            listing.title[:60],
            f"${listing.price:,.2f}",
            listing.condition.value,
            listing.status.value,
            listing.platform.value,
            listing.url,
        )

    Console().print(table)


async def cli_search(
    query: str,
    output_format: str = "json",
    expand: bool = True,
    timeout: float | None = None,
    orchestrator: SearchOrchestrator | None = None,
    expander: QueryExpander | None = None,
) -> int:
    """Run a headless search and return an exit code (0=ok, 1=fail)."""
    query = query.strip()
    if not query:
        _err.print("[red]Empty query.[/red]")
        return 1

    expanded = query
    if expand:
        expander = expander or QueryExpander.from_catalog_file()
        expanded = expander.expand(query)

    _err.print(f"[bold]Searching:[/bold] {expanded}")
    if expanded != query:
        _err.print(f"[dim]Expanded from '{query}'[/dim]")

    owned = orchestrator is None
    orchestrator = orchestrator or build_env_orchestrator()
    session = SearchSession(orchestrator, timeout=timeout)
    try:
        response = await session.run(expanded)
    finally:
        if owned:
            orchestrator.close()

    if response is None:
        _err.print("[yellow]Search superseded.[/yellow]")
        return 1

    if response.warning:
        _err.print(f"[yellow]{response.warning}[/yellow]")
    if response.err is not None:
        logger.error("Search for '%s' failed: %s", expanded, response.err)
        _err.print(f"[red]Error: {response.err}[/red]")

    if output_format == "table":
        if response.results:
            _print_table(response.results)
    else:
        json.dump(
            _response_to_dict(query, expanded, response),
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")

    if response.mode is not SearchMode.LIVE or not response.results:
        _err.print("[yellow]No listings found.[/yellow]")
        return 1

    _err.print(f"[green]✓ {len(response.results)} listings[/green]")
    return 0


def run_suggest(
    prefix: str,
    expander: QueryExpander | None = None,
) -> int:
    """Print catalog suggestions for *prefix*, one per line."""
    expander = expander or QueryExpander.from_catalog_file()
    suggestions = expander.suggest(prefix)
    if not suggestions:
        _err.print("[yellow]No suggestions.[/yellow]")
        return 1
    for suggestion in suggestions:
        sys.stdout.write(f"{suggestion}\n")
    return 0


def run_provider_status() -> int:
    """Show which providers have credentials, in priority order."""
    table = Table(
        title="Search Providers",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Priority", justify="right", style="dim")
    table.add_column("Provider", style="bold")
    table.add_column("Env var")
    table.add_column("Status", justify="center")

    any_configured = False
    for priority, source in enumerate(Settings.PROVIDERS, 1):
        configured = bool(os.getenv(source["env"], "").strip())
        any_configured = any_configured or configured
        status = (
            "[green]configured[/green]"
            if configured
            else "[red]missing key[/red]"
        )
        table.add_row(
            str(priority), source["label"], source["env"], status
        )

    Console().print(table)
    return 0 if any_configured else 1
