# main.py

"""Entry point for the mrktr price search CLI."""

import argparse
import asyncio
import logging
import sys

from mrktr.config.logging_config import setup_logging
from mrktr.config.settings import Settings

logger = logging.getLogger("mrktr.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    provider_names = ", ".join(p["label"] for p in Settings.PROVIDERS)

    parser = argparse.ArgumentParser(
        prog="mrktr",
        description="Marketplace price lookup for free-text queries.",
        epilog=f"Providers (priority order): {provider_names}",
    )
    parser.add_argument(
        "query",
        nargs="?",
        default=None,
        help="Search query, e.g. 'ps5' or 'switch oled'.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "--no-expand",
        action="store_false",
        default=True,
        dest="expand",
        help="Search the query exactly as typed.",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        default=None,
        help="Overall deadline in seconds for the search.",
    )
    parser.add_argument(
        "--suggest",
        default=None,
        metavar="PREFIX",
        help="Print catalog suggestions for PREFIX and exit.",
    )
    parser.add_argument(
        "--providers",
        action="store_true",
        default=False,
        help="Show which search providers are configured.",
    )
    return parser


def _run_cli(args: argparse.Namespace) -> None:
    """Run one headless search and exit."""
    from mrktr.cli.runner import cli_search

    exit_code = asyncio.run(
        cli_search(
            query=args.query,
            output_format=args.output_format,
            expand=args.expand,
            timeout=args.timeout,
        )
    )
    sys.exit(exit_code)


def main() -> None:
    """Route to suggestions, provider status or a search."""
    log_file = setup_logging()
    logger.info("mrktr starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    if args.suggest is not None:
        from mrktr.cli.runner import run_suggest

        sys.exit(run_suggest(args.suggest))
    elif args.providers:
        from mrktr.cli.runner import run_provider_status

        sys.exit(run_provider_status())
    elif args.query is None:
        parser.print_help(sys.stderr)
        sys.exit(2)
    else:
        _run_cli(args)


if __name__ == "__main__":
    main()
