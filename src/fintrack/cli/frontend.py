#!/usr/bin/env python3
"""Serve command for launching the fintrack JSON API locally."""

from pathlib import Path

from rich.console import Console

from ..pricingdata import PRICE_SOURCES, get_pricing_manager
from ..storage import LedgerStore

DEFAULT_PORT = 3000


def register_subcommand(subparsers):
    """Register the serve subcommand.

    Args:
        subparsers: The argparse subparsers action to add the command to.
    """
    parser = subparsers.add_parser(
        "serve",
        help="Launch the local JSON API",
        description="Start a local Flask server exposing accounts, transactions, holdings and summaries.",
    )
    parser.add_argument(
        "--port",
        "-p",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port to run the server on (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--prices",
        choices=PRICE_SOURCES,
        default=None,
        help="Live price source for /api/summary (or set price_source in config.json)",
    )
    parser.set_defaults(func=run_frontend)


def run_frontend(args):
    """Launch the Flask development server.

    The ledger file and price source fall back to ``data_file`` and
    ``price_source`` in config.json when not given on the command line.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    from ..frontend import create_app, load_config

    console = Console()
    config = load_config(Path.cwd() / "config.json")

    data_file = args.data or config.get("data_file")
    price_source = args.prices or config.get("price_source", "none")

    try:
        pricing_manager = get_pricing_manager(price_source)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    store = LedgerStore(data_file)
    console.print(f"Using ledger [cyan]{store.file_path}[/cyan] with price source [cyan]{price_source}[/cyan]")

    app = create_app(store=store, pricing_manager=pricing_manager)

    console.print(
        f"[bold]Starting fintrack API on [cyan]http://127.0.0.1:{args.port}[/cyan][/bold]"
    )
    console.print("[dim]Press Ctrl+C to stop the server.[/dim]\n")

    app.run(host="127.0.0.1", port=args.port)
    return 0
