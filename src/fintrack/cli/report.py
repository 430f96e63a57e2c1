#!/usr/bin/env python3
"""Report subcommand - Display holdings, P&L and trailing realized profit."""

import warnings
from datetime import date
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from ..portfolio import parse_transaction_date
from ..pricingdata import PRICE_SOURCES, get_pricing_manager
from ..storage import LedgerStore
from ..valuation import PriceSource, summarize_account
from .. import pricingdata
from .accounts import resolve_account

WINDOW_LABELS = {1: "1 Month", 6: "6 Months", 12: "1 Year"}


def register_subcommand(subparsers):
    """Register the report subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers action to add the command to.
    """
    parser = subparsers.add_parser(
        "report",
        help="Display holdings and profit report for an account",
        description="Display current holdings, unrealized and realized P&L, and trailing realized profit.",
    )
    parser.add_argument("account", help="Account id or name")
    parser.add_argument(
        "--prices",
        choices=PRICE_SOURCES,
        default="none",
        help="Live price source (default: none, holdings valued at cost)",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Do not fall back to the last known prices when the live source misses a symbol",
    )
    parser.add_argument(
        "--as-of",
        default=None,
        help="End date for the trailing profit windows, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--ignore-errors",
        action="store_true",
        help="Suppress data-quality warnings such as oversells",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print price fetching progress",
    )
    parser.set_defaults(func=run)


def _signed(value: Decimal) -> str:
    if value >= 0:
        return f"[green]+{value:,.2f}[/green]"
    return f"[red]{value:,.2f}[/red]"


def run(args):
    """Display the holdings report for one account.

    Args:
        args: Parsed argparse namespace.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    if args.ignore_errors:
        warnings.filterwarnings("ignore", category=UserWarning)
    pricingdata.verbose = args.verbose

    store = LedgerStore(args.data)
    try:
        account = resolve_account(store, args.account)
        as_of = parse_transaction_date(args.as_of) if args.as_of else date.today()
        pricing_manager = get_pricing_manager(args.prices, use_cache=not args.no_cache)
    except (KeyError, ValueError) as e:
        print(f"Error: {e.args[0] if e.args else e}")
        return 1

    ledger = store.get_ledger(account.id)
    holdings = store.get_holdings(account.id)

    prices = {}
    held_symbols = [h.symbol for h in holdings if h.quantity != 0]
    if pricing_manager is not None and held_symbols:
        prices = pricing_manager.fetch_prices(held_symbols)

    summary = summarize_account(ledger, prices, as_of=as_of)
    valuation = summary.valuation
    console = Console()

    holdings_table = Table(title=f"Holdings: {account.name}")
    holdings_table.add_column("Symbol", style="cyan", justify="left")
    holdings_table.add_column("Quantity", style="magenta", justify="right")
    holdings_table.add_column("Avg Price → Current", justify="right")
    holdings_table.add_column("Invested", style="yellow", justify="right")
    holdings_table.add_column("Market Value", style="green", justify="right")
    holdings_table.add_column("Unrealized", justify="right")
    holdings_table.add_column("Realized", justify="right")

    for hv in valuation.holdings:
        if hv.price_source is PriceSource.LIVE:
            current_str = f"[green]{hv.current_price:,.2f}[/green]"
        elif hv.price_source is PriceSource.CACHED:
            current_str = f"[yellow]{hv.current_price:,.2f} (cached)[/yellow]"
        else:
            current_str = "[dim]at cost[/dim]"

        holdings_table.add_row(
            hv.symbol,
            f"{hv.holding.quantity:,}",
            f"{hv.holding.avg_price:,.2f} → {current_str}",
            f"{hv.invested:,.2f}",
            f"{hv.market_value:,.2f}",
            _signed(hv.unrealized_pnl),
            _signed(hv.holding.realized_pnl) if hv.holding.realized_pnl else "-",
        )

    console.print(holdings_table)

    profit_table = Table(title=f"Realized Profit Summary (as of {as_of.isoformat()})")
    for months in summary.period_profits:
        profit_table.add_column(WINDOW_LABELS.get(months, f"{months} Months"), justify="right")
    profit_table.add_row(*(_signed(p) for p in summary.period_profits.values()))
    console.print(profit_table)

    totals = (
        f"Invested: {valuation.total_invested:,.2f}\n"
        f"Current Value: {valuation.total_current_value:,.2f}\n"
        f"Unrealized P&L: {_signed(valuation.total_unrealized_pnl)}\n"
        f"Realized P&L: {_signed(valuation.total_realized_pnl)}\n"
        f"[bold]Total P&L: {_signed(valuation.total_pnl)}[/bold]"
    )
    if valuation.is_stale:
        totals += (
            f"\n[yellow]Stale data: no live price for {', '.join(valuation.stale_symbols)}[/yellow]"
        )
    console.print(Panel(totals, title="Summary"))

    return 0
