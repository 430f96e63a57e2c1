#!/usr/bin/env python3
"""Main entry point for the fintrack CLI."""

import argparse
import sys

FINTRACK_BANNER = """
 ┌─┐┬┌┐┌┌┬┐┬─┐┌─┐┌─┐┬┌─
 ├┤ ││││ │ ├┬┘├─┤│  ├┴┐
 └  ┴┘└┘ ┴ ┴└─┴ ┴└─┘┴ ┴
 Multi-account portfolio tracker (average cost basis)
"""

PRICE_WARNING = (
    " \033[33m⚠  Live prices come from best-effort sources and may be stale or\n"
    "    missing. Positions without a live price are valued at cost.\033[0m"
)


def main(argv: list[str] | None = None):
    """Parse CLI arguments and dispatch to the appropriate subcommand.

    Returns:
        int: Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="fintrack",
        description="fintrack - multi-account portfolio tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fintrack accounts list                          List accounts
  fintrack tx add 1 BUY RELIANCE 10 2500          Record a purchase for account 1
  fintrack report 1 --prices yfinance             Holdings and P&L for account 1
  fintrack import trades.xlsx --account 1         Import a ledger from Excel
        """,
    )
    parser.add_argument(
        "--data",
        default=None,
        help="Path to the JSON ledger file (default: $FINTRACK_DATA_FILE or fintrack.json)",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        help="Available commands",
    )

    # Import subcommand modules and register them
    from .accounts import register_subcommand as register_accounts
    from .transactions import register_subcommand as register_transactions
    from .report import register_subcommand as register_report
    from .ledgerfiles import register_subcommands as register_ledgerfiles
    from .frontend import register_subcommand as register_frontend
    from .version import register_subcommand as register_version

    register_accounts(subparsers)
    register_transactions(subparsers)
    register_report(subparsers)
    register_ledgerfiles(subparsers)
    register_frontend(subparsers)
    register_version(subparsers)

    args = parser.parse_args(argv)

    # If no command specified, show help
    if args.command is None:
        print(FINTRACK_BANNER)
        print(PRICE_WARNING)
        print()
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
