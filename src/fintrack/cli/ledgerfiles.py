"""Import and export subcommands - move ledgers between Excel/JSON files and the store."""

from pathlib import Path

from rich.console import Console

from ..portfolio import (
    load_transactions_from_excel,
    load_transactions_from_json,
    save_transactions_to_excel,
    save_transactions_to_json,
)
from ..storage import LedgerStore
from .accounts import resolve_account

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


def register_subcommands(subparsers):
    """Register the import and export subcommands.

    Args:
        subparsers: The argparse subparsers action to add the commands to.
    """
    import_parser = subparsers.add_parser(
        "import",
        help="Import transactions from an Excel or JSON file",
        description="Append the transactions in an Excel (.xlsx) or JSON file to an account.",
    )
    import_parser.add_argument("filename", help="Path to the .xlsx or .json ledger file")
    import_parser.add_argument("--account", "-a", required=True, help="Account id or name")
    import_parser.set_defaults(func=run_import)

    export_parser = subparsers.add_parser(
        "export",
        help="Export an account's transactions to an Excel or JSON file",
        description="Write an account's transactions, in recorded order, to .xlsx or .json.",
    )
    export_parser.add_argument("filename", help="Destination .xlsx or .json file")
    export_parser.add_argument("--account", "-a", required=True, help="Account id or name")
    export_parser.set_defaults(func=run_export)


def _is_excel(filename: str) -> bool:
    return Path(filename).suffix.lower() in EXCEL_SUFFIXES


def run_import(args):
    """Import a ledger file into an account.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    store = LedgerStore(args.data)
    try:
        account = resolve_account(store, args.account)
        if _is_excel(args.filename):
            transactions = load_transactions_from_excel(args.filename, account.id)
        else:
            transactions = load_transactions_from_json(args.filename, account.id)
        imported = store.import_transactions(account.id, transactions)
    except (KeyError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e.args[0] if e.args else e}")
        return 1

    Console().print(f"Imported {len(imported)} transaction(s) into [cyan]{account.name}[/cyan]")
    return 0


def run_export(args):
    """Export an account's ledger to a file.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    store = LedgerStore(args.data)
    try:
        account = resolve_account(store, args.account)
    except KeyError as e:
        print(f"Error: {e.args[0]}")
        return 1

    transactions = store.get_ledger(account.id)
    if _is_excel(args.filename):
        save_transactions_to_excel(transactions, args.filename)
    else:
        save_transactions_to_json(transactions, args.filename)

    Console().print(f"Exported {len(transactions)} transaction(s) to {args.filename}")
    return 0
