"""Transactions subcommand - list, record and delete ledger entries."""

from datetime import date

from rich.console import Console
from rich.table import Table

from ..portfolio import TransactionType
from ..storage import LedgerStore
from .accounts import resolve_account


def register_subcommand(subparsers):
    """Register the tx subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers action to add the command to.
    """
    parser = subparsers.add_parser(
        "tx",
        help="Manage transactions",
        description="List, record and delete buy/sell transactions for an account.",
    )
    actions = parser.add_subparsers(dest="action", title="actions")

    list_parser = actions.add_parser("list", help="Show an account's transaction history")
    list_parser.add_argument("account", help="Account id or name")

    add_parser = actions.add_parser("add", help="Record a transaction")
    add_parser.add_argument("account", help="Account id or name")
    add_parser.add_argument(
        "type",
        type=str.upper,
        choices=[t.value for t in TransactionType],
        help="Transaction type",
    )
    add_parser.add_argument("symbol", help="Instrument symbol (stored uppercase)")
    add_parser.add_argument("quantity", help="Number of units")
    add_parser.add_argument("price", help="Per-unit price")
    add_parser.add_argument(
        "--date",
        "-d",
        default=None,
        help="Trade date in YYYY-MM-DD format (default: today)",
    )

    delete_parser = actions.add_parser("delete", help="Delete a transaction")
    delete_parser.add_argument("id", type=int, help="Transaction id")

    parser.set_defaults(func=run)


def run(args):
    """Run the requested transaction action.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    console = Console()
    store = LedgerStore(args.data)

    if args.action is None:
        print("Error: choose one of: list, add, delete")
        return 1

    try:
        if args.action == "add":
            account = resolve_account(store, args.account)
            txn = store.add_transaction(
                account.id,
                args.symbol,
                args.type,
                args.quantity,
                args.price,
                args.date or date.today(),
            )
            console.print(
                f"Recorded #{txn.id}: {txn.transaction_type.value} {txn.quantity} "
                f"[cyan]{txn.symbol}[/cyan] @ {txn.price:,.2f} on {txn.transaction_date.isoformat()}"
            )
        elif args.action == "delete":
            store.delete_transaction(args.id)
            console.print(f"Deleted transaction #{args.id}")
        else:
            account = resolve_account(store, args.account)
            table = Table(title=f"Transactions: {account.name}")
            table.add_column("ID", style="magenta", justify="right")
            table.add_column("Date", justify="left")
            table.add_column("Type", justify="left")
            table.add_column("Symbol", style="cyan", justify="left")
            table.add_column("Quantity", justify="right")
            table.add_column("Price", justify="right")
            table.add_column("Value", style="yellow", justify="right")

            for txn in store.get_transactions(account.id):
                type_str = (
                    "[green]BUY[/green]" if txn.transaction_type is TransactionType.BUY else "[red]SELL[/red]"
                )
                table.add_row(
                    str(txn.id),
                    txn.transaction_date.isoformat(),
                    type_str,
                    txn.symbol,
                    f"{txn.quantity:,}",
                    f"{txn.price:,.2f}",
                    f"{txn.quantity * txn.price:,.2f}",
                )
            console.print(table)
    except (KeyError, ValueError) as e:
        print(f"Error: {e.args[0] if e.args else e}")
        return 1

    return 0
