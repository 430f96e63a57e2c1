"""Accounts subcommand - list, create, rename and delete accounts."""

from rich.console import Console
from rich.table import Table

from ..storage import Account, LedgerStore


def register_subcommand(subparsers):
    """Register the accounts subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers action to add the command to.
    """
    parser = subparsers.add_parser(
        "accounts",
        help="Manage accounts",
        description="List, create, rename and delete accounts in the ledger.",
    )
    actions = parser.add_subparsers(dest="action", title="actions")

    actions.add_parser("list", help="List accounts")

    add_parser = actions.add_parser("add", help="Create an account")
    add_parser.add_argument("name", help="Name of the new account")

    rename_parser = actions.add_parser("rename", help="Rename an account")
    rename_parser.add_argument("account", help="Account id or name")
    rename_parser.add_argument("name", help="New name")

    delete_parser = actions.add_parser("delete", help="Delete an account and its transactions")
    delete_parser.add_argument("account", help="Account id or name")

    parser.set_defaults(func=run, action="list")


def resolve_account(store: LedgerStore, ref: str) -> Account:
    """Find an account by numeric id or by exact name.

    Raises:
        KeyError: If no account matches.
    """
    accounts = store.get_accounts()
    if ref.isdigit():
        for account in accounts:
            if account.id == int(ref):
                return account
    for account in accounts:
        if account.name == ref:
            return account
    raise KeyError(f"Unknown account: {ref}")


def run(args):
    """Run the requested account action.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    console = Console()
    store = LedgerStore(args.data)

    try:
        if args.action == "add":
            account = store.add_account(args.name)
            console.print(f"Created account [cyan]{account.name}[/cyan] (id {account.id})")
        elif args.action == "rename":
            account = resolve_account(store, args.account)
            renamed = store.rename_account(account.id, args.name)
            console.print(f"Renamed account {account.id}: {account.name} → [cyan]{renamed.name}[/cyan]")
        elif args.action == "delete":
            account = resolve_account(store, args.account)
            store.delete_account(account.id)
            console.print(f"Deleted account [cyan]{account.name}[/cyan] and its transactions")
        else:
            table = Table(title="Accounts")
            table.add_column("ID", style="magenta", justify="right")
            table.add_column("Name", style="cyan", justify="left")
            table.add_column("Transactions", justify="right")
            for account in store.get_accounts():
                table.add_row(str(account.id), account.name, str(len(store.get_ledger(account.id))))
            console.print(table)
    except (KeyError, ValueError) as e:
        print(f"Error: {e.args[0] if e.args else e}")
        return 1

    return 0
