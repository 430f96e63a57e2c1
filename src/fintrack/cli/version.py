"""Version subcommand for the fintrack CLI."""

from importlib.metadata import PackageNotFoundError, version

from ..pricingdata import DEFAULT_PRICE_MODEL
from ..storage import get_default_data_file


def register_subcommand(subparsers):
    """Register the version subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers object to register with.
    """
    parser = subparsers.add_parser(
        "version",
        help="Display fintrack version information",
        description="Display the installed fintrack version and the ledger and price model in use.",
    )
    parser.set_defaults(func=run)


def run(args):
    """Display version and configuration information.

    Args:
        args: Parsed CLI arguments.

    Returns:
        int: Exit code (0 for success).
    """
    try:
        ver = version("fintrack")
    except PackageNotFoundError:
        ver = "unknown (not installed)"

    print(f" fintrack {ver}")
    print(f" Ledger file: {args.data or get_default_data_file()}")
    print(f" Price model: {DEFAULT_PRICE_MODEL}")
    return 0
