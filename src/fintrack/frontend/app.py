"""Flask application factory for the fintrack JSON API."""

import json
from datetime import date
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, request

from ..pricingdata import PricingDataManager
from ..storage import LedgerStore
from ..valuation import summarize_account

load_dotenv()


def load_config(config_path: Path) -> dict:
    """Load config.json from the working directory.

    Args:
        config_path: Path to config.json.

    Returns:
        Parsed configuration dict, or an empty dict if the file is missing
        or unreadable.
    """
    if not config_path.exists():
        return {}

    try:
        data = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError):
        print(f"Warning: could not read {config_path}, using defaults")
        return {}

    return data if isinstance(data, dict) else {}


def _error(e: Exception, status: int):
    return {"error": e.args[0] if e.args else str(e)}, status


def create_app(
    store: LedgerStore | None = None,
    pricing_manager: PricingDataManager | None = None,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        store: The ledger store to serve. Defaults to a store on the
            default data file.
        pricing_manager: Optional live price source used by the summary
            endpoint. Without one, holdings are valued at cost.

    Returns:
        Configured Flask application instance with all routes registered.
    """
    app = Flask(__name__)
    ledger_store = store or LedgerStore()

    # ── Accounts API ─────────────────────────────────────

    @app.route("/api/accounts")
    def list_accounts():
        return {"accounts": [a.to_dict() for a in ledger_store.get_accounts()]}

    @app.route("/api/accounts", methods=["POST"])
    def add_account():
        data = request.get_json(silent=True) or {}
        if "name" not in data:
            return {"error": "Missing field: name"}, 400
        try:
            account = ledger_store.add_account(str(data["name"]))
        except ValueError as e:
            return _error(e, 400)
        return account.to_dict(), 201

    @app.route("/api/accounts/<int:account_id>", methods=["PUT"])
    def rename_account(account_id: int):
        data = request.get_json(silent=True) or {}
        if "name" not in data:
            return {"error": "Missing field: name"}, 400
        try:
            account = ledger_store.rename_account(account_id, str(data["name"]))
        except KeyError as e:
            return _error(e, 404)
        except ValueError as e:
            return _error(e, 400)
        return account.to_dict()

    @app.route("/api/accounts/<int:account_id>", methods=["DELETE"])
    def delete_account(account_id: int):
        try:
            ledger_store.delete_account(account_id)
        except KeyError as e:
            return _error(e, 404)
        return {"status": "ok"}

    # ── Holdings & summary ───────────────────────────────

    @app.route("/api/holdings/<int:account_id>")
    def list_holdings(account_id: int):
        try:
            ledger_store.get_account(account_id)
        except KeyError as e:
            return _error(e, 404)
        return {"holdings": [h.to_dict() for h in ledger_store.get_holdings(account_id)]}

    @app.route("/api/summary/<int:account_id>")
    def account_summary(account_id: int):
        try:
            ledger_store.get_account(account_id)
            as_of_raw = request.args.get("as_of")
            as_of = date.fromisoformat(as_of_raw) if as_of_raw else None
        except KeyError as e:
            return _error(e, 404)
        except ValueError as e:
            return _error(e, 400)

        ledger = ledger_store.get_ledger(account_id)
        holdings = ledger_store.get_holdings(account_id)

        prices = {}
        held_symbols = [h.symbol for h in holdings if h.quantity != 0]
        if pricing_manager is not None and held_symbols:
            prices = pricing_manager.fetch_prices(held_symbols)

        return summarize_account(ledger, prices, as_of=as_of).to_dict()

    # ── Transaction CRUD API ──────────────────────────────

    @app.route("/api/transactions/<int:account_id>")
    def list_transactions(account_id: int):
        try:
            ledger_store.get_account(account_id)
        except KeyError as e:
            return _error(e, 404)
        return {"transactions": [t.to_dict() for t in ledger_store.get_transactions(account_id)]}

    @app.route("/api/transactions", methods=["POST"])
    def add_transaction():
        data = request.get_json(silent=True) or {}
        required = ["account_id", "symbol", "type", "quantity", "price", "date"]
        for field in required:
            if field not in data:
                return {"error": f"Missing field: {field}"}, 400

        try:
            txn = ledger_store.add_transaction(
                int(data["account_id"]),
                str(data["symbol"]),
                data["type"],
                data["quantity"],
                data["price"],
                str(data["date"]),
            )
        except KeyError as e:
            return _error(e, 404)
        except (ValueError, TypeError) as e:
            return _error(e, 400)

        return txn.to_dict(), 201

    @app.route("/api/transactions/<int:transaction_id>", methods=["DELETE"])
    def delete_transaction(transaction_id: int):
        try:
            ledger_store.delete_transaction(transaction_id)
        except KeyError as e:
            return _error(e, 404)
        return {"status": "ok"}

    return app
