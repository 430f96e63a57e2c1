"""JSON-file persistence for accounts and their transaction ledgers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .portfolio import (
    Holding,
    Transaction,
    make_transaction,
    get_holdings,
)

load_dotenv()

DEFAULT_DATA_FILE = "fintrack.json"

# Accounts created the first time a store without a file is read.
DEFAULT_ACCOUNTS: tuple[str, ...] = ("Account 1", "Account 2")


def get_default_data_file() -> Path:
    """Resolve the ledger file from ``FINTRACK_DATA_FILE`` or the working directory."""
    return Path(os.getenv("FINTRACK_DATA_FILE", DEFAULT_DATA_FILE))


@dataclass(frozen=True)
class Account:
    """A named account owning a slice of the ledger."""

    id: int
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


class LedgerStore:
    """Accounts and transactions kept in a single JSON document.

    Every call reads the file and every mutation rewrites it, so several
    processes can share a ledger file as long as they do not write at the
    same moment.
    """

    def __init__(self, file_path: str | Path | None = None, default_accounts: tuple[str, ...] = DEFAULT_ACCOUNTS):
        """Initialize the store.

        Args:
            file_path: Path to the JSON ledger. Defaults to
                ``get_default_data_file()``. Created on first write.
            default_accounts: Account names seeded when the file does not exist yet.
        """
        self.file_path = Path(file_path) if file_path is not None else get_default_data_file()
        self.default_accounts = default_accounts

    # ── File I/O ─────────────────────────────────────────

    def _read(self) -> dict[str, Any]:
        if not self.file_path.exists():
            return {"accounts": [], "transactions": [], "next_account_id": 1, "next_transaction_id": 1}

        data = json.loads(self.file_path.read_text())
        if not isinstance(data, dict):
            raise ValueError(f"Ledger file {self.file_path} is not a JSON object")

        data.setdefault("accounts", [])
        data.setdefault("transactions", [])
        data.setdefault("next_account_id", max((a["id"] for a in data["accounts"]), default=0) + 1)
        data.setdefault("next_transaction_id", max((t["id"] for t in data["transactions"]), default=0) + 1)
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.file_path.with_name(self.file_path.name + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2))
        os.replace(tmp_path, self.file_path)

    @staticmethod
    def _to_transaction(item: dict[str, Any]) -> Transaction:
        return make_transaction(
            int(item["id"]),
            int(item["account_id"]),
            item["symbol"],
            item["type"],
            item["quantity"],
            item["price"],
            item["date"],
        )

    # ── Accounts ─────────────────────────────────────────

    def _load(self) -> dict[str, Any]:
        """Read the document, seeding the default accounts when no file exists yet."""
        is_new = not self.file_path.exists()
        data = self._read()

        if is_new and self.default_accounts:
            for name in self.default_accounts:
                data["accounts"].append({"id": data["next_account_id"], "name": name})
                data["next_account_id"] += 1
            self._write(data)

        return data

    def get_accounts(self) -> list[Account]:
        data = self._load()
        return [Account(id=a["id"], name=a["name"]) for a in data["accounts"]]

    def get_account(self, account_id: int) -> Account:
        for account in self.get_accounts():
            if account.id == account_id:
                return account
        raise KeyError(f"Unknown account id: {account_id}")

    @staticmethod
    def _clean_name(name: str) -> str:
        cleaned = name.strip()
        if not cleaned:
            raise ValueError("Account name must not be blank")
        return cleaned

    def add_account(self, name: str) -> Account:
        """Create an account.

        Raises:
            ValueError: If the name is blank or already used.
        """
        name = self._clean_name(name)
        data = self._load()

        if any(a["name"] == name for a in data["accounts"]):
            raise ValueError(f"Account '{name}' already exists")

        account = Account(id=data["next_account_id"], name=name)
        data["accounts"].append(account.to_dict())
        data["next_account_id"] += 1
        self._write(data)
        return account

    def rename_account(self, account_id: int, name: str) -> Account:
        name = self._clean_name(name)
        data = self._load()

        target = None
        for a in data["accounts"]:
            if a["id"] == account_id:
                target = a
            elif a["name"] == name:
                raise ValueError(f"Account '{name}' already exists")
        if target is None:
            raise KeyError(f"Unknown account id: {account_id}")

        target["name"] = name
        self._write(data)
        return Account(id=account_id, name=name)

    def delete_account(self, account_id: int) -> None:
        """Delete an account together with all of its transactions."""
        data = self._load()
        remaining = [a for a in data["accounts"] if a["id"] != account_id]
        if len(remaining) == len(data["accounts"]):
            raise KeyError(f"Unknown account id: {account_id}")

        data["accounts"] = remaining
        data["transactions"] = [t for t in data["transactions"] if t["account_id"] != account_id]
        self._write(data)

    # ── Transactions ─────────────────────────────────────

    def get_transactions(self, account_id: int) -> list[Transaction]:
        """Return an account's transactions, newest first."""
        data = self._load()
        transactions = [
            self._to_transaction(t) for t in data["transactions"] if t["account_id"] == account_id
        ]
        return sorted(transactions, key=lambda t: t.transaction_date, reverse=True)

    def get_ledger(self, account_id: int) -> list[Transaction]:
        """Return an account's transactions in the order they were recorded."""
        data = self._load()
        return [self._to_transaction(t) for t in data["transactions"] if t["account_id"] == account_id]

    def add_transaction(
        self,
        account_id: int,
        symbol: str,
        transaction_type: Any,
        quantity: Any,
        price: Any,
        transaction_date: date | str,
    ) -> Transaction:
        """Validate and record a transaction.

        The symbol is uppercased and stripped before it is stored.

        Raises:
            KeyError: If the account does not exist.
            ValueError: If the type, quantity, price or date is invalid.
        """
        data = self._load()
        if not any(a["id"] == account_id for a in data["accounts"]):
            raise KeyError(f"Unknown account id: {account_id}")

        txn = make_transaction(
            data["next_transaction_id"],
            account_id,
            symbol,
            transaction_type,
            quantity,
            price,
            transaction_date,
        )

        data["transactions"].append(txn.to_dict())
        data["next_transaction_id"] += 1
        self._write(data)
        return txn

    def import_transactions(self, account_id: int, transactions: list[Transaction]) -> list[Transaction]:
        """Append already-parsed transactions to an account, assigning new ids."""
        data = self._load()
        if not any(a["id"] == account_id for a in data["accounts"]):
            raise KeyError(f"Unknown account id: {account_id}")

        imported: list[Transaction] = []
        for source in transactions:
            txn = Transaction(
                id=data["next_transaction_id"],
                account_id=account_id,
                symbol=source.symbol,
                transaction_type=source.transaction_type,
                quantity=source.quantity,
                price=source.price,
                transaction_date=source.transaction_date,
            )
            data["transactions"].append(txn.to_dict())
            data["next_transaction_id"] += 1
            imported.append(txn)

        self._write(data)
        return imported

    def delete_transaction(self, transaction_id: int) -> None:
        data = self._load()
        remaining = [t for t in data["transactions"] if t["id"] != transaction_id]
        if len(remaining) == len(data["transactions"]):
            raise KeyError(f"Unknown transaction id: {transaction_id}")

        data["transactions"] = remaining
        self._write(data)

    def get_holdings(self, account_id: int) -> list[Holding]:
        """Replay an account's ledger into its current holdings."""
        return get_holdings(self.get_ledger(account_id))
