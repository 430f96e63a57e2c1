"""Transaction ledger model and the average-cost accounting engine."""

from __future__ import annotations

import json
import os
import warnings
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

import pandas as pd
from openpyxl import Workbook

ZERO = Decimal("0")

# Trailing windows (in months) shown in the realized profit summary.
DEFAULT_PROFIT_WINDOWS: tuple[int, ...] = (1, 6, 12)

EXCEL_HEADERS = ["SYMBOL", "DATE", "TRANSACTION TYPE", "PRICE", "QUANTITY"]


class TransactionType(Enum):
    """Enumeration of supported ledger transaction types."""

    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class Transaction:
    """A single buy or sell of an instrument, as stored in the ledger."""

    id: int
    account_id: int
    symbol: str
    transaction_type: TransactionType
    quantity: Decimal
    price: Decimal
    transaction_date: date

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "symbol": self.symbol,
            "type": self.transaction_type.value,
            "quantity": str(self.quantity),
            "price": str(self.price),
            "date": self.transaction_date.isoformat(),
        }


@dataclass
class HoldingState:
    """Running per-symbol state while a ledger is being replayed.

    ``total_cost`` is the cost basis of the currently open position only.
    ``realized_pnl`` accumulates over the symbol's whole history.
    """

    symbol: str
    quantity: Decimal = field(default=ZERO)
    total_cost: Decimal = field(default=ZERO)
    avg_price: Decimal = field(default=ZERO)
    realized_pnl: Decimal = field(default=ZERO)


@dataclass(frozen=True)
class Holding:
    """Externally visible view of a symbol after replay and projection."""

    symbol: str
    quantity: Decimal
    total_cost: Decimal
    avg_price: Decimal
    realized_pnl: Decimal

    @property
    def is_open(self) -> bool:
        return self.quantity > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "quantity": float(self.quantity),
            "total_cost": float(self.total_cost),
            "avg_price": float(self.avg_price),
            "realized_pnl": float(self.realized_pnl),
        }


def _is_missing(value: Any) -> bool:
    """True for None and for blank spreadsheet cells (NaN, NaT)."""
    return value is None or (pd.api.types.is_scalar(value) and bool(pd.isna(value)))


def parse_transaction_type(value: Any) -> TransactionType:
    """Parse a raw transaction type ("buy", "SELL", ...) into a TransactionType.

    Raises:
        ValueError: If the value is not BUY or SELL.
    """
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(str(value).strip().upper())
    except ValueError:
        raise ValueError(
            f"Unsupported transaction type: {value!r} (expected BUY or SELL)"
        ) from None


def parse_transaction_date(value: Any) -> date:
    """Parse a calendar date from a date, datetime or ISO string.

    Any time component is discarded.
    """
    if _is_missing(value):
        raise ValueError("Transaction date is missing")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise ValueError(f"Invalid transaction date: {value!r}") from None


def sort_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Sort transactions by date, oldest first.

    The sort is stable: transactions sharing a date keep their input order,
    so callers must supply same-day trades in the order they happened.
    """
    return sorted(transactions, key=lambda t: t.transaction_date)


def apply_transaction(state: HoldingState, txn: Transaction) -> Decimal:
    """Apply one transaction to a symbol's running state.

    Uses the average-cost method. A sale is valued at the average price held
    before the sale. When a sale leaves the position at or below zero the
    cost basis resets to zero; an oversell is not rejected and leaves a
    negative quantity.

    Args:
        state: The running state for ``txn.symbol``. Mutated in place.
        txn: The transaction to apply.

    Returns:
        The realized profit produced by this transaction (zero for a buy).

    Raises:
        ValueError: If the transaction type is neither BUY nor SELL.
    """
    quantity = txn.quantity
    price = txn.price

    if txn.transaction_type is TransactionType.BUY:
        state.quantity += quantity
        state.total_cost += quantity * price
        state.avg_price = state.total_cost / state.quantity if state.quantity > 0 else ZERO
        return ZERO

    if txn.transaction_type is TransactionType.SELL:
        if quantity > state.quantity:
            warnings.warn(
                f"Oversell of {txn.symbol} on {txn.transaction_date.isoformat()}: "
                f"selling {quantity} with only {state.quantity} held. "
                f"Cost basis is reset and quantity goes negative.",
                UserWarning,
            )

        cost_of_sold = quantity * state.avg_price
        profit = quantity * price - cost_of_sold

        state.realized_pnl += profit
        state.quantity -= quantity
        state.total_cost -= cost_of_sold

        if state.quantity <= 0:
            state.total_cost = ZERO
            state.avg_price = ZERO

        return profit

    raise ValueError(
        f"Unsupported transaction type {txn.transaction_type!r} in transaction {txn.id}"
    )


def replay_ledger(transactions: Iterable[Transaction]) -> dict[str, HoldingState]:
    """Fold a transaction ledger into per-symbol holding state.

    Args:
        transactions: The ledger of one account, in any order.

    Returns:
        A dictionary mapping symbol to its HoldingState after every
        transaction has been applied in chronological order.
    """
    states: dict[str, HoldingState] = {}

    for txn in sort_transactions(transactions):
        state = states.get(txn.symbol)
        if state is None:
            state = states[txn.symbol] = HoldingState(symbol=txn.symbol)
        apply_transaction(state, txn)

    return states


def project_holdings(states: dict[str, HoldingState]) -> list[Holding]:
    """Turn replayed state into the list of holdings worth showing.

    Symbols that are fully closed and never produced a profit or loss are
    dropped. Closed positions with a nonzero realized P&L are kept.

    Returns:
        Holdings sorted by symbol.
    """
    holdings: list[Holding] = []
    for symbol in sorted(states):
        state = states[symbol]
        if state.quantity <= 0 and state.realized_pnl == 0:
            continue
        holdings.append(Holding(
            symbol=state.symbol,
            quantity=state.quantity,
            total_cost=state.total_cost,
            avg_price=state.avg_price,
            realized_pnl=state.realized_pnl,
        ))
    return holdings


def get_holdings(transactions: Iterable[Transaction]) -> list[Holding]:
    """Replay a ledger and project it into holdings."""
    return project_holdings(replay_ledger(transactions))


def subtract_months(day: date, months: int) -> date:
    """Step a calendar date back by a number of months.

    When the day of month does not exist in the target month, the date rolls
    forward by the excess days (2026-03-31 minus one month is 2026-03-03).
    """
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    return date(year, month + 1, 1) + timedelta(days=day.day - 1)


def calculate_period_profit(
    transactions: Iterable[Transaction],
    months: int,
    as_of: date | None = None,
) -> Decimal:
    """Calculate the realized profit of sales in a trailing window.

    The entire ledger is replayed so that the cost basis of each sale reflects
    every earlier buy and sell, including those before the window. Only sales
    dated on or after the cutoff contribute to the total.

    Args:
        transactions: The ledger of one account, in any order.
        months: Length of the trailing window in calendar months.
        as_of: The date the window ends on. Defaults to today.

    Returns:
        The summed realized profit of in-window sales.
    """
    if months < 0:
        raise ValueError(f"Window length must not be negative, got {months}")

    cutoff = subtract_months(as_of or date.today(), months)

    states: dict[str, HoldingState] = {}
    total = ZERO

    for txn in sort_transactions(transactions):
        state = states.get(txn.symbol)
        if state is None:
            state = states[txn.symbol] = HoldingState(symbol=txn.symbol)

        profit = apply_transaction(state, txn)

        if txn.transaction_type is TransactionType.SELL and txn.transaction_date >= cutoff:
            total += profit

    return total


def calculate_period_profits(
    transactions: Iterable[Transaction],
    windows: Iterable[int] = DEFAULT_PROFIT_WINDOWS,
    as_of: date | None = None,
) -> dict[int, Decimal]:
    """Calculate the realized profit for several trailing windows.

    Each window runs its own independent replay.

    Returns:
        A dictionary mapping window length in months to realized profit.
    """
    ledger = list(transactions)
    as_of = as_of or date.today()
    return {months: calculate_period_profit(ledger, months, as_of) for months in windows}


def make_transaction(
    txn_id: int,
    account_id: int,
    symbol: Any,
    raw_type: Any,
    raw_quantity: Any,
    raw_price: Any,
    raw_date: Any,
) -> Transaction:
    """Build a validated Transaction from raw field values.

    This is the ingestion check for every ledger source: the symbol is
    uppercased, the type must be BUY or SELL, and quantity and price must be
    positive numbers.

    Raises:
        ValueError: If any field is invalid.
    """
    if _is_missing(symbol):
        raise ValueError(f"Transaction {txn_id} has an empty symbol")
    symbol_str = str(symbol).strip().upper()
    if not symbol_str:
        raise ValueError(f"Transaction {txn_id} has an empty symbol")

    try:
        quantity = Decimal(str(raw_quantity))
        price = Decimal(str(raw_price))
    except ArithmeticError:
        raise ValueError(
            f"Transaction {txn_id} has a non-numeric quantity or price"
        ) from None

    if not quantity.is_finite() or quantity <= 0:
        raise ValueError(f"Transaction {txn_id} must have a positive quantity, got {raw_quantity!r}")
    if not price.is_finite() or price <= 0:
        raise ValueError(f"Transaction {txn_id} must have a positive price, got {raw_price!r}")

    return Transaction(
        id=txn_id,
        account_id=account_id,
        symbol=symbol_str,
        transaction_type=parse_transaction_type(raw_type),
        quantity=quantity,
        price=price,
        transaction_date=parse_transaction_date(raw_date),
    )


def load_transactions_from_excel(file_path: str, account_id: int = 0) -> list[Transaction]:
    """
    Load a transaction ledger from an Excel file.

    Args:
        file_path: Path to the Excel file.
        account_id: Account the loaded transactions are assigned to.

    Returns:
        Transactions in file order, numbered from 1.

    Expected Excel columns (order independent):
        - SYMBOL: Instrument symbol
        - DATE: Trade date (ISO format or an Excel date cell)
        - TRANSACTION TYPE: BUY or SELL
        - PRICE: Per-unit price
        - QUANTITY: Number of units
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Ledger file not found: {file_path}")

    df = pd.read_excel(file_path)
    if df.empty:
        return []

    missing_columns = set(EXCEL_HEADERS) - set(df.columns)
    if missing_columns:
        raise ValueError(f"Missing required columns: {sorted(missing_columns)}")

    transactions: list[Transaction] = []
    for txn_id, (_, row) in enumerate(df.iterrows(), start=1):
        transactions.append(make_transaction(
            txn_id,
            account_id,
            row["SYMBOL"],
            row["TRANSACTION TYPE"],
            row["QUANTITY"],
            row["PRICE"],
            row["DATE"],
        ))

    return transactions


def save_transactions_to_excel(transactions: Iterable[Transaction], file_path: str) -> None:
    """Write transactions to an Excel file with the ledger headers."""
    wb = Workbook()
    ws = wb.active
    assert ws is not None

    for col, header in enumerate(EXCEL_HEADERS, start=1):
        ws.cell(row=1, column=col, value=header)

    for row, txn in enumerate(transactions, start=2):
        ws.cell(row=row, column=1, value=txn.symbol)
        ws.cell(row=row, column=2, value=txn.transaction_date.isoformat())
        ws.cell(row=row, column=3, value=txn.transaction_type.value)
        ws.cell(row=row, column=4, value=float(txn.price))
        ws.cell(row=row, column=5, value=float(txn.quantity))

    wb.save(file_path)


def load_transactions_from_json(file_path: str, account_id: int = 0) -> list[Transaction]:
    """
    Load a transaction ledger from a JSON file.

    Expected JSON structure:
        [
            {
                "symbol": "RELIANCE",
                "date": "2025-01-15",
                "type": "BUY",
                "price": 2500.5,
                "quantity": 10
            },
            ...
        ]
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Ledger file not found: {file_path}")

    with open(file_path, "r") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError("JSON file must contain a list of transactions")

    transactions: list[Transaction] = []
    for txn_id, item in enumerate(data, start=1):
        try:
            transactions.append(make_transaction(
                txn_id,
                account_id,
                item["symbol"],
                item["type"],
                item["quantity"],
                item["price"],
                item["date"],
            ))
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed transaction #{txn_id} in {file_path}: {e}") from e

    return transactions


def save_transactions_to_json(transactions: Iterable[Transaction], file_path: str) -> None:
    """Write transactions to a JSON file readable by load_transactions_from_json."""
    data = []
    for txn in transactions:
        data.append({
            "symbol": txn.symbol,
            "date": txn.transaction_date.isoformat(),
            "type": txn.transaction_type.value,
            "price": str(txn.price),
            "quantity": str(txn.quantity),
        })

    with open(file_path, "w") as f:
        json.dump(data, f, indent=2)
