"""Tests for trailing-window realized profit."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from fintrack.portfolio import (
    Transaction,
    TransactionType,
    calculate_period_profit,
    calculate_period_profits,
    replay_ledger,
    subtract_months,
)

AS_OF = date(2026, 10, 16)


def days_ago(n: int) -> date:
    return AS_OF - timedelta(days=n)


def make_txn(txn_id, symbol, transaction_type, quantity, price, day):
    return Transaction(
        id=txn_id,
        account_id=1,
        symbol=symbol,
        transaction_type=transaction_type,
        quantity=Decimal(quantity),
        price=Decimal(price),
        transaction_date=day,
    )


@pytest.mark.parametrize(
    "day, months, expected",
    [
        (date(2026, 10, 16), 1, date(2026, 9, 16)),
        (date(2026, 10, 16), 6, date(2026, 4, 16)),
        (date(2026, 10, 16), 12, date(2025, 10, 16)),
        (date(2026, 1, 15), 1, date(2025, 12, 15)),
        (date(2026, 10, 16), 0, date(2026, 10, 16)),
        # Missing days roll over into the following month.
        (date(2026, 3, 31), 1, date(2026, 3, 3)),
        (date(2024, 3, 31), 1, date(2024, 3, 2)),
        (date(2026, 12, 31), 6, date(2026, 7, 1)),
    ],
)
def test_subtract_months(day, months, expected):
    assert subtract_months(day, months) == expected


class TestCalculatePeriodProfit:
    """Tests for calculate_period_profit()."""

    def test_empty_ledger(self):
        assert calculate_period_profit([], 1, AS_OF) == Decimal("0")
        assert calculate_period_profits([], as_of=AS_OF) == {1: Decimal("0"), 6: Decimal("0"), 12: Decimal("0")}

    def test_cost_basis_carries_in_from_before_the_window(self):
        ledger = [
            make_txn(1, "TCS", TransactionType.BUY, "20", "100", days_ago(800)),
            make_txn(2, "TCS", TransactionType.SELL, "10", "150", days_ago(400)),
            make_txn(3, "TCS", TransactionType.SELL, "10", "130", days_ago(10)),
        ]

        assert calculate_period_profit(ledger, 1, AS_OF) == Decimal("300")
        assert calculate_period_profit(ledger, 6, AS_OF) == Decimal("300")
        assert calculate_period_profit(ledger, 12, AS_OF) == Decimal("300")
        assert calculate_period_profit(ledger, 24, AS_OF) == Decimal("800")

    def test_rebuy_after_liquidation_inside_window(self):
        ledger = [
            make_txn(1, "INFY", TransactionType.BUY, "10", "100", days_ago(800)),
            make_txn(2, "INFY", TransactionType.SELL, "10", "150", days_ago(400)),
            make_txn(3, "INFY", TransactionType.BUY, "10", "200", days_ago(20)),
            make_txn(4, "INFY", TransactionType.SELL, "5", "220", days_ago(5)),
        ]

        assert calculate_period_profit(ledger, 1, AS_OF) == Decimal("100")
        assert calculate_period_profit(ledger, 12, AS_OF) == Decimal("100")
        assert calculate_period_profit(ledger, 36, AS_OF) == Decimal("600")

    def test_buys_in_window_contribute_nothing(self):
        ledger = [make_txn(1, "ITC", TransactionType.BUY, "10", "400", days_ago(3))]
        assert calculate_period_profit(ledger, 1, AS_OF) == Decimal("0")

    def test_long_window_matches_total_realized(self):
        ledger = [
            make_txn(1, "A", TransactionType.BUY, "10", "10", days_ago(300)),
            make_txn(2, "B", TransactionType.BUY, "4", "50", days_ago(200)),
            make_txn(3, "A", TransactionType.SELL, "3", "12", days_ago(100)),
            make_txn(4, "B", TransactionType.SELL, "4", "40", days_ago(50)),
        ]

        total_realized = sum(s.realized_pnl for s in replay_ledger(ledger).values())
        assert calculate_period_profit(ledger, 120, AS_OF) == total_realized
        assert total_realized == Decimal("6") - Decimal("40")

    def test_cutoff_is_inclusive(self):
        as_of = date(2026, 3, 31)
        ledger = [
            make_txn(1, "SBIN", TransactionType.BUY, "10", "100", date(2026, 1, 1)),
            make_txn(2, "SBIN", TransactionType.SELL, "1", "110", date(2026, 3, 2)),
            make_txn(3, "SBIN", TransactionType.SELL, "1", "130", date(2026, 3, 3)),
        ]

        assert calculate_period_profit(ledger, 1, as_of) == Decimal("30")

    def test_negative_window_is_rejected(self):
        with pytest.raises(ValueError, match="must not be negative"):
            calculate_period_profit([], -1, AS_OF)

    def test_windows_are_monotonic_for_profitable_sales(self):
        ledger = [
            make_txn(1, "HDFC", TransactionType.BUY, "30", "100", days_ago(500)),
            make_txn(2, "HDFC", TransactionType.SELL, "10", "120", days_ago(300)),
            make_txn(3, "HDFC", TransactionType.SELL, "10", "140", days_ago(90)),
            make_txn(4, "HDFC", TransactionType.SELL, "10", "160", days_ago(7)),
        ]

        profits = calculate_period_profits(ledger, (1, 6, 12), AS_OF)
        assert profits == {1: Decimal("600"), 6: Decimal("1000"), 12: Decimal("1200")}
        assert profits[1] <= profits[6] <= profits[12]


def test_calculate_period_profits_default_windows():
    ledger = [
        make_txn(1, "TCS", TransactionType.BUY, "2", "100", days_ago(30)),
        make_txn(2, "TCS", TransactionType.SELL, "2", "90", days_ago(1)),
    ]
    assert calculate_period_profits(ledger, as_of=AS_OF) == {
        1: Decimal("-20"),
        6: Decimal("-20"),
        12: Decimal("-20"),
    }
