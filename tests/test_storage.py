"""Tests for the JSON ledger store."""

import json
from datetime import date
from decimal import Decimal

import pytest

from fintrack.portfolio import TransactionType
from fintrack.storage import LedgerStore, get_default_data_file


@pytest.fixture
def store(tmp_path):
    return LedgerStore(tmp_path / "ledger.json")


class TestAccounts:
    """Tests for account management."""

    def test_new_file_is_seeded_with_default_accounts(self, store):
        assert [a.name for a in store.get_accounts()] == ["Account 1", "Account 2"]
        assert [a.id for a in store.get_accounts()] == [1, 2]
        assert store.file_path.exists()

    def test_no_seeding_when_disabled(self, tmp_path):
        assert LedgerStore(tmp_path / "empty.json", default_accounts=()).get_accounts() == []

    def test_deleting_every_account_does_not_reseed(self, store):
        for account in store.get_accounts():
            store.delete_account(account.id)

        assert store.get_accounts() == []
        assert LedgerStore(store.file_path).get_accounts() == []

    def test_add_account(self, store):
        account = store.add_account("  Retirement ")
        assert account.name == "Retirement"
        assert account.id == 3
        assert store.get_account(3).name == "Retirement"

    def test_add_account_rejects_blank_and_duplicate_names(self, store):
        with pytest.raises(ValueError, match="must not be blank"):
            store.add_account("   ")
        with pytest.raises(ValueError, match="already exists"):
            store.add_account("Account 1")

    def test_account_ids_are_never_reused(self, store):
        store.delete_account(2)
        assert store.add_account("Trading").id == 3

    def test_rename_account(self, store):
        assert store.rename_account(1, "Long term").name == "Long term"
        assert store.get_account(1).name == "Long term"

        with pytest.raises(ValueError, match="already exists"):
            store.rename_account(1, "Account 2")
        with pytest.raises(KeyError, match="Unknown account id"):
            store.rename_account(42, "Nope")

    def test_get_unknown_account(self, store):
        with pytest.raises(KeyError, match="Unknown account id: 9"):
            store.get_account(9)

    def test_delete_account_cascades_to_transactions(self, store):
        store.add_transaction(1, "TCS", "BUY", "1", "4000", "2026-01-02")
        kept = store.add_transaction(2, "INFY", "BUY", "1", "1500", "2026-01-02")

        store.delete_account(1)

        data = json.loads(store.file_path.read_text())
        assert [t["id"] for t in data["transactions"]] == [kept.id]
        with pytest.raises(KeyError):
            store.delete_account(1)


class TestTransactions:
    """Tests for recording and reading transactions."""

    def test_add_transaction_normalizes_and_persists(self, store):
        txn = store.add_transaction(1, " reliance ", "buy", 10, "2500.50", date(2026, 1, 15))

        assert txn.id == 1
        assert txn.symbol == "RELIANCE"
        assert txn.transaction_type is TransactionType.BUY

        reloaded = LedgerStore(store.file_path).get_transactions(1)
        assert reloaded == [txn]
        assert reloaded[0].price == Decimal("2500.50")

    def test_add_transaction_to_unknown_account(self, store):
        with pytest.raises(KeyError):
            store.add_transaction(7, "TCS", "BUY", "1", "10", "2026-01-01")

    @pytest.mark.parametrize(
        "transaction_type, quantity, price, day",
        [
            ("DIVIDEND", "1", "10", "2026-01-01"),
            ("BUY", "-5", "10", "2026-01-01"),
            ("SELL", "1", "0", "2026-01-01"),
            ("BUY", "1", "10", "yesterday"),
        ],
    )
    def test_invalid_transactions_are_rejected(self, store, transaction_type, quantity, price, day):
        with pytest.raises(ValueError):
            store.add_transaction(1, "TCS", transaction_type, quantity, price, day)
        assert store.get_transactions(1) == []

    def test_transactions_listed_newest_first(self, store):
        store.add_transaction(1, "A", "BUY", "1", "1", "2026-01-01")
        store.add_transaction(1, "B", "BUY", "1", "1", "2026-03-01")
        store.add_transaction(1, "C", "BUY", "1", "1", "2026-02-01")
        store.add_transaction(2, "D", "BUY", "1", "1", "2026-04-01")

        assert [t.symbol for t in store.get_transactions(1)] == ["B", "C", "A"]
        assert [t.symbol for t in store.get_ledger(1)] == ["A", "B", "C"]

    def test_same_day_trades_replay_in_recorded_order(self, store):
        store.add_transaction(1, "SBIN", "BUY", "10", "100", "2026-01-01")
        store.add_transaction(1, "SBIN", "SELL", "10", "150", "2026-01-02")
        store.add_transaction(1, "SBIN", "BUY", "10", "200", "2026-01-02")

        [holding] = store.get_holdings(1)
        assert holding.avg_price == Decimal("200")
        assert holding.realized_pnl == Decimal("500")

    def test_delete_transaction(self, store):
        first = store.add_transaction(1, "TCS", "BUY", "2", "100", "2026-01-01")
        store.add_transaction(1, "TCS", "SELL", "1", "120", "2026-02-01")

        store.delete_transaction(2)

        assert store.get_transactions(1) == [first]
        with pytest.raises(KeyError, match="Unknown transaction id"):
            store.delete_transaction(2)

    def test_transaction_ids_are_never_reused(self, store):
        store.add_transaction(1, "TCS", "BUY", "1", "1", "2026-01-01")
        store.delete_transaction(1)
        assert store.add_transaction(1, "TCS", "BUY", "1", "1", "2026-01-01").id == 2

    def test_import_transactions_assigns_new_ids(self, store):
        store.add_transaction(1, "TCS", "BUY", "1", "1", "2026-01-01")
        source = store.get_ledger(1)

        imported = store.import_transactions(2, source)

        assert [t.id for t in imported] == [2]
        assert imported[0].account_id == 2
        assert store.get_ledger(2) == imported

    def test_holdings_per_account(self, store):
        store.add_transaction(1, "TCS", "BUY", "4", "100", "2026-01-01")
        store.add_transaction(2, "TCS", "BUY", "1", "999", "2026-01-01")

        [holding] = store.get_holdings(1)
        assert holding.quantity == Decimal("4")
        assert holding.avg_price == Decimal("100")


def test_default_data_file_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("FINTRACK_DATA_FILE", str(tmp_path / "custom.json"))
    assert get_default_data_file() == tmp_path / "custom.json"


def test_rejects_non_object_ledger_file(tmp_path):
    path = tmp_path / "ledger.json"
    path.write_text("[]")
    with pytest.raises(ValueError, match="not a JSON object"):
        LedgerStore(path).get_accounts()
