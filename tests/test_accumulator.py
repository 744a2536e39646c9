"""Tests for the running-balance fold."""

import pytest
from datetime import date
from decimal import Decimal

from conftest import make_txn
from ledgerbook.engine import (
    balance_pairs,
    compute_running_balances,
    final_balance,
    sort_ledger_order,
)
from ledgerbook.validation import LedgerValidationError


class TestRunningBalances:
    """Tests for compute_running_balances."""

    def test_three_entry_example(self):
        """Test the worked example: opening 1000, then +500, -300, +200."""
        txns = [
            make_txn(1, date(2024, 1, 1), debit="500.00"),
            make_txn(2, date(2024, 1, 2), credit="300.00"),
            make_txn(3, date(2024, 1, 3), debit="200.00"),
        ]
        rows = compute_running_balances(txns, Decimal("1000.00"))
        assert [r.running_balance for r in rows] == [
            Decimal("1500.00"),
            Decimal("1200.00"),
            Decimal("1400.00"),
        ]

    def test_each_step_adds_debit_minus_credit(self):
        """Test R_i - R_(i-1) == debit_i - credit_i and R_0 == B0 + d_0 - c_0."""
        opening = Decimal("-250.00")
        txns = [
            make_txn(1, date(2024, 3, 1), debit="100.00", credit="20.00"),
            make_txn(2, date(2024, 3, 1), credit="75.50"),
            make_txn(3, date(2024, 3, 4), account="No NET"),
            make_txn(4, date(2024, 3, 9), debit="0.01"),
        ]
        rows = compute_running_balances(txns, opening)

        assert rows[0].running_balance == opening + Decimal("80.00")
        for prev, row in zip(rows, rows[1:]):
            assert row.running_balance - prev.running_balance == row.debit - row.credit

    def test_final_balance_is_opening_plus_totals(self):
        """Test the last running balance against the column totals."""
        txns = [
            make_txn(1, date(2024, 1, 1), debit="10.10"),
            make_txn(2, date(2024, 1, 1), debit="20.20"),
            make_txn(3, date(2024, 1, 2), credit="5.05"),
        ]
        rows = compute_running_balances(txns, Decimal("3.00"))
        assert final_balance(rows, Decimal("3.00")) == Decimal("3.00") + Decimal("30.30") - Decimal("5.05")

    def test_no_float_drift(self):
        """Test that many small amounts add up exactly."""
        txns = [make_txn(i, date(2024, 1, 1), debit="0.10") for i in range(1, 101)]
        rows = compute_running_balances(txns, Decimal("0.00"))
        assert rows[-1].running_balance == Decimal("10.00")

    def test_empty_input(self):
        """Test that no entries give no rows, and the closing balance is the opening."""
        assert compute_running_balances([], Decimal("500.00")) == []
        assert final_balance([], Decimal("500.00")) == Decimal("500.00")

    def test_placeholder_contributes_nothing(self):
        """Test that a No NET entry repeats the previous balance."""
        txns = [
            make_txn(1, date(2024, 1, 1), debit="100.00"),
            make_txn(2, date(2024, 1, 2), account="No NET"),
        ]
        rows = compute_running_balances(txns, Decimal("0.00"))
        assert rows[0].running_balance == rows[1].running_balance

    def test_mixed_clients_rejected(self):
        """Test that entries of two clients are never folded together."""
        txns = [
            make_txn(1, date(2024, 1, 1), debit="100.00", client_id=1),
            make_txn(2, date(2024, 1, 2), debit="100.00", client_id=2),
        ]
        with pytest.raises(LedgerValidationError) as exc_info:
            compute_running_balances(txns, Decimal("0.00"))
        assert exc_info.value.issues[0].issue_type == "mixed_clients"

    def test_expected_client_checked(self):
        """Test that an explicit client id must match every entry."""
        txns = [make_txn(1, date(2024, 1, 1), debit="100.00", client_id=2)]
        with pytest.raises(LedgerValidationError):
            compute_running_balances(txns, Decimal("0.00"), client_id=1)


class TestLedgerOrder:
    """Tests for ordering and write-back pairs."""

    def test_same_day_ties_broken_by_id(self):
        """Test (entry_date, id) ordering regardless of input order."""
        txns = [
            make_txn(5, date(2024, 1, 2)),
            make_txn(3, date(2024, 1, 2)),
            make_txn(9, date(2024, 1, 1)),
        ]
        assert [t.id for t in sort_ledger_order(txns)] == [9, 3, 5]

    def test_order_is_deterministic(self):
        """Test that shuffled input folds to the same balances once sorted."""
        txns = [
            make_txn(1, date(2024, 1, 2), debit="10.00"),
            make_txn(2, date(2024, 1, 1), credit="4.00"),
            make_txn(3, date(2024, 1, 2), debit="1.00"),
        ]
        forward = compute_running_balances(sort_ledger_order(txns), Decimal("0.00"))
        backward = compute_running_balances(sort_ledger_order(reversed(txns)), Decimal("0.00"))
        assert balance_pairs(forward) == balance_pairs(backward)

    def test_balance_pairs(self):
        """Test (id, balance) pairs for persisting."""
        txns = [
            make_txn(1, date(2024, 1, 1), debit="10.00"),
            make_txn(2, date(2024, 1, 2), credit="4.00"),
        ]
        rows = compute_running_balances(txns, Decimal("0.00"))
        assert balance_pairs(rows) == [(1, Decimal("10.00")), (2, Decimal("6.00"))]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
