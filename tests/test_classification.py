"""Tests for client balances and debtor/creditor classification."""

import pytest
from datetime import date
from decimal import Decimal

from conftest import make_client, make_txn
from ledgerbook.engine import (
    classify_clients,
    compute_client_balance,
    compute_client_balances,
)


@pytest.fixture
def book():
    """Four clients: one debtor, two creditors, one square."""
    clients = [
        make_client(1, "Asha", opening="100.00"),
        make_client(2, "bharat", opening="0.00"),
        make_client(3, "Chetan", opening="-50.00"),
        make_client(4, "Deepa", opening="0.00"),
    ]
    txns = [
        make_txn(1, date(2024, 1, 1), debit="400.00", client_id=1),
        make_txn(2, date(2024, 1, 2), credit="150.00", client_id=1),
        make_txn(3, date(2024, 1, 1), credit="900.00", client_id=2),
        make_txn(4, date(2024, 1, 3), debit="20.00", client_id=3),
        make_txn(5, date(2024, 1, 3), debit="75.00", client_id=4),
        make_txn(6, date(2024, 1, 4), credit="75.00", client_id=4),
    ]
    return clients, txns


class TestClientBalance:
    """Tests for compute_client_balance."""

    def test_totals(self, book):
        """Test opening + debits - credits."""
        clients, txns = book
        balance = compute_client_balance(clients[0], txns)
        assert balance.total_debit == Decimal("400.00")
        assert balance.total_credit == Decimal("150.00")
        assert balance.current_balance == Decimal("350.00")
        assert balance.transaction_count == 2

    def test_client_without_entries(self):
        """Test that a client with no entries sits at its opening balance."""
        balance = compute_client_balance(make_client(1, opening="-40.00"), [])
        assert balance.current_balance == Decimal("-40.00")
        assert balance.transaction_count == 0

    def test_balances_sorted_by_name(self, book):
        """Test case-insensitive name order."""
        clients, txns = book
        names = [b.client_name for b in compute_client_balances(clients, txns)]
        assert names == ["Asha", "bharat", "Chetan", "Deepa"]


class TestClassification:
    """Tests for classify_clients."""

    def test_partition(self, book):
        """Test that every client lands in exactly one bucket, or none when square."""
        clients, txns = book
        result = classify_clients(clients, txns)

        assert [b.client_id for b in result.debtors] == [1]
        assert [b.client_id for b in result.creditors] == [2, 3]
        assert all(b.current_balance > 0 for b in result.debtors)
        assert all(b.current_balance < 0 for b in result.creditors)

        listed = {b.client_id for b in result.debtors} | {b.client_id for b in result.creditors}
        assert 4 not in listed

    def test_creditors_most_negative_first(self, book):
        """Test creditor ordering."""
        clients, txns = book
        result = classify_clients(clients, txns)
        assert [b.current_balance for b in result.creditors] == [
            Decimal("-900.00"),
            Decimal("-30.00"),
        ]

    def test_debtors_largest_first_ties_by_id(self):
        """Test debtor ordering with a tie."""
        clients = [
            make_client(1, "A", opening="10.00"),
            make_client(2, "B", opening="50.00"),
            make_client(3, "C", opening="50.00"),
        ]
        result = classify_clients(clients, [])
        assert [b.client_id for b in result.debtors] == [2, 3, 1]

    def test_totals(self, book):
        """Test receivable, payable and net position."""
        clients, txns = book
        result = classify_clients(clients, txns)
        assert result.total_receivable == Decimal("350.00")
        assert result.total_payable == Decimal("930.00")
        assert result.net_position == Decimal("-580.00")

    def test_empty_book(self):
        """Test that no clients give two empty lists."""
        result = classify_clients([], [])
        assert result.debtors == []
        assert result.creditors == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
