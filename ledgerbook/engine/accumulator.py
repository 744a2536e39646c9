"""
Balance Accumulator

Folds an opening balance and a client's entries into a running balance
trail:

    R_i = B0 + sum(debit_j - credit_j for j <= i)

Entries are ordered by (entry_date, id). The id tie-break follows
insertion order, so two entries on the same day always fold the same way.

This module is pure arithmetic over Decimal. It never reads or writes
storage; recalculation of stored balances lives in the service layer.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Optional

from ledgerbook.models.ledger import Transaction, ValidationIssue
from ledgerbook.models.reports import LedgerRow
from ledgerbook.validation import LedgerValidationError


def sort_ledger_order(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Return entries in ledger order: (entry_date ASC, id ASC)."""
    return sorted(transactions, key=lambda t: t.ledger_key)


def _check_single_client(
    transactions: Sequence[Transaction],
    client_id: Optional[int],
) -> None:
    expected = client_id if client_id is not None else transactions[0].client_id
    strays = sorted({t.client_id for t in transactions if t.client_id != expected})
    if strays:
        raise LedgerValidationError([
            ValidationIssue(
                field="client_id",
                issue_type="mixed_clients",
                message=f"Entries for clients {strays} passed to a balance fold for client {expected}",
                severity="error",
            )
        ])


def compute_running_balances(
    transactions: Sequence[Transaction],
    opening_balance: Decimal,
    client_id: Optional[int] = None,
) -> list[LedgerRow]:
    """
    Annotate each entry with its running balance.

    Args:
        transactions: One client's entries, already in ledger order
        opening_balance: The client's balance before any entry
        client_id: If given, every entry must belong to this client

    Returns:
        One LedgerRow per entry, same length and order as the input.
    """
    if not transactions:
        return []

    _check_single_client(transactions, client_id)

    rows = []
    balance = opening_balance
    for transaction in transactions:
        balance += transaction.debit - transaction.credit
        rows.append(LedgerRow(transaction=transaction, running_balance=balance))
    return rows


def balance_pairs(rows: Iterable[LedgerRow]) -> list[tuple[int, Decimal]]:
    """(transaction_id, running_balance) pairs for a stored-balance write-back."""
    return [(row.transaction.id, row.running_balance) for row in rows]


def final_balance(rows: Sequence[LedgerRow], opening_balance: Decimal) -> Decimal:
    """Balance after the last row, or the opening balance when there are none."""
    if not rows:
        return opening_balance
    return rows[-1].running_balance
