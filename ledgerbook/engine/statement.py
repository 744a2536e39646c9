"""
Ledger Statement Assembler

Builds a client's statement for an inclusive date window.

The running balance is always computed over the client's FULL history,
seeded with the opening balance. The window only decides which rows are
displayed, so the first displayed balance already includes every earlier
entry.

No NET placeholders get no special treatment here: they contribute
0 / 0 until they are completed through the normal update path.
"""

from collections.abc import Sequence
from datetime import date

from ledgerbook.engine.accumulator import (
    compute_running_balances,
    sort_ledger_order,
)
from ledgerbook.models.ledger import ZERO, Client, Transaction
from ledgerbook.models.reports import LedgerStatement
from ledgerbook.validation import validate_date_range


def build_statement(
    client: Client,
    transactions: Sequence[Transaction],
    date_from: date,
    date_to: date,
) -> LedgerStatement:
    """
    Assemble the statement rows, totals and balances.

    Args:
        client: The statement's client
        transactions: ALL of the client's entries, any order
        date_from: First date to display (inclusive)
        date_to: Last date to display (inclusive)

    Returns:
        LedgerStatement whose closing balance is the last displayed
        running balance, or the opening balance when no row is displayed.
    """
    validate_date_range(date_from, date_to)

    history = compute_running_balances(
        sort_ledger_order(transactions),
        client.opening_balance,
        client_id=client.id,
    )

    brought_forward = client.opening_balance
    rows = []
    for row in history:
        day = row.transaction.entry_date
        if day < date_from:
            brought_forward = row.running_balance
        elif day <= date_to:
            rows.append(row)
        else:
            break

    total_debit = sum((r.debit for r in rows), ZERO)
    total_credit = sum((r.credit for r in rows), ZERO)
    closing = rows[-1].running_balance if rows else client.opening_balance

    return LedgerStatement(
        client_id=client.id,
        client_name=client.client_name,
        date_from=date_from,
        date_to=date_to,
        opening_balance=client.opening_balance,
        balance_brought_forward=brought_forward,
        rows=rows,
        total_debit=total_debit,
        total_credit=total_credit,
        closing_balance=closing,
    )
