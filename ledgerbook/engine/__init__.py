"""
Ledger computation engine.

Pure, synchronous functions over in-memory sequences. Callers fetch data
from a store and pass it in; nothing here performs I/O.
"""

from ledgerbook.engine.accumulator import (
    balance_pairs,
    compute_running_balances,
    final_balance,
    sort_ledger_order,
)
from ledgerbook.engine.aggregation import (
    aggregate_by_account,
    aggregate_by_date,
    aggregate_by_month,
    filter_by_window,
    month_start,
    summarize_date_range,
)
from ledgerbook.engine.classification import (
    classify_clients,
    compute_client_balance,
    compute_client_balances,
    split_by_balance,
)
from ledgerbook.engine.statement import build_statement

__all__ = [
    # Accumulator
    "balance_pairs",
    "compute_running_balances",
    "final_balance",
    "sort_ledger_order",
    # Aggregation
    "aggregate_by_account",
    "aggregate_by_date",
    "aggregate_by_month",
    "filter_by_window",
    "month_start",
    "summarize_date_range",
    # Classification
    "classify_clients",
    "compute_client_balance",
    "compute_client_balances",
    "split_by_balance",
    # Statement
    "build_statement",
]
