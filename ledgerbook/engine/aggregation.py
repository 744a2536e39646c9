"""
Aggregation Engine

Rolls entries up by calendar date, by month or by account tag, summing
the debit and credit columns per group.

Date windows are inclusive on both ends. A group with no entries is
never emitted; the one exception is summarize_date_range, which always
returns exactly one row.
"""

from collections.abc import Callable, Hashable, Iterable
from datetime import date

from ledgerbook.models.ledger import ZERO, Transaction
from ledgerbook.models.reports import (
    AccountAggregateRow,
    AggregateRow,
    DateRangeSummary,
)
from ledgerbook.validation import validate_date_range


def in_window(transaction: Transaction, date_from: date, date_to: date) -> bool:
    return date_from <= transaction.entry_date <= date_to


def filter_by_window(
    transactions: Iterable[Transaction],
    date_from: date,
    date_to: date,
) -> list[Transaction]:
    """Entries dated inside [date_from, date_to]."""
    validate_date_range(date_from, date_to)
    return [t for t in transactions if in_window(t, date_from, date_to)]


def month_start(day: date) -> date:
    """Truncate a date to the first day of its month."""
    return day.replace(day=1)


def _group(
    transactions: Iterable[Transaction],
    key: Callable[[Transaction], Hashable],
) -> dict:
    """Group key -> [count, total_debit, total_credit]."""
    groups: dict = {}
    for transaction in transactions:
        k = key(transaction)
        if k not in groups:
            groups[k] = [0, ZERO, ZERO]
        bucket = groups[k]
        bucket[0] += 1
        bucket[1] += transaction.debit
        bucket[2] += transaction.credit
    return groups


def aggregate_by_date(
    transactions: Iterable[Transaction],
    date_from: date,
    date_to: date,
) -> list[AggregateRow]:
    """Per-day totals inside the window, newest day first."""
    groups = _group(
        filter_by_window(transactions, date_from, date_to),
        lambda t: t.entry_date,
    )
    return [
        AggregateRow(
            period=day,
            transaction_count=count,
            total_debit=debit,
            total_credit=credit,
        )
        for day, (count, debit, credit) in sorted(groups.items(), reverse=True)
    ]


def aggregate_by_month(
    transactions: Iterable[Transaction],
    date_from: date,
    date_to: date,
) -> list[AggregateRow]:
    """Per-month totals inside the window, newest month first.

    Each row's period is the first day of its month.
    """
    groups = _group(
        filter_by_window(transactions, date_from, date_to),
        lambda t: month_start(t.entry_date),
    )
    return [
        AggregateRow(
            period=month,
            transaction_count=count,
            total_debit=debit,
            total_credit=credit,
        )
        for month, (count, debit, credit) in sorted(groups.items(), reverse=True)
    ]


def aggregate_by_account(
    transactions: Iterable[Transaction],
) -> list[AccountAggregateRow]:
    """Per-account totals over all entries, busiest account first."""
    groups = _group(transactions, lambda t: t.account)
    rows = [
        AccountAggregateRow(
            account=account,
            transaction_count=count,
            total_debit=debit,
            total_credit=credit,
        )
        for account, (count, debit, credit) in groups.items()
    ]
    rows.sort(key=lambda r: (-r.transaction_count, r.account))
    return rows


def summarize_date_range(
    transactions: Iterable[Transaction],
    date_from: date,
    date_to: date,
) -> DateRangeSummary:
    """Totals for the whole window. Zero counts when nothing matches."""
    matching = filter_by_window(transactions, date_from, date_to)
    return DateRangeSummary(
        date_from=date_from,
        date_to=date_to,
        transaction_count=len(matching),
        total_debit=sum((t.debit for t in matching), ZERO),
        total_credit=sum((t.credit for t in matching), ZERO),
    )
