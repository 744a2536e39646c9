"""
Report Models for Ledger Book

Plain result structures produced by the ledger engine. They carry no
formatting decisions; renderers (tables, PDF, spreadsheets) consume them
as-is.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ledgerbook.models.ledger import ZERO, Transaction


class LedgerRow(BaseModel):
    """One ledger entry annotated with its running balance."""

    transaction: Transaction
    running_balance: Decimal

    @property
    def debit(self) -> Decimal:
        return self.transaction.debit

    @property
    def credit(self) -> Decimal:
        return self.transaction.credit


class ClientBalance(BaseModel):
    """
    A client with its all-time totals.

    current_balance = opening_balance + total_debit - total_credit
    """

    client_id: int
    client_name: str
    shop_name: Optional[str] = None
    city: Optional[str] = None
    mobile_number: Optional[str] = None
    opening_balance: Decimal = ZERO
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO
    current_balance: Decimal = ZERO
    transaction_count: int = Field(default=0, ge=0)


class ClientClassification(BaseModel):
    """Debtors (owe the business) and creditors (are owed by it)."""

    debtors: list[ClientBalance] = Field(default_factory=list)
    creditors: list[ClientBalance] = Field(default_factory=list)

    @property
    def total_receivable(self) -> Decimal:
        """Sum of all debtor balances."""
        return sum((c.current_balance for c in self.debtors), ZERO)

    @property
    def total_payable(self) -> Decimal:
        """Sum of all creditor balances, as a positive amount."""
        return -sum((c.current_balance for c in self.creditors), ZERO)

    @property
    def net_position(self) -> Decimal:
        """Receivable minus payable; square clients add nothing."""
        return self.total_receivable - self.total_payable


class AggregateRow(BaseModel):
    """Totals for one calendar date or one month (first day of month)."""

    period: date
    transaction_count: int = Field(ge=0)
    total_debit: Decimal
    total_credit: Decimal

    @property
    def net(self) -> Decimal:
        return self.total_debit - self.total_credit


class AccountAggregateRow(BaseModel):
    """Totals for one account tag."""

    account: str
    transaction_count: int = Field(ge=0)
    total_debit: Decimal
    total_credit: Decimal

    @property
    def net(self) -> Decimal:
        return self.total_debit - self.total_credit


class DateRangeSummary(BaseModel):
    """Single-row summary of every entry inside a date window."""

    date_from: date
    date_to: date
    transaction_count: int = Field(default=0, ge=0)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO


class LedgerStatement(BaseModel):
    """
    A client's statement for a date window.

    Running balances on the rows are computed over the client's full
    history, so the first row already reflects entries before date_from.
    balance_brought_forward is that pre-window balance.
    """

    client_id: int
    client_name: str
    date_from: date
    date_to: date
    opening_balance: Decimal
    balance_brought_forward: Decimal
    rows: list[LedgerRow] = Field(default_factory=list)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO
    closing_balance: Decimal
    generated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def row_count(self) -> int:
        return len(self.rows)


class RecalculationResult(BaseModel):
    """Outcome of rewriting a client's stored balances."""

    client_id: int
    updated_count: int = Field(ge=0)
    closing_balance: Decimal
    recalculated_at: datetime = Field(default_factory=datetime.utcnow)
