"""
Data Models Package

This package contains all Pydantic models used in Ledger Book.
All data flowing through the system must conform to these schemas.
"""

from ledgerbook.models.ledger import (
    AccountTag,
    Client,
    ClientInput,
    Transaction,
    TransactionInput,
    TransactionUpdate,
    ValidationIssue,
    to_money,
)
from ledgerbook.models.reports import (
    AccountAggregateRow,
    AggregateRow,
    ClientBalance,
    ClientClassification,
    DateRangeSummary,
    LedgerRow,
    LedgerStatement,
    RecalculationResult,
)
from ledgerbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AccountTag",
    "Client",
    "ClientInput",
    "Transaction",
    "TransactionInput",
    "TransactionUpdate",
    "ValidationIssue",
    "to_money",
    # Report models
    "AccountAggregateRow",
    "AggregateRow",
    "ClientBalance",
    "ClientClassification",
    "DateRangeSummary",
    "LedgerRow",
    "LedgerStatement",
    "RecalculationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
