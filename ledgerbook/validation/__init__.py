"""Ledger entry validation package."""

from ledgerbook.validation.validator import (
    LedgerValidationError,
    TransactionValidator,
    normalize_transaction_amounts,
    validate_date_range,
    validate_limit,
)

__all__ = [
    "LedgerValidationError",
    "TransactionValidator",
    "normalize_transaction_amounts",
    "validate_date_range",
    "validate_limit",
]
