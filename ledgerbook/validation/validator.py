"""
Ledger Entry Validation

Every entry passes through here on its way from caller to store, on
create AND on update. Two kinds of rule apply:

NORMALIZATION (silent):
- "No NET" is a zero-value placeholder. Whatever amounts arrive with it,
  debit and credit are stored as 0.
- "Net" entries carry no credit. A zero or missing credit is stored as 0.

REJECTION (loud):
- "Net" with an explicit positive credit is an error, not a silent fix.
  The caller asked for something the ledger cannot represent.
- Amounts above the configured ceiling.
- Inverted date windows.

Rules are applied the same way on every write path.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, TypeVar

from ledgerbook.config import get_settings
from ledgerbook.models.ledger import (
    ZERO,
    AccountTag,
    Transaction,
    ValidationIssue,
    _EntryFields,
)


EntryT = TypeVar("EntryT", bound=_EntryFields)


class LedgerValidationError(ValueError):
    """Input reached the ledger in a shape it cannot accept."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__("; ".join(issue.message for issue in issues))

    def to_dicts(self) -> list[dict]:
        return [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in self.issues
        ]


def _error(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
        suggested_fix=fix,
    )


def normalize_transaction_amounts(entry: EntryT) -> EntryT:
    """
    Apply the account-tag write rule and return a normalized copy.

    Raises:
        LedgerValidationError: Net entry submitted with a positive credit
    """
    if entry.account == AccountTag.NET:
        if entry.credit > 0:
            raise LedgerValidationError([
                _error(
                    "credit",
                    "not_allowed",
                    "Net account can only have Debit amount, not Credit",
                    "Enter the amount as a debit or choose another account",
                )
            ])
        return entry.model_copy(update={"credit": ZERO})

    if entry.account == AccountTag.NO_NET:
        return entry.model_copy(update={"debit": ZERO, "credit": ZERO})

    return entry


def validate_date_range(date_from: date, date_to: date) -> None:
    """Inclusive windows must not be inverted."""
    if date_from > date_to:
        raise LedgerValidationError([
            _error(
                "date_from",
                "invalid_range",
                f"Start date {date_from.isoformat()} is after end date {date_to.isoformat()}",
            )
        ])


def validate_limit(limit: int) -> None:
    """Row limits must ask for at least one row."""
    if limit < 1:
        raise LedgerValidationError([
            _error("limit", "out_of_range", f"Limit must be at least 1, got {limit}")
        ])


class TransactionValidator:
    """
    Validates and normalizes ledger entries before they are stored.

    check() reports every issue; validate() raises on errors and returns
    the normalized entry.
    """

    def __init__(self, max_amount: Optional[Decimal] = None):
        """
        Args:
            max_amount: Ceiling for a single debit or credit.
                        Defaults to AppSettings.max_transaction_amount.
        """
        if max_amount is None:
            max_amount = get_settings().app.max_transaction_amount
        self._max_amount = max_amount

    def check(self, entry: _EntryFields) -> list[ValidationIssue]:
        """Collect issues without raising."""
        issues = []

        # No NET amounts are discarded on normalization, so no ceiling applies
        capped = () if entry.account == AccountTag.NO_NET else ("debit", "credit")
        for field in capped:
            amount = getattr(entry, field)
            if amount > self._max_amount:
                issues.append(_error(
                    field,
                    "out_of_range",
                    f"{field.capitalize()} {amount} exceeds the limit of {self._max_amount}",
                    "Split the amount across several entries",
                ))

        if entry.account == AccountTag.NET and entry.credit > 0:
            issues.append(_error(
                "credit",
                "not_allowed",
                "Net account can only have Debit amount, not Credit",
                "Enter the amount as a debit or choose another account",
            ))

        if (
            entry.account != AccountTag.NO_NET
            and entry.debit == 0
            and entry.credit == 0
        ):
            issues.append(ValidationIssue(
                field="debit",
                issue_type="zero_amount",
                message="Entry has neither a debit nor a credit amount",
                severity="warning",
            ))

        return issues

    def validate(self, entry: EntryT) -> EntryT:
        """
        Validate then normalize an entry.

        Raises:
            LedgerValidationError: if any error-level issue is found
        """
        errors = [i for i in self.check(entry) if i.severity == "error"]
        if errors:
            raise LedgerValidationError(errors)
        return normalize_transaction_amounts(entry)

    def validate_net_completion(
        self,
        transaction: Transaction,
        debit: Decimal,
        particulars: str,
    ) -> None:
        """
        Check that a No NET placeholder can be completed as a Net entry.

        Raises:
            LedgerValidationError: wrong account, non-positive debit or
                                   blank particulars
        """
        issues = []
        if not transaction.is_placeholder:
            issues.append(_error(
                "account",
                "not_placeholder",
                f"Transaction {transaction.id} is '{transaction.account}', not a No NET placeholder",
            ))
        if debit <= 0:
            issues.append(_error(
                "debit",
                "invalid_value",
                "Please enter a valid NET amount (must be greater than 0)",
            ))
        elif debit > self._max_amount:
            issues.append(_error(
                "debit",
                "out_of_range",
                f"Debit {debit} exceeds the limit of {self._max_amount}",
            ))
        if not particulars or not particulars.strip():
            issues.append(_error(
                "particulars",
                "missing",
                "Please enter particulars for this NET transaction",
            ))
        if issues:
            raise LedgerValidationError(issues)
