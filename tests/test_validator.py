"""Tests for entry validation and the account write rule."""

import pytest
from datetime import date
from decimal import Decimal

from conftest import make_txn
from ledgerbook.models import TransactionInput, TransactionUpdate
from ledgerbook.validation import (
    LedgerValidationError,
    TransactionValidator,
    normalize_transaction_amounts,
    validate_date_range,
)


@pytest.fixture
def validator():
    return TransactionValidator(max_amount=Decimal("100000.00"))


def entry(account: str, debit: str = "0.00", credit: str = "0.00") -> TransactionInput:
    return TransactionInput(
        client_id=1,
        entry_date=date(2024, 1, 5),
        account=account,
        debit=Decimal(debit),
        credit=Decimal(credit),
    )


class TestNormalization:
    """Tests for normalize_transaction_amounts."""

    def test_placeholder_amounts_zeroed(self):
        """Test that No NET is always stored as 0 / 0."""
        result = normalize_transaction_amounts(entry("No NET", debit="120.00", credit="30.00"))
        assert result.debit == Decimal("0.00")
        assert result.credit == Decimal("0.00")

    def test_net_keeps_debit(self):
        """Test that a Net debit passes through."""
        result = normalize_transaction_amounts(entry("Net", debit="250.00"))
        assert result.debit == Decimal("250.00")
        assert result.credit == Decimal("0.00")

    def test_net_credit_rejected(self):
        """Test that a Net credit is an error, not a silent fix."""
        with pytest.raises(LedgerValidationError, match="Net account can only have Debit"):
            normalize_transaction_amounts(entry("Net", debit="250.00", credit="10.00"))

    def test_other_accounts_untouched(self):
        """Test that Cash and free-form tags keep both amounts."""
        original = entry("Discount", debit="5.00", credit="7.00")
        assert normalize_transaction_amounts(original) == original

    def test_update_shape_follows_same_rule(self):
        """Test that updates are normalized like creates."""
        update = TransactionUpdate(
            entry_date=date(2024, 1, 5),
            account="no net",
            debit=Decimal("99.00"),
        )
        result = normalize_transaction_amounts(update)
        assert isinstance(result, TransactionUpdate)
        assert result.debit == Decimal("0.00")


class TestTransactionValidator:
    """Tests for TransactionValidator."""

    def test_valid_entry_passes(self, validator):
        """Test a plain cash entry."""
        result = validator.validate(entry("Cash", debit="500.00"))
        assert result.debit == Decimal("500.00")

    def test_amount_over_limit(self, validator):
        """Test the per-entry ceiling."""
        with pytest.raises(LedgerValidationError) as exc_info:
            validator.validate(entry("Cash", credit="100000.01"))
        assert exc_info.value.issues[0].issue_type == "out_of_range"

    def test_placeholder_over_limit_is_zeroed(self, validator):
        """Test that No NET amounts above the ceiling are dropped, not rejected."""
        result = validator.validate(entry("No NET", debit="20000000.00", credit="999.00"))
        assert result.debit == Decimal("0.00")
        assert result.credit == Decimal("0.00")

    def test_zero_amount_is_only_a_warning(self, validator):
        """Test that an entry with no amounts is reported but accepted."""
        issues = validator.check(entry("Cash"))
        assert [i.severity for i in issues] == ["warning"]
        validator.validate(entry("Cash"))

    def test_placeholder_has_no_zero_warning(self, validator):
        """Test that No NET entries are expected to be empty."""
        assert validator.check(entry("No NET")) == []

    def test_error_dicts_for_audit(self, validator):
        """Test the serialized issue list."""
        with pytest.raises(LedgerValidationError) as exc_info:
            validator.validate(entry("Net", credit="1.00"))
        assert exc_info.value.to_dicts() == [{
            "field": "credit",
            "type": "not_allowed",
            "message": "Net account can only have Debit amount, not Credit",
        }]


class TestNetCompletion:
    """Tests for validate_net_completion."""

    def test_placeholder_with_debit_and_particulars(self, validator):
        """Test the happy path raises nothing."""
        placeholder = make_txn(3, date(2024, 1, 5), account="No NET")
        validator.validate_net_completion(placeholder, Decimal("250.00"), "NET for Jan")

    @pytest.mark.parametrize("debit", [Decimal("0"), Decimal("-5.00")])
    def test_non_positive_debit(self, validator, debit):
        """Test that the completed amount must be positive."""
        placeholder = make_txn(3, date(2024, 1, 5), account="No NET")
        with pytest.raises(LedgerValidationError, match="valid NET amount"):
            validator.validate_net_completion(placeholder, debit, "NET for Jan")

    def test_blank_particulars(self, validator):
        """Test that particulars are required."""
        placeholder = make_txn(3, date(2024, 1, 5), account="No NET")
        with pytest.raises(LedgerValidationError, match="particulars"):
            validator.validate_net_completion(placeholder, Decimal("10.00"), "   ")

    def test_only_placeholders_can_be_completed(self, validator):
        """Test that a Cash entry is not a placeholder."""
        cash = make_txn(3, date(2024, 1, 5), debit="10.00", account="Cash")
        with pytest.raises(LedgerValidationError) as exc_info:
            validator.validate_net_completion(cash, Decimal("10.00"), "NET")
        assert exc_info.value.issues[0].issue_type == "not_placeholder"


class TestDateRange:
    """Tests for validate_date_range."""

    def test_single_day_window(self):
        """Test that from == to is allowed."""
        validate_date_range(date(2024, 1, 1), date(2024, 1, 1))

    def test_inverted_window(self):
        """Test that from > to is rejected."""
        with pytest.raises(LedgerValidationError, match="after end date"):
            validate_date_range(date(2024, 1, 2), date(2024, 1, 1))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
