"""
Core Data Models for Ledger Book

These models define the strict schemas for clients and ledger entries.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep money as fixed-point Decimal end to end

DESIGN DECISION: Inputs and stored records are separate models.
Stored records carry the store-assigned id; inputs never do, so a caller
cannot pick an id that breaks the (date, id) ledger order.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


ZERO = Decimal("0.00")
MONEY_PLACES = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce a number to a 2-place Decimal without going through float."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(MONEY_PLACES)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountTag(str, Enum):
    """
    Known account tags for a ledger entry.

    Tags outside this set (e.g. "Discount") are accepted as free-form
    text; only NET and NO_NET carry write rules.
    """
    CASH = "Cash"
    BANK = "Bank"
    NET = "Net"
    NO_NET = "No NET"       # Zero-value placeholder until completed as NET
    GOODS = "Goods"


# =============================================================================
# CLIENTS
# =============================================================================

class ClientInput(BaseModel):
    """
    Mutable client fields, used for both create and update.

    Opening balance is signed: a negative value means the business
    owed the client before the first entry.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    client_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name of the client"
    )
    shop_name: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Client's shop or firm name"
    )
    mobile_number: Optional[str] = Field(
        default=None,
        pattern=r"^[0-9]{10}$",
        description="10 digit mobile number"
    )
    city: Optional[str] = Field(
        default=None,
        max_length=100,
    )
    opening_balance: Decimal = Field(
        default=ZERO,
        decimal_places=2,
        description="Balance before any transaction"
    )

    @field_validator('shop_name', 'city', 'mobile_number', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        """Forms submit empty strings for untouched optional fields."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Client(ClientInput):
    """A stored client. The id never changes once assigned."""

    id: int = Field(
        ...,
        ge=1,
        description="Store-assigned client id"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
    )


# =============================================================================
# LEDGER ENTRIES
# =============================================================================

class _EntryFields(BaseModel):
    """Fields shared by every shape of a ledger entry."""
    model_config = ConfigDict(str_strip_whitespace=True)

    entry_date: date = Field(
        ...,
        description="Calendar date of the entry"
    )
    account: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Account tag (Cash, Bank, Net, No NET or free-form)"
    )
    # Multi-line narrative; inner line breaks are kept as typed
    particulars: str = Field(
        default="",
        max_length=2000,
    )
    debit: Decimal = Field(
        default=ZERO,
        ge=0,
        decimal_places=2,
        description="Amount the client now owes (Dr)"
    )
    credit: Decimal = Field(
        default=ZERO,
        ge=0,
        decimal_places=2,
        description="Amount received from / owed to the client (Cr)"
    )

    @field_validator('account')
    @classmethod
    def canonical_account(cls, v: str) -> str:
        """Map case variants of known tags onto the canonical spelling."""
        for tag in AccountTag:
            if v.lower() == tag.value.lower():
                return tag.value
        return v

    @property
    def signed_amount(self) -> Decimal:
        """Contribution of this entry to the balance."""
        return self.debit - self.credit


class TransactionInput(_EntryFields):
    """A new ledger entry as submitted by a caller."""

    client_id: int = Field(
        ...,
        ge=1,
        description="Owning client"
    )


class TransactionUpdate(_EntryFields):
    """
    Replacement values for an existing entry.

    There is deliberately no client_id here: an entry never moves
    between clients.
    """


class Transaction(_EntryFields):
    """
    A stored ledger entry.

    `balance` is a cached running balance. It is rewritten by balance
    recalculation and must not be trusted after an unrecalculated write.
    """

    id: int = Field(
        ...,
        ge=1,
        description="Store-assigned id; increases with insertion order"
    )
    client_id: int = Field(..., ge=1)
    balance: Decimal = Field(
        default=ZERO,
        description="Stored running balance snapshot"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
    )

    @model_validator(mode='after')
    def validate_account_amounts(self) -> 'Transaction':
        """Stored entries must already satisfy the account write rule."""
        if self.account == AccountTag.NET and self.credit > 0:
            raise ValueError("Net entries cannot carry a credit amount")
        if self.account == AccountTag.NO_NET and (self.debit > 0 or self.credit > 0):
            raise ValueError("No NET placeholder entries must have zero amounts")
        return self

    @property
    def ledger_key(self) -> tuple[date, int]:
        """Sort key for all balance math."""
        return (self.entry_date, self.id)

    @property
    def is_placeholder(self) -> bool:
        return self.account == AccountTag.NO_NET


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'not_allowed', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )
